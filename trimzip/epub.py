"""
TrimZip EPUB Support

An EPUB is a ZIP whose first entry is an uncompressed `mimetype` file
holding "application/epub+zip". Its bibliographic metadata lives in the
package document (OPF), which META-INF/container.xml points to.

This module answers three questions for the renaming step:

- is_epub(): does the file start like an EPUB?
- parse_container_xml(): where is the package document?
- parse_package_document(): who wrote it, and what is it called?

Metadata follows EPUB 3 refinements: a <meta refines="#id" property="...">
element attaches a property (file-as, role, display-seq, title-type) to the
dc: element carrying that id.
"""

from __future__ import annotations

import datetime as dt
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import kaitaistruct
from lxml import etree

from trimzip.errors import EpubError, FormatError
from trimzip.kaitai_parsers import LocalFileHeaderPrefix, parse_record

EPUB_MIME_TYPE_FILE_NAME = "mimetype"
EPUB_MIME_TYPE = "application/epub+zip"
EPUB_CONTAINER_FILE_NAME = "META-INF/container.xml"
PACKAGE_DOCUMENT_MEDIA_TYPE = "application/oebps-package+xml"

CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"

# General purpose flag bit 11: file name is UTF-8 (EFS)
_EFS_FLAG = 1 << 11


# ============================================================================
# Summary model
# ============================================================================

@dataclass(frozen=True)
class Title:
    name: str
    file_as: Optional[str] = None


@dataclass(frozen=True)
class Creator:
    name: str
    file_as: Optional[str] = None
    role: Optional[str] = None
    role_scheme: Optional[str] = None
    display_seq: Optional[int] = None


@dataclass(frozen=True)
class Publisher:
    name: str
    file_as: Optional[str] = None


@dataclass(frozen=True)
class EpubPackageDocumentSummary:
    """The metadata of one package document that TrimZip cares about."""
    title: Title
    language: str
    creators: tuple[Creator, ...] = ()
    publisher: Optional[Publisher] = None
    modified: Optional[dt.datetime] = None
    subjects: tuple[str, ...] = ()
    description: Optional[str] = None

    def __repr__(self) -> str:
        names = "×".join(c.name for c in self.creators)
        return f"<EpubSummary [{names}] {self.title.name!r} lang={self.language}>"


# ============================================================================
# Container detection and entry index
# ============================================================================

def is_epub(path: Union[str, Path]) -> bool:
    """Check that the first local file header is a stored `mimetype` entry."""
    name = EPUB_MIME_TYPE_FILE_NAME.encode("ascii")
    with open(path, "rb") as f:
        data = f.read(LocalFileHeaderPrefix.FIXED_SIZE + len(name))
    if len(data) != LocalFileHeaderPrefix.FIXED_SIZE + len(name):
        return False
    try:
        header = parse_record(LocalFileHeaderPrefix, data)
    except (kaitaistruct.ValidationFailedError, EOFError):
        return False
    if header.flags & ~_EFS_FLAG:
        return False
    if header.compression_method != 0:
        return False
    return header.len_file_name == len(name) and header.file_name == name


class IndexedZipEntries:
    """ZIP entries indexed by their full name.

    Usage:
        with IndexedZipEntries.open("book.epub") as entries:
            raw = entries.read("META-INF/container.xml")
    """

    def __init__(self, archive: zipfile.ZipFile) -> None:
        self._archive = archive
        self._entries = {info.filename: info for info in archive.infolist()}
        self._closed = False

    @classmethod
    def open(cls, path: Union[str, Path]) -> IndexedZipEntries:
        try:
            archive = zipfile.ZipFile(path)
        except zipfile.BadZipFile as e:
            raise FormatError(f"Cannot index ZIP entries ({e})", path) from e
        return cls(archive)

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("ZIP entry index is closed")

    def __len__(self) -> int:
        self._check_open()
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        self._check_open()
        return name in self._entries

    def __getitem__(self, name: str) -> Optional[zipfile.ZipInfo]:
        self._check_open()
        return self._entries.get(name)

    def read(self, name: str) -> Optional[bytes]:
        """Content of entry `name`, or None when there is no such entry."""
        info = self[name]
        if info is None:
            return None
        try:
            return self._archive.read(info)
        except (zipfile.BadZipFile, NotImplementedError, zlib.error) as e:
            raise FormatError(f"Cannot read entry \"{name}\" ({e})", self._archive.filename) from e

    def close(self) -> None:
        if not self._closed:
            self._archive.close()
            self._closed = True

    def __enter__(self) -> IndexedZipEntries:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ============================================================================
# XML helpers
# ============================================================================

def _xml_root(raw: bytes, what: str) -> etree._Element:
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(raw, parser=parser)
    except etree.XMLSyntaxError as e:
        raise EpubError(f"\"{what}\" is not well-formed XML ({e})") from e


def _text(element: etree._Element) -> str:
    return "".join(element.itertext()).strip()


def _attr(element: Optional[etree._Element], name: str) -> Optional[str]:
    if element is None:
        return None
    value = element.get(name)
    return value.strip() if value is not None else None


def _single_or_none(elements: list, what: str):
    if len(elements) > 1:
        raise EpubError(f"More than one {what}")
    return elements[0] if elements else None


class _Refinements:
    """Index of <meta refines="#id" property="..."> elements."""

    def __init__(self, metas: list[etree._Element]) -> None:
        self._metas = metas

    def find(self, element: Optional[etree._Element], prop: str) -> Optional[etree._Element]:
        element_id = _attr(element, "id")
        if element_id is None:
            return None
        matches = [
            meta for meta in self._metas
            if _attr(meta, "refines") == f"#{element_id}" and _attr(meta, "property") == prop
        ]
        return _single_or_none(matches, f"\"{prop}\" refinement of #{element_id}")

    def value(self, element: Optional[etree._Element], prop: str) -> Optional[str]:
        meta = self.find(element, prop)
        return _text(meta) if meta is not None else None


# ============================================================================
# container.xml
# ============================================================================

def parse_container_xml(raw: bytes) -> list[str]:
    """Full paths of the package documents listed in container.xml."""
    root = _xml_root(raw, EPUB_CONTAINER_FILE_NAME)
    paths = []
    for rootfile in root.iter(f"{{{CONTAINER_NS}}}rootfile"):
        media_type = _attr(rootfile, "media-type")
        if media_type is None:
            raise EpubError(f"\"rootfile\" element in \"{EPUB_CONTAINER_FILE_NAME}\" has no \"media-type\" attribute")
        if media_type != PACKAGE_DOCUMENT_MEDIA_TYPE:
            raise EpubError(
                f"\"rootfile\" media-type is \"{media_type}\", expected \"{PACKAGE_DOCUMENT_MEDIA_TYPE}\""
            )
        full_path = _attr(rootfile, "full-path")
        if full_path is None:
            raise EpubError(f"\"rootfile\" element in \"{EPUB_CONTAINER_FILE_NAME}\" has no \"full-path\" attribute")
        paths.append(full_path)
    return paths


# ============================================================================
# Package document
# ============================================================================

def _parse_title(root: etree._Element, refinements: _Refinements) -> Title:
    titles = []
    for element in root.iter(f"{{{DC_NS}}}title"):
        titles.append((
            _text(element),
            refinements.value(element, "file-as"),
            refinements.value(element, "title-type"),
        ))

    if not titles:
        raise EpubError("No \"dc:title\" element")
    if len(titles) == 1:
        name, file_as, _ = titles[0]
        return Title(name, file_as)
    if len(titles) > 2:
        raise EpubError("Too many \"dc:title\" elements")

    types = (titles[0][2], titles[1][2])
    if None in types:
        raise EpubError("Several \"dc:title\" elements without \"title-type\" metadata")
    if types == ("subtitle", "main"):
        titles.reverse()
    elif types != ("main", "subtitle"):
        raise EpubError(f"Unknown \"title-type\" combination: {types[0]}, {types[1]}")

    (main, main_as, _), (sub, sub_as, _) = titles
    if main_as is None:
        file_as = sub_as
    elif sub_as is None:
        file_as = main_as
    else:
        file_as = f"{main_as} {sub_as}"
    return Title(f"{main} {sub}", file_as)


def _parse_display_seq(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    if not (text.isascii() and text.isdigit()):
        raise EpubError(f"Invalid \"display-seq\" value: {text!r}")
    return int(text)


def _parse_creators(root: etree._Element, refinements: _Refinements) -> tuple[Creator, ...]:
    creators = []
    for element in root.iter(f"{{{DC_NS}}}creator"):
        role = refinements.find(element, "role")
        creators.append(Creator(
            name=_text(element),
            file_as=refinements.value(element, "file-as"),
            role=_text(role) if role is not None else None,
            role_scheme=_attr(role, "scheme"),
            display_seq=_parse_display_seq(refinements.value(element, "display-seq")),
        ))
    # Unnumbered creators sort first, the rest by display-seq; ties keep document order
    creators.sort(key=lambda c: (c.display_seq is not None, c.display_seq or 0))
    return tuple(creators)


def _parse_modified(metas: list[etree._Element]) -> Optional[dt.datetime]:
    element = _single_or_none(
        [m for m in metas if _attr(m, "property") == "dcterms:modified"],
        "\"dcterms:modified\" meta",
    )
    if element is None:
        return None
    text = _text(element)
    try:
        return dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise EpubError(f"Invalid \"dcterms:modified\" value: {text!r}") from e


def parse_package_document(raw: bytes, name: str = "package document") -> EpubPackageDocumentSummary:
    """Summarise the <metadata> of an OPF package document."""
    root = _xml_root(raw, name)
    metas = list(root.iter(f"{{{OPF_NS}}}meta"))
    refinements = _Refinements(metas)

    title = _parse_title(root, refinements)
    creators = _parse_creators(root, refinements)

    publisher_element = _single_or_none(list(root.iter(f"{{{DC_NS}}}publisher")), "\"dc:publisher\" element")
    publisher = None
    if publisher_element is not None:
        publisher = Publisher(_text(publisher_element), refinements.value(publisher_element, "file-as"))

    languages = list(root.iter(f"{{{DC_NS}}}language"))
    if len(languages) != 1:
        raise EpubError(f"Expected exactly one \"dc:language\" element, found {len(languages)}")

    subject = _single_or_none(list(root.iter(f"{{{DC_NS}}}subject")), "\"dc:subject\" element")
    subjects = tuple(s.strip() for s in _text(subject).split(",")) if subject is not None else ()

    description = _single_or_none(list(root.iter(f"{{{DC_NS}}}description")), "\"dc:description\" element")

    return EpubPackageDocumentSummary(
        title=title,
        language=_text(languages[0]),
        creators=creators,
        publisher=publisher,
        modified=_parse_modified(metas),
        subjects=subjects,
        description=_text(description) if description is not None else None,
    )


def read_epub_summary(path: Union[str, Path]) -> Optional[EpubPackageDocumentSummary]:
    """Package metadata of the EPUB at `path`; None if it is not an EPUB."""
    if not is_epub(path):
        return None

    with IndexedZipEntries.open(path) as entries:
        if len(entries) == 0:
            return None
        mime_type = entries.read(EPUB_MIME_TYPE_FILE_NAME)
        if mime_type is None:
            raise EpubError(f"No \"{EPUB_MIME_TYPE_FILE_NAME}\" entry", path)
        if mime_type.decode("ascii", errors="replace") != EPUB_MIME_TYPE:
            return None

        container = entries.read(EPUB_CONTAINER_FILE_NAME)
        if container is None:
            raise EpubError(f"No \"{EPUB_CONTAINER_FILE_NAME}\" entry", path)
        package_paths = parse_container_xml(container)
        if not package_paths:
            raise EpubError(f"No \"rootfile\" element in \"{EPUB_CONTAINER_FILE_NAME}\"", path)

        package_path = package_paths[0]
        package = entries.read(package_path)
        if package is None:
            raise EpubError(f"No \"{package_path}\" entry", path)
        return parse_package_document(package, package_path)
