"""
TrimZip File Naming

Turns EPUB metadata into a file name:

    [Creator A×Creator B] Title.epub

Japanese metadata often spells ASCII in full-width forms (ＡＢＣ１２３),
which is folded back to ASCII first. Characters Windows does not allow in
file names are then written as their full-width look-alikes, so the name
still reads the same.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from trimzip.epub import EpubPackageDocumentSummary

_FULL_WIDTH_PUNCTUATION = {
    "　": " ",
    "！": "!",
    "＃": "#",
    "＄": "$",
    "％": "%",
    "＆": "&",
    "’": "'",
    "（": "(",
    "）": ")",
    "＝": "=",
    "‐": "-",
    "＾": "^",
    "＠": "@",
    "‘": "`",
    "［": "[",
    "］": "]",
    "｛": "{",
    "｝": "}",
    "＋": "+",
    "＊": "*",
    "；": ";",
    "，": ",",
    "．": ".",
    "＿": "_",
}


def _full_width_table() -> dict[int, str]:
    table = {ord(k): v for k, v in _FULL_WIDTH_PUNCTUATION.items()}
    for first, last, ascii_first in (("０", "９", "0"), ("Ａ", "Ｚ", "A"), ("ａ", "ｚ", "a")):
        for code in range(ord(first), ord(last) + 1):
            table[code] = chr(code - ord(first) + ord(ascii_first))
    return table


FULL_WIDTH_TO_ASCII = _full_width_table()

# Reserved in Windows file names -> full-width equivalents
WINDOWS_RESERVED = str.maketrans({
    "\\": "＼",
    "/": "／",
    ":": "：",
    "*": "＊",
    "?": "？",
    "\"": "＂",
    "<": "＜",
    ">": "＞",
    "|": "｜",
})


def fold_full_width(text: str) -> str:
    """Replace full-width ASCII look-alikes with plain ASCII."""
    return text.translate(FULL_WIDTH_TO_ASCII)


def encode_windows_file_name(name: str) -> str:
    """Make `name` valid as a single Windows (and POSIX) path component."""
    name = "".join(ch for ch in name if ord(ch) >= 0x20 and ch != "\x7f")
    name = name.translate(WINDOWS_RESERVED)
    stem, ext = os.path.splitext(name)
    stem = stem.rstrip(". ")
    return f"{stem or '_'}{ext}"


def build_epub_file_name(summary: EpubPackageDocumentSummary, extension: str) -> str:
    """File name for an EPUB from its creators and title."""
    creators = "×".join(creator.name for creator in summary.creators)
    return encode_windows_file_name(fold_full_width(f"[{creators}] {summary.title.name}{extension}"))


def unique_destination(directory: Union[str, Path], file_name: str) -> Path:
    """First of `name.ext`, `name__2.ext`, `name__3.ext`... not yet taken."""
    directory = Path(directory)
    candidate = directory / file_name
    if not candidate.exists():
        return candidate
    stem, ext = os.path.splitext(file_name)
    count = 2
    while True:
        candidate = directory / f"{stem}__{count}{ext}"
        if not candidate.exists():
            return candidate
        count += 1
