# Kaitai Struct record readers for the two ZIP records TrimZip decodes:
# the End Of Central Directory record and the fixed part of a local file
# header. Field names follow the Kaitai format gallery's zip.ksy.

from io import BytesIO

import kaitaistruct
from kaitaistruct import KaitaiStruct, KaitaiStream


if getattr(kaitaistruct, 'API_VERSION', (0, 9)) < (0, 9):
    raise Exception("Incompatible Kaitai Struct Python API: 0.9 or later is required, but you have %s" % (kaitaistruct.__version__))


class EndOfCentralDir(KaitaiStruct):
    """End Of Central Directory record (signature included)."""

    SIGNATURE = b"\x50\x4B\x05\x06"
    FIXED_SIZE = 22

    def __init__(self, _io, _parent=None, _root=None):
        self._io = _io
        self._parent = _parent
        self._root = _root if _root else self
        self._read()

    def _read(self):
        self.magic = self._io.read_bytes(4)
        if not self.magic == b"\x50\x4B\x05\x06":
            raise kaitaistruct.ValidationNotEqualError(b"\x50\x4B\x05\x06", self.magic, self._io, u"/seq/0")
        self.disk_of_end_of_central_dir = self._io.read_u2le()
        self.disk_of_central_dir = self._io.read_u2le()
        self.num_central_dir_entries_on_disk = self._io.read_u2le()
        self.num_central_dir_entries_total = self._io.read_u2le()
        self.len_central_dir = self._io.read_u4le()
        self.ofs_central_dir = self._io.read_u4le()
        self.len_comment = self._io.read_u2le()
        self.comment = self._io.read_bytes(self.len_comment)

    @property
    def len_record(self):
        return self.FIXED_SIZE + self.len_comment


class LocalFileHeaderPrefix(KaitaiStruct):
    """Fixed 30-byte part of a local file header followed by its file name."""

    SIGNATURE = b"\x50\x4B\x03\x04"
    FIXED_SIZE = 30

    def __init__(self, _io, _parent=None, _root=None):
        self._io = _io
        self._parent = _parent
        self._root = _root if _root else self
        self._read()

    def _read(self):
        self.magic = self._io.read_bytes(4)
        if not self.magic == b"\x50\x4B\x03\x04":
            raise kaitaistruct.ValidationNotEqualError(b"\x50\x4B\x03\x04", self.magic, self._io, u"/seq/0")
        self.version = self._io.read_u2le()
        self.flags = self._io.read_u2le()
        self.compression_method = self._io.read_u2le()
        self.file_mod_time = self._io.read_u2le()
        self.file_mod_date = self._io.read_u2le()
        self.crc32 = self._io.read_u4le()
        self.len_body_compressed = self._io.read_u4le()
        self.len_body_uncompressed = self._io.read_u4le()
        self.len_file_name = self._io.read_u2le()
        self.len_extra = self._io.read_u2le()
        self.file_name = self._io.read_bytes(self.len_file_name)


def parse_record(cls, data):
    """Decode `data` as record type `cls` from an in-memory stream."""
    return cls(KaitaiStream(BytesIO(data)))
