"""Tests for binary utilities."""

import pytest

from bsa_toolkit.archive.header import ArchiveFlags
from bsa_toolkit.errors import (
    ExpectedNullByte,
    FileNameMoreThan255Characters,
    UnencodableCharacters,
)
from bsa_toolkit.utils.binary import BinaryReader, encode_bstring
from bsa_toolkit.utils.cp1252 import UnencodableCharacter


class TestBinaryReader:
    """Tests for BinaryReader class."""

    def test_read_u8(self):
        reader = BinaryReader(b"\x42")
        assert reader.read_u8() == 0x42

    def test_read_u32_little_endian_by_default(self):
        reader = BinaryReader(b"\x12\x34\x56\x78")
        assert reader.read_u32() == 0x78563412

    def test_read_u32_big_endian_for_xbox360(self):
        reader = BinaryReader(b"\x12\x34\x56\x78")
        assert reader.read_u32(ArchiveFlags.XBOX360_ARCHIVE) == 0x12345678

    def test_read_u32_other_flags_stay_little_endian(self):
        reader = BinaryReader(b"\x12\x34\x56\x78")
        flags = ArchiveFlags.INCLUDE_FILE_NAMES | ArchiveFlags.COMPRESSED_ARCHIVE
        assert reader.read_u32(flags) == 0x78563412

    def test_read_u64(self):
        reader = BinaryReader(b"\xF0\xDE\xBC\x9A\x78\x56\x34\x12")
        assert reader.read_u64() == 0x123456789ABCDEF0

    def test_read_u64_big_endian(self):
        reader = BinaryReader(b"\x12\x34\x56\x78\x9A\xBC\xDE\xF0")
        assert reader.read_u64(ArchiveFlags.XBOX360_ARCHIVE) == 0x123456789ABCDEF0

    def test_read_bstring(self):
        reader = BinaryReader(b"\x05hello world")
        assert reader.read_bstring() == "hello"
        assert reader.tell() == 6

    def test_read_bzstring(self):
        reader = BinaryReader(b"\x07meshes\x00rest")
        assert reader.read_bzstring() == "meshes"
        assert reader.tell() == 8

    def test_read_bzstring_requires_null(self):
        reader = BinaryReader(b"\x03abc")
        with pytest.raises(ExpectedNullByte):
            reader.read_bzstring()

    def test_read_bzstring_zero_length(self):
        reader = BinaryReader(b"\x00")
        with pytest.raises(ExpectedNullByte):
            reader.read_bzstring()

    def test_read_cstring(self):
        reader = BinaryReader(b"hello\x00world\x00")
        assert reader.read_cstring() == "hello"
        assert reader.read_cstring() == "world"

    def test_read_cstring_decodes_cp1252(self):
        reader = BinaryReader(b"caf\xe9\x00")
        assert reader.read_cstring() == "café"

    def test_read_cstring_unterminated(self):
        reader = BinaryReader(b"hello")
        with pytest.raises(EOFError):
            reader.read_cstring()

    def test_seek_and_tell(self):
        reader = BinaryReader(b"\x00\x01\x02\x03\x04\x05")
        assert reader.tell() == 0
        reader.seek(3)
        assert reader.tell() == 3
        assert reader.read_u8() == 0x03

    def test_length(self):
        reader = BinaryReader(b"\x00\x01\x02\x03\x04\x05")
        reader.read_u32()
        assert reader.length() == 6
        assert reader.tell() == 4  # Position unchanged

    def test_eof_error(self):
        reader = BinaryReader(b"\x00\x01")
        with pytest.raises(EOFError):
            reader.read_bytes(10)


class TestEncodeBstring:
    def test_plain(self):
        assert encode_bstring("abc") == b"\x03abc"

    def test_zero_terminated(self):
        assert encode_bstring("abc", zero=True) == b"\x04abc\x00"

    def test_cp1252(self):
        assert encode_bstring("€") == b"\x01\x80"

    def test_unencodable(self):
        with pytest.raises(UnencodableCharacters) as info:
            encode_bstring("snow ☃")
        assert isinstance(info.value.__cause__, UnencodableCharacter)
        assert info.value.__cause__.char == "☃"

    def test_too_long(self):
        assert len(encode_bstring("a" * 255)) == 256
        with pytest.raises(FileNameMoreThan255Characters):
            encode_bstring("a" * 255, zero=True)
