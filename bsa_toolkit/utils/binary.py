"""Binary reading utilities for BSA archives.

BSA data is little-endian, except that Xbox 360 archives store every
integer after the archive flags big-endian. Integer reads take the parsed
archive flags (anything with an ``xbox360_archive`` attribute); when they
are omitted the value is read little-endian.
"""

import struct
from io import BytesIO
from typing import BinaryIO, Optional, Union

from ..errors import ExpectedNullByte, FileNameMoreThan255Characters, UnencodableCharacters
from . import cp1252


def _order(flags) -> str:
    if flags is not None and flags.xbox360_archive:
        return ">"
    return "<"


class BinaryReader:
    """Helper for reading BSA binary data from a seekable stream."""

    def __init__(self, data: Union[bytes, BinaryIO]):
        if isinstance(data, (bytes, bytearray)):
            self._stream = BytesIO(data)
        else:
            self._stream = data

    @property
    def stream(self) -> BinaryIO:
        return self._stream

    def tell(self) -> int:
        return self._stream.tell()

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._stream.seek(offset, whence)

    def read_bytes(self, size: int) -> bytes:
        data = self._stream.read(size)
        if len(data) < size:
            raise EOFError(f"Expected {size} bytes, got {len(data)}")
        return data

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_u32(self, flags=None) -> int:
        return struct.unpack(_order(flags) + "I", self.read_bytes(4))[0]

    def read_u64(self, flags=None) -> int:
        return struct.unpack(_order(flags) + "Q", self.read_bytes(8))[0]

    def read_bstring(self) -> str:
        """Read a length-prefixed CP-1252 string without terminator."""
        length = self.read_u8()
        return cp1252.decode(self.read_bytes(length))

    def read_bzstring(self) -> str:
        """Read a length-prefixed CP-1252 string whose length counts a trailing NUL."""
        length = self.read_u8()
        if length == 0:
            raise ExpectedNullByte("Expected a null byte (zero-length bzstring)")
        text = cp1252.decode(self.read_bytes(length - 1))
        if self.read_u8() != 0:
            raise ExpectedNullByte()
        return text

    def read_cstring(self) -> str:
        """Read a NUL-terminated CP-1252 string. The NUL is consumed."""
        chars = bytearray()
        while True:
            byte = self.read_u8()
            if byte == 0:
                break
            chars.append(byte)
        return cp1252.decode(bytes(chars))

    def length(self) -> int:
        """Return the total length of the stream, keeping the position."""
        current = self.tell()
        end = self._stream.seek(0, 2)
        self._stream.seek(current)
        return end


def encode_bstring(text: str, zero: bool = False) -> bytes:
    """Encode text as a BSA length-prefixed string.

    With ``zero`` the length byte also counts a trailing NUL, which is
    appended (the folder-name shape).
    """
    try:
        encoded = cp1252.encode(text)
    except cp1252.UnencodableCharacter as e:
        raise UnencodableCharacters() from e
    length = len(encoded) + (1 if zero else 0)
    if length > 0xFF:
        raise FileNameMoreThan255Characters()
    return bytes([length]) + encoded + (b"\x00" if zero else b"")

