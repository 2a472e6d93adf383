"""Streaming readers for file payloads inside a BSA archive.

A file is exposed as a chain of raw streams: a ``BoundedReader`` over the
archive's backing stream presents exactly the file's data window, an
optional decoder (zlib for versions 103/104, an LZ4 frame for 105) sits on
top of it, and a ``FileReader`` at the outside tracks its state and turns
failures into ``ReaderError``.
"""

import io
import logging
import zlib
from enum import Enum
from typing import BinaryIO, Optional

import lz4.frame

from ..errors import CompressionUnsupported, ReadError, ReaderError
from .header import Version

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class Codec(Enum):
    """How a file's data window is decoded."""

    RAW = "raw"
    ZLIB = "zlib"
    LZ4 = "lz4"
    XMEM = "xmem"  # recognised, never decoded

    @classmethod
    def select(cls, compressed: bool, version: Version, xmem: bool = False) -> "Codec":
        if not compressed:
            return cls.RAW
        if xmem:
            return cls.XMEM
        if version == Version.SKYRIM_SPECIAL_EDITION:
            return cls.LZ4
        return cls.ZLIB

    def wrap(self, window: BinaryIO) -> BinaryIO:
        """Return a readable stream producing the decoded bytes of ``window``."""
        if self is Codec.RAW:
            return window
        if self is Codec.ZLIB:
            return ZlibReader(window)
        if self is Codec.LZ4:
            return lz4.frame.LZ4FrameFile(window, mode="rb")
        raise CompressionUnsupported("XMem compression is not supported")


class ReaderState(Enum):
    POSITIONED = "positioned"
    STREAMING = "streaming"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class BoundedReader(io.RawIOBase):
    """Presents exactly ``length`` bytes of an underlying stream.

    The underlying stream must already be positioned at the window start.
    Running out of data before the window is consumed is an error: the
    file region extends past the end of the archive.
    """

    def __init__(self, stream: BinaryIO, length: int):
        super().__init__()
        self._stream = stream
        self._remaining = length

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        size = min(len(buffer), self._remaining)
        if size <= 0:
            return 0
        data = self._stream.read(size)
        if not data:
            raise EOFError(
                f"Archive ended with {self._remaining} bytes of the file region still unread"
            )
        count = len(data)
        buffer[:count] = data
        self._remaining -= count
        return count


class ZlibReader(io.RawIOBase):
    """Incremental zlib decoder over a readable stream."""

    def __init__(self, source: BinaryIO):
        super().__init__()
        self._source = source
        self._decompressor = zlib.decompressobj()
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        wanted = len(buffer)
        if wanted == 0:
            return 0
        while not self._pending:
            if self._decompressor.eof:
                return 0
            data = self._decompressor.unconsumed_tail
            if not data:
                data = self._source.read(CHUNK_SIZE)
                if not data:
                    raise zlib.error("Compressed data ended before the end-of-stream marker")
            self._pending = self._decompressor.decompress(data, wanted)
        count = min(wanted, len(self._pending))
        buffer[:count] = self._pending[:count]
        self._pending = self._pending[count:]
        return count


class FileReader(io.RawIOBase):
    """Readable stream over one file of an archive.

    Only one ``FileReader`` per archive is usable at a time because all of
    them share the archive's stream position. Opening another reader on the
    same archive invalidates this one.
    """

    def __init__(
        self,
        window: BoundedReader,
        codec: Codec,
        expected_size: int,
        archive,
        token: object,
        name: Optional[str] = None,
    ):
        super().__init__()
        self.codec = codec
        self.expected_size = expected_size
        self.name = name
        self.state = ReaderState.POSITIONED
        self._archive = archive
        self._token = token
        self._produced = 0
        self._window = window
        self._source = codec.wrap(window)

    def readable(self) -> bool:
        return True

    @property
    def is_current(self) -> bool:
        return self._archive.active_token is self._token

    def readinto(self, buffer) -> int:
        if self.state is ReaderState.FAILED:
            raise ReaderError("File reader is in a failed state")
        if not self.is_current:
            self.state = ReaderState.FAILED
            raise ReaderError("File reader was invalidated by another reader on the same archive")
        if self.state is ReaderState.EXHAUSTED or len(buffer) == 0:
            return 0

        self.state = ReaderState.STREAMING
        try:
            count = self._source.readinto(buffer)
        except ReadError:
            self.state = ReaderState.FAILED
            raise
        except (OSError, EOFError, zlib.error, RuntimeError) as e:
            self.state = ReaderState.FAILED
            raise ReaderError() from e

        if count:
            self._produced += count
            return count

        self.state = ReaderState.EXHAUSTED
        if self._produced != self.expected_size:
            self.state = ReaderState.FAILED
            raise ReaderError(
                f"Decoded {self._produced} bytes, expected {self.expected_size}"
                + (f" for '{self.name}'" if self.name else "")
            )
        logger.debug("Finished reading %s (%d bytes)", self.name, self._produced)
        return 0

    def close(self) -> None:
        if not self.closed and self.is_current:
            self._archive.release(self._token)
        source = getattr(self, "_source", None)
        if source is not None and source is not self._window:
            source.close()
        super().close()
