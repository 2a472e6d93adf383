"""BSA archive parsing and file streaming."""

from .header import ArchiveFlags, FileTypeFlags, Header, Version
from .reader import Archive, File, Folder, open, read
from .stream import Codec, FileReader, ReaderState

__all__ = [
    "Archive",
    "ArchiveFlags",
    "Codec",
    "File",
    "FileReader",
    "FileTypeFlags",
    "Folder",
    "Header",
    "ReaderState",
    "Version",
    "open",
    "read",
]
