"""BSA Toolkit - read Bethesda Softworks Archives (Oblivion, Skyrim, Skyrim SE)."""

__version__ = "0.1.1"

from .archive import Archive, File, FileReader, Folder, open, read
from .errors import (
    BSAError,
    CompressionUnsupported,
    ExpectedNullByte,
    FailedToReadFileOffset,
    FileNameMoreThan255Characters,
    IncorrectHash,
    MissingFileName,
    MissingHeader,
    ReadError,
    ReaderError,
    UnencodableCharacters,
    UnexpectedFolderRecordOffset,
    UnknownVersion,
    WriteCompressionUnsupported,
    WriteError,
)
from .hash import compute_hash

__all__ = [
    "Archive",
    "File",
    "FileReader",
    "Folder",
    "open",
    "read",
    "compute_hash",
    "BSAError",
    "ReadError",
    "WriteError",
    "MissingHeader",
    "UnknownVersion",
    "UnexpectedFolderRecordOffset",
    "CompressionUnsupported",
    "ExpectedNullByte",
    "FailedToReadFileOffset",
    "ReaderError",
    "IncorrectHash",
    "UnencodableCharacters",
    "FileNameMoreThan255Characters",
    "WriteCompressionUnsupported",
    "MissingFileName",
]
