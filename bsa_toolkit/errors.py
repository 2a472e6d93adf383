"""Error types raised by bsa_toolkit.

Read-side errors are raised while parsing an archive or streaming a file
out of it. Write-side errors are raised by the name encoding helpers that a
writer would need. Underlying I/O and decoder failures are chained with
``raise ... from exc`` so the original cause stays on ``__cause__``.
"""

from typing import List, Optional


class BSAError(Exception):
    """Base class for every error raised by this package."""

    default_message = "BSA error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message if message is not None else self.default_message)


class ReadError(BSAError):
    """Failure while reading an archive."""

    default_message = "Failed to read BSA archive"


class MissingHeader(ReadError):
    default_message = "BSA file header is missing or invalid"


class UnknownVersion(ReadError):
    def __init__(self, version: int):
        self.version = version
        super().__init__(f"Unknown BSA version: {version}")


class UnexpectedFolderRecordOffset(ReadError):
    def __init__(self, offset: int):
        self.offset = offset
        super().__init__(f"Unexpected folder record offset: {offset} (expected 36)")


class CompressionUnsupported(ReadError):
    default_message = "Compression is not currently supported"


class ExpectedNullByte(ReadError):
    default_message = "Expected a null byte"


class FailedToReadFileOffset(ReadError):
    default_message = "Failed to read file offset"


class ReaderError(ReadError):
    """Wraps a failure of the backing stream or of a decompressor."""

    default_message = "Error reading file"


class IncorrectHash(ReadError):
    """A decoded folder or file name does not hash to its stored value."""

    def __init__(self, stored: int, recomputed: int, name: str):
        self.stored = stored
        self.recomputed = recomputed
        self.name = name
        super().__init__(
            f"Incorrect hash for '{name}' (expected {recomputed:#018x}, found {stored:#018x})"
        )


class WriteError(BSAError):
    """Failure while preparing data to be written into an archive."""

    default_message = "Failed to write BSA archive"


class UnencodableCharacters(WriteError):
    default_message = "Unencodable characters found"


class FileNameMoreThan255Characters(WriteError):
    default_message = "File name is longer than 255 characters"


class WriteCompressionUnsupported(WriteError):
    default_message = "Compression is not currently supported"


class MissingFileName(WriteError):
    default_message = "Missing file name"


def format_chain(exc: BaseException) -> str:
    """Join the messages of an exception and its causes with ': '."""
    messages: List[str] = []
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current) or type(current).__name__
        messages.append(text)
        current = current.__cause__
    return ": ".join(messages)
