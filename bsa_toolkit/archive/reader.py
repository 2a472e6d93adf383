"""BSA archive reader and extractor."""

import io
import logging
import shutil
from dataclasses import dataclass, replace
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

from ..errors import (
    FailedToReadFileOffset,
    IncorrectHash,
    MissingHeader,
    ReadError,
    ReaderError,
    UnexpectedFolderRecordOffset,
    UnknownVersion,
)
from ..hash import compute_hash
from ..utils.binary import BinaryReader
from .header import (
    BSA_MAGIC,
    HEADER_SIZE,
    ArchiveFlags,
    FileRecord,
    FileTypeFlags,
    FolderRecord,
    Header,
    Version,
)
from .stream import BoundedReader, Codec, FileReader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class File:
    """A file entry inside an archive.

    ``offset`` and ``size`` describe the whole on-disk region of the file,
    including the embedded name and the uncompressed-size prefix when
    present. ``uncompressed_size`` is the number of bytes ``read_contents``
    produces.
    """

    name: Optional[str]
    name_hash: int
    offset: int
    size: int
    compressed: bool
    uncompressed_size: int
    version: Version

    def read_contents(self, archive: "Archive") -> FileReader:
        """Open a streaming reader over this file's contents."""
        return archive.open_file(self)

    def read_to_bytes(self, archive: "Archive") -> bytes:
        with self.read_contents(archive) as reader:
            return reader.read()


@dataclass(frozen=True)
class Folder:
    """A folder entry and its files, in on-disk order."""

    name: Optional[str]
    name_hash: int
    files: Tuple[File, ...] = ()

    def path_of(self, file: File) -> Optional[str]:
        """Return ``folder\\file`` when both names are known."""
        if self.name is None or file.name is None:
            return None
        return f"{self.name}\\{file.name}"


def _normalize_path(path: str) -> str:
    return path.replace("/", "\\").strip("\\").lower()


class Archive:
    """A parsed BSA archive bound to a seekable byte stream.

    The archive owns the stream: ``close()`` (or leaving a ``with`` block)
    closes it. File contents are never cached; each call to ``open_file``
    seeks the shared stream, so only the most recently opened reader can
    be read from.
    """

    def __init__(self, stream: BinaryIO, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        self._file: Optional[BinaryIO] = stream
        self._reader = BinaryReader(stream)
        self._header: Optional[Header] = None
        self._active_token: Optional[object] = None
        if not stream.seekable():
            raise ReaderError("The backing stream must be seekable")
        try:
            self._parse()
        except (EOFError, OSError) as e:
            raise ReaderError() from e

    def __enter__(self) -> "Archive":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Archive(path={str(self.path) if self.path else None!r}, "
            f"version={self.header.version.value}, folders={self.header.folder_count}, "
            f"files={self.header.file_count})"
        )

    def close(self) -> None:
        """Close the backing stream."""
        if self._file:
            self._file.close()
            self._file = None
        self._active_token = None

    @property
    def header(self) -> Header:
        if not self._header:
            raise RuntimeError("Archive not parsed")
        return self._header

    @property
    def active_token(self) -> Optional[object]:
        return self._active_token

    def release(self, token: object) -> None:
        if self._active_token is token:
            self._active_token = None

    @property
    def size(self) -> int:
        """Length of the backing stream in bytes."""
        self._check_open()
        return self._reader.length()

    def folders(self) -> List[Folder]:
        return list(self.header.folders)

    def files(self) -> Iterator[Tuple[Folder, File]]:
        for folder in self.header.folders:
            for file in folder.files:
                yield folder, file

    def _check_open(self) -> None:
        if self._file is None:
            raise ReaderError("Archive is closed")

    def _parse(self) -> None:
        self._read_header()
        folder_records = self._read_folder_records()
        self._read_file_record_blocks(folder_records)
        if self._header.archive_flags.include_file_names:
            self._read_file_names(folder_records)
        self._build_tree(folder_records)

    def _read_header(self) -> None:
        """Read the 36-byte BSA header."""
        reader = self._reader

        magic = reader.stream.read(4)
        if magic != BSA_MAGIC:
            logger.error("Expected the BSA file to begin with %r, found %r", BSA_MAGIC, magic)
            raise MissingHeader()

        version_number = reader.read_u32()
        logger.debug("BSA v%d", version_number)
        try:
            version = Version(version_number)
        except ValueError:
            raise UnknownVersion(version_number) from None

        folder_records_offset = reader.read_u32()
        if folder_records_offset != HEADER_SIZE:
            raise UnexpectedFolderRecordOffset(folder_records_offset)

        # Everything before the flags is little-endian regardless of platform
        archive_flags = ArchiveFlags(reader.read_u32())
        folder_count = reader.read_u32(archive_flags)
        file_count = reader.read_u32(archive_flags)
        total_folder_name_length = reader.read_u32(archive_flags)
        total_file_name_length = reader.read_u32(archive_flags)
        file_flags = FileTypeFlags(reader.read_u32())

        self._header = Header(
            version=version,
            archive_flags=archive_flags,
            folder_count=folder_count,
            file_count=file_count,
            total_folder_name_length=total_folder_name_length,
            total_file_name_length=total_file_name_length,
            file_flags=file_flags,
        )
        logger.debug(
            "flags %#05x, %d folders, %d files, file types %#05x",
            archive_flags,
            folder_count,
            file_count,
            file_flags,
        )

    def _read_folder_records(self) -> List[FolderRecord]:
        """Read the folder record table that follows the header."""
        reader = self._reader
        flags = self._header.archive_flags
        records = []

        for _ in range(self._header.folder_count):
            name_hash = reader.read_u64(flags)
            file_count = reader.read_u32(flags)
            if self._header.version in (Version.OBLIVION, Version.SKYRIM):
                offset = reader.read_u32(flags)
            elif self._header.version == Version.SKYRIM_SPECIAL_EDITION:
                reader.read_bytes(4)  # padding
                offset = reader.read_u64(flags)
            else:
                raise FailedToReadFileOffset()

            records.append(FolderRecord(name_hash=name_hash, file_count=file_count, offset=offset))

        total_files = sum(record.file_count for record in records)
        if total_files != self._header.file_count:
            raise ReaderError(
                f"Folder records declare {total_files} files, header declares {self._header.file_count}"
            )
        logger.debug(
            "Read %d folder records of %d bytes",
            len(records),
            self._header.folder_record_size,
        )
        return records

    def _read_file_record_blocks(self, folder_records: List[FolderRecord]) -> None:
        """Read each folder's optional name and its file records."""
        reader = self._reader
        flags = self._header.archive_flags

        for folder_record in folder_records:
            if flags.include_directory_names:
                name = reader.read_bzstring()
                _verify_hash(folder_record.name_hash, name)
                folder_record.name = name

            for _ in range(folder_record.file_count):
                folder_record.file_records.append(
                    FileRecord(
                        name_hash=reader.read_u64(flags),
                        size=reader.read_u32(flags),
                        offset=reader.read_u32(flags),
                    )
                )

    def _read_file_names(self, folder_records: List[FolderRecord]) -> None:
        """Read the file-name block, one NUL-terminated name per file record."""
        for folder_record in folder_records:
            for file_record in folder_record.file_records:
                name = self._reader.read_cstring()
                _verify_hash(file_record.name_hash, name)
                file_record.name = name

    def _build_tree(self, folder_records: List[FolderRecord]) -> None:
        """Build the Folder/File tree, probing payload prefixes where needed."""
        header = self._header
        position = self._reader.tell()
        first = next((f for r in folder_records for f in r.file_records), None)
        if first is not None and first.offset != position:
            logger.warning(
                "expected file data to start at offset %d, actually at %d", first.offset, position
            )

        folders = []
        for folder_record in folder_records:
            files = []
            for file_record in folder_record.file_records:
                if file_record.compression_override:
                    logger.warning("compression override set for %s", file_record.name)
                compressed = header.archive_flags.compressed_archive != file_record.compression_override

                embedded_name, uncompressed_size = self._probe_payload(file_record, compressed)
                name = file_record.name
                if name is None and embedded_name is not None:
                    name = embedded_name.replace("/", "\\").rsplit("\\", 1)[-1]

                logger.debug(
                    "file %s at offset %d, size %d, compressed %s",
                    name,
                    file_record.offset,
                    file_record.data_size,
                    compressed,
                )
                files.append(
                    File(
                        name=name,
                        name_hash=file_record.name_hash,
                        offset=file_record.offset,
                        size=file_record.data_size,
                        compressed=compressed,
                        uncompressed_size=uncompressed_size,
                        version=header.version,
                    )
                )
            folders.append(
                Folder(
                    name=folder_record.name,
                    name_hash=folder_record.name_hash,
                    files=tuple(files),
                )
            )
        self._header = replace(header, folders=tuple(folders))

    def _probe_payload(self, record: FileRecord, compressed: bool) -> Tuple[Optional[str], int]:
        """Read the embedded name and declared size prefixing a file's data.

        Returns ``(embedded_name, uncompressed_size)``. Only prefix bytes are
        read; the payload itself is left untouched.
        """
        header = self._header
        if not header.has_embedded_names and not compressed:
            return None, record.data_size

        reader = self._reader
        reader.seek(record.offset)
        embedded_name = None
        payload_size = record.data_size
        if header.has_embedded_names:
            embedded_name = reader.read_bstring()
            payload_size -= reader.tell() - record.offset
        if compressed:
            return embedded_name, reader.read_u32(header.archive_flags)
        return embedded_name, payload_size

    def open_file(self, file: File) -> FileReader:
        """Position the stream at ``file`` and return a reader over its contents.

        Any reader previously returned for this archive stops working.
        """
        self._check_open()
        header = self._header
        token = object()
        self._active_token = token

        codec = Codec.select(file.compressed, file.version, header.archive_flags.xmem_codec)
        reader = self._reader
        try:
            reader.seek(file.offset)
            remaining = file.size
            if header.has_embedded_names:
                reader.read_bstring()
                remaining -= reader.tell() - file.offset
            expected_size = file.uncompressed_size
            if file.compressed:
                expected_size = reader.read_u32(header.archive_flags)
                remaining -= 4
        except (EOFError, OSError) as e:
            raise ReaderError() from e

        if remaining < 0:
            raise ReaderError(f"File region of {file.size} bytes is smaller than its prefixes")

        logger.debug(
            "Reading %s from offset %d, %d bytes, codec %s",
            file.name,
            reader.tell(),
            remaining,
            codec.value,
        )
        window = BoundedReader(self._file, remaining)
        return FileReader(window, codec, expected_size, self, token, name=file.name)

    def list_files(self) -> List[str]:
        """List ``folder\\file`` paths for every entry whose names are known."""
        paths = []
        for folder, file in self.files():
            path = folder.path_of(file)
            if path is not None:
                paths.append(path)
        return paths

    def find(self, path: str) -> Optional[File]:
        """Find a file by its ``folder\\file`` path (case-insensitive, ``/`` accepted)."""
        wanted = _normalize_path(path)
        for folder, file in self.files():
            candidate = folder.path_of(file)
            if candidate is not None and _normalize_path(candidate) == wanted:
                return file
        return None

    def extract_all(self, output_dir: Union[str, Path]) -> Iterator[Tuple[str, Path]]:
        """Extract every named file below ``output_dir``.

        Folder names are split on ``\\`` to recreate the tree. Yields
        ``(archive_path, output_path)`` for each file written.
        """
        output_dir = Path(output_dir)
        for folder in self.header.folders:
            if folder.name is None:
                continue
            folder_dir = output_dir.joinpath(*_safe_parts(folder.name))
            folder_dir.mkdir(parents=True, exist_ok=True)
            for file in folder.files:
                if file.name is None:
                    continue
                output_path = folder_dir.joinpath(*_safe_parts(file.name))
                with file.read_contents(self) as source, output_path.open("wb") as target:
                    shutil.copyfileobj(source, target)
                yield folder.path_of(file), output_path


def _safe_parts(name: str) -> List[str]:
    return [part for part in name.replace("/", "\\").split("\\") if part not in ("", ".", "..")]


def _verify_hash(stored: int, name: str) -> None:
    recomputed = compute_hash(name)
    if recomputed != stored:
        logger.error(
            "Incorrect hash: calculated %016x instead of %016x for '%s'", recomputed, stored, name
        )
        raise IncorrectHash(stored=stored, recomputed=recomputed, name=name)
    logger.debug("Matching hash: %016x for '%s'", stored, name)


def read(stream: BinaryIO, path: Optional[Path] = None) -> Archive:
    """Parse an archive from a seekable binary stream."""
    return Archive(stream, path)


def open(path: Union[str, Path]) -> Archive:
    """Open and parse the archive at ``path``."""
    try:
        stream = io.open(path, "rb")
    except OSError as e:
        raise ReaderError(f"Error opening {path}") from e
    try:
        return read(stream, Path(path))
    except ReadError:
        stream.close()
        raise
