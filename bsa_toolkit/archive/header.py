"""BSA header and record structures."""

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import List, Optional, Tuple

# BSA magic bytes
BSA_MAGIC = b"BSA\x00"

# The folder records start right after the fixed 36-byte header
HEADER_SIZE = 36

# Bit 30 of a file record's size toggles the archive-wide compression default
COMPRESSION_OVERRIDE_BIT = 0x40000000
SIZE_MASK = ~COMPRESSION_OVERRIDE_BIT & 0xFFFFFFFF


class Version(IntEnum):
    """Archive format versions."""

    OBLIVION = 103
    SKYRIM = 104
    SKYRIM_SPECIAL_EDITION = 105


class ArchiveFlags(IntFlag):
    """Archive-wide option bits (header offset 0x0C)."""

    INCLUDE_DIRECTORY_NAMES = 0x001
    INCLUDE_FILE_NAMES = 0x002
    COMPRESSED_ARCHIVE = 0x004
    RETAIN_DIRECTORY_NAMES = 0x008
    RETAIN_FILE_NAMES = 0x010
    RETAIN_FILE_NAME_OFFSETS = 0x020
    XBOX360_ARCHIVE = 0x040
    RETAIN_STRINGS = 0x080
    EMBED_FILE_NAMES = 0x100
    XMEM_CODEC = 0x200

    @property
    def include_directory_names(self) -> bool:
        return bool(self & ArchiveFlags.INCLUDE_DIRECTORY_NAMES)

    @property
    def include_file_names(self) -> bool:
        return bool(self & ArchiveFlags.INCLUDE_FILE_NAMES)

    @property
    def compressed_archive(self) -> bool:
        return bool(self & ArchiveFlags.COMPRESSED_ARCHIVE)

    @property
    def xbox360_archive(self) -> bool:
        return bool(self & ArchiveFlags.XBOX360_ARCHIVE)

    @property
    def embed_file_names(self) -> bool:
        return bool(self & ArchiveFlags.EMBED_FILE_NAMES)

    @property
    def xmem_codec(self) -> bool:
        return bool(self & ArchiveFlags.XMEM_CODEC)


class FileTypeFlags(IntFlag):
    """Content categories present in the archive (informational only)."""

    MESHES = 0x001
    TEXTURES = 0x002
    MENUS = 0x004
    SOUNDS = 0x008
    VOICES = 0x010
    SHADERS = 0x020
    TREES = 0x040
    FONTS = 0x080
    MISCELLANEOUS = 0x100


@dataclass
class FileRecord:
    """File record (16 bytes) from a folder's file-record block."""

    name_hash: int  # 8 bytes
    size: int  # 4 bytes, bit 30 is the compression override
    offset: int  # 4 bytes: absolute offset of the file's data region

    # Resolved from the file-name block
    name: Optional[str] = None

    @property
    def compression_override(self) -> bool:
        return bool(self.size & COMPRESSION_OVERRIDE_BIT)

    @property
    def data_size(self) -> int:
        return self.size & SIZE_MASK


@dataclass
class FolderRecord:
    """Folder record (16 bytes, 24 bytes in version 105)."""

    name_hash: int  # 8 bytes
    file_count: int  # 4 bytes
    offset: int  # 4 or 8 bytes, includes total_file_name_length; not used for reading

    # Resolved from the file-record block
    name: Optional[str] = None
    file_records: List[FileRecord] = field(default_factory=list)


@dataclass(frozen=True)
class Header:
    """Parsed BSA header together with the decoded folder tree.

    The header is built without folders and replaced by a copy carrying the
    finished tree once parsing completes.
    """

    version: Version
    archive_flags: ArchiveFlags
    folder_count: int
    file_count: int
    total_folder_name_length: int
    total_file_name_length: int
    file_flags: FileTypeFlags
    folders: Tuple = ()

    @property
    def folder_record_size(self) -> int:
        return 24 if self.version == Version.SKYRIM_SPECIAL_EDITION else 16

    @property
    def has_embedded_names(self) -> bool:
        # Oblivion archives never prefix payloads with their path
        return self.archive_flags.embed_file_names and self.version != Version.OBLIVION
