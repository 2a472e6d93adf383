"""Build small BSA archives in memory for tests."""

import struct
import zlib
from dataclasses import dataclass, field
from typing import List, Optional

import lz4.frame

from bsa_toolkit.hash import compute_hash

INCLUDE_DIRECTORY_NAMES = 0x001
INCLUDE_FILE_NAMES = 0x002
COMPRESSED_ARCHIVE = 0x004
XBOX360_ARCHIVE = 0x040
EMBED_FILE_NAMES = 0x100
XMEM_CODEC = 0x200

DEFAULT_FLAGS = INCLUDE_DIRECTORY_NAMES | INCLUDE_FILE_NAMES

MASK_64 = 0xFFFFFFFFFFFFFFFF


@dataclass
class Entry:
    """A file to place in the archive."""

    name: str
    contents: bytes
    override: bool = False  # set the per-file compression toggle bit
    declared_size: Optional[int] = None  # overrides the uncompressed-size prefix


@dataclass
class Dir:
    name: str
    files: List[Entry] = field(default_factory=list)


def build_bsa(
    folders: List[Dir],
    version: int = 104,
    archive_flags: int = DEFAULT_FLAGS,
    file_flags: int = 0,
    folder_hash_delta: int = 0,
    file_hash_delta: int = 0,
) -> bytes:
    """Lay out header, folder records, file-record blocks, names and data."""
    order = ">" if archive_flags & XBOX360_ARCHIVE else "<"
    compressed_archive = bool(archive_flags & COMPRESSED_ARCHIVE)
    embed = bool(archive_flags & EMBED_FILE_NAMES) and version != 103
    include_dirs = bool(archive_flags & INCLUDE_DIRECTORY_NAMES)
    include_files = bool(archive_flags & INCLUDE_FILE_NAMES)

    def u32(value: int) -> bytes:
        return struct.pack(order + "I", value)

    def u64(value: int) -> bytes:
        return struct.pack(order + "Q", value & MASK_64)

    regions = []
    for folder in folders:
        folder_regions = []
        for entry in folder.files:
            region = b""
            if embed:
                path = f"{folder.name}\\{entry.name}".encode("cp1252")
                region += bytes([len(path)]) + path
            if compressed_archive != entry.override:
                if version == 105:
                    packed = lz4.frame.compress(entry.contents)
                else:
                    packed = zlib.compress(entry.contents)
                declared = len(entry.contents) if entry.declared_size is None else entry.declared_size
                region += u32(declared) + packed
            else:
                region += entry.contents
            folder_regions.append(region)
        regions.append(folder_regions)

    folder_names = [folder.name.encode("cp1252") for folder in folders]
    file_names = [entry.name.encode("cp1252") for folder in folders for entry in folder.files]
    total_folder_name_length = sum(len(name) + 1 for name in folder_names) if include_dirs else 0
    total_file_name_length = sum(len(name) + 1 for name in file_names) if include_files else 0

    folder_record_size = 24 if version == 105 else 16
    position = 36 + folder_record_size * len(folders)
    block_offsets = []
    for folder, encoded in zip(folders, folder_names):
        block_offsets.append(position)
        if include_dirs:
            position += len(encoded) + 2
        position += 16 * len(folder.files)
    data_start = position + total_file_name_length

    out = bytearray(b"BSA\x00")
    out += struct.pack("<III", version, 36, archive_flags)
    out += u32(len(folders)) + u32(len(file_names))
    out += u32(total_folder_name_length) + u32(total_file_name_length)
    out += struct.pack("<I", file_flags)

    for folder, block_offset in zip(folders, block_offsets):
        out += u64(compute_hash(folder.name) + folder_hash_delta) + u32(len(folder.files))
        if version == 105:
            out += u32(0) + u64(block_offset + total_file_name_length)
        else:
            out += u32(block_offset + total_file_name_length)

    data_offset = data_start
    for folder, encoded, folder_regions in zip(folders, folder_names, regions):
        if include_dirs:
            out += bytes([len(encoded) + 1]) + encoded + b"\x00"
        for entry, region in zip(folder.files, folder_regions):
            size = len(region) | (0x40000000 if entry.override else 0)
            out += u64(compute_hash(entry.name) + file_hash_delta) + u32(size) + u32(data_offset)
            data_offset += len(region)

    if include_files:
        for name in file_names:
            out += name + b"\x00"

    assert len(out) == data_start
    for folder_regions in regions:
        for region in folder_regions:
            out += region
    return bytes(out)


def hello_archive(**kwargs) -> bytes:
    """One folder ``data`` holding ``a.txt`` with contents ``hello``."""
    return build_bsa([Dir("data", [Entry("a.txt", b"hello")])], **kwargs)
