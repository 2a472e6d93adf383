"""BSA name hashing.

Every folder and file record stores a 64-bit hash of its name. The low
32 bits pack the first, last, and second-to-last characters of the stem
together with its length; the high 32 bits are a polynomial hash over the
middle of the stem plus one over the extension. Names are hashed as
lowercase CP-1252 bytes.
"""

from typing import Tuple

from .utils import cp1252

HASH_MULTIPLIER = 0x1003F
MASK_32 = 0xFFFFFFFF

EXTENSION_BITS = {
    b".kf": 0x80,
    b".nif": 0x8000,
    b".dds": 0x8080,
    b".wav": 0x80000000,
}


def _polynomial(data: bytes) -> int:
    value = 0
    for byte in data:
        value = (value * HASH_MULTIPLIER + byte) & MASK_32
    return value


def split_name(name: str) -> Tuple[bytes, bytes]:
    """Split a name into encoded (stem, extension) byte strings.

    Paths containing a separator are treated as directories and are never
    split, so dots inside folder names stay part of the stem.
    """
    name = name.replace("/", "\\")
    encoded = cp1252.encode(name, allow_undefined=True)
    if "\\" in name:
        return encoded, b""
    dot = encoded.rfind(b".")
    if dot == -1:
        return encoded, b""
    return encoded[:dot], encoded[dot:]


def hash_parts(stem: bytes, ext: bytes) -> int:
    stem = stem.lower()
    ext = ext.lower()
    length = len(stem)

    hash_bytes = bytes(
        [
            stem[-1] if length else 0,
            stem[-2] if length >= 3 else 0,
            length & 0xFF,
            stem[0] if length else 0,
        ]
    )
    hash1 = int.from_bytes(hash_bytes, byteorder="little")
    hash1 |= EXTENSION_BITS.get(ext, 0)

    hash2 = _polynomial(stem[1 : length - 2]) if length >= 3 else 0
    hash3 = _polynomial(ext)

    return (((hash2 + hash3) & MASK_32) << 32) | hash1


def compute_hash(name: str) -> int:
    """Compute the 64-bit BSA hash of a folder path or file name.

    >>> hex(compute_hash("seq"))
    '0x73036571'
    """
    stem, ext = split_name(name)
    return hash_parts(stem, ext)
