"""CP-1252 text codec for names stored inside BSA archives.

Decoding is total: the five byte values Windows-1252 leaves undefined
(0x81, 0x8D, 0x8F, 0x90, 0x9D) decode to their Latin-1 code points so that
any name read from disk survives a decode/encode round trip. Encoding is
strict and rejects those code points unless explicitly allowed.
"""

from typing import Dict, List

UNDEFINED_BYTES = (0x81, 0x8D, 0x8F, 0x90, 0x9D)


class UnencodableCharacter(ValueError):
    """A character has no CP-1252 representation."""

    def __init__(self, char: str):
        self.char = char
        super().__init__(f"Character {char!r} (U+{ord(char):04X}) cannot be encoded as CP-1252")


def _build_decode_table() -> List[str]:
    table = []
    for value in range(256):
        if value in UNDEFINED_BYTES:
            table.append(chr(value))
        else:
            table.append(bytes([value]).decode("cp1252"))
    return table


DECODE_TABLE = _build_decode_table()
ENCODE_TABLE: Dict[str, int] = {
    char: value for value, char in enumerate(DECODE_TABLE) if value not in UNDEFINED_BYTES
}


def decode_byte(value: int) -> str:
    return DECODE_TABLE[value]


def decode(data: bytes) -> str:
    """Decode CP-1252 bytes. Never fails."""
    return "".join(DECODE_TABLE[b] for b in data)


def encode_char(char: str, allow_undefined: bool = False) -> int:
    value = ENCODE_TABLE.get(char)
    if value is not None:
        return value
    if allow_undefined and ord(char) in UNDEFINED_BYTES:
        return ord(char)
    raise UnencodableCharacter(char)


def encode(text: str, allow_undefined: bool = False) -> bytes:
    """Encode text as CP-1252.

    With ``allow_undefined`` the five undefined positions are accepted as
    their Latin-1 code points, which makes ``encode`` the exact inverse of
    ``decode``. Hashing names read from an archive relies on this.
    """
    return bytes(encode_char(char, allow_undefined) for char in text)
