"""
Comment Field Codec

The vendor schema's comment key only accepts digits and the characters
':' through '?'. Free text is packed into that alphabet one byte at a time:

    byte 0x4a -> hex "4a" -> nibble swap "a4" -> 'a'..'f' shifted down
    by 39 -> ":4"

Decoding runs the same steps backwards on each 2 character pair.
Every byte is zero padded to two hex digits, so bytes below 0x10
round-trip too.
"""

from sysagent.common.exceptions import CodecError

# 'a'..'f' (97..102) <-> ':'..'?' (58..63)
_SHIFT = ord("a") - ord(":")

_ENCODE_TABLE = str.maketrans({c: chr(ord(c) - _SHIFT) for c in "abcdef"})
_DECODE_TABLE = str.maketrans({chr(ord(c) - _SHIFT): c for c in "abcdef"})

ALPHABET = frozenset("0123456789:;<=>?")


def _swap(pair: str) -> str:
    return pair[1] + pair[0]


def encode_bytes(data: bytes) -> str:
    """Pack raw bytes into the comment alphabet"""
    return "".join(
        _swap(f"{byte:02x}").translate(_ENCODE_TABLE)
        for byte in data
    )


def decode_bytes(encoded: str) -> bytes:
    """
    Unpack a comment alphabet string into raw bytes.

    Raises:
        CodecError: odd length or a character outside the alphabet
    """
    if len(encoded) % 2:
        raise CodecError(f"Encoded length {len(encoded)} is not a multiple of 2")

    for position, char in enumerate(encoded):
        if char not in ALPHABET:
            raise CodecError(f"Character {char!r} at {position} is outside the codec alphabet", position)

    return bytes(
        int(_swap(encoded[i:i + 2].translate(_DECODE_TABLE)), 16)
        for i in range(0, len(encoded), 2)
    )


def encode_comment(text: str) -> str:
    """Encode free text (as UTF-8) for the comment key"""
    return encode_bytes(text.encode("utf-8"))


def decode_comment(encoded: str) -> str:
    """
    Decode the comment key back to text.

    Comments written by the platform's own tools are one byte per
    character, so bytes that are not valid UTF-8 are read as Latin-1.
    """
    data = decode_bytes(encoded)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")
