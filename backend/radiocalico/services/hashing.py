"""
Song key hashing, shared with the browser player.

The player derives song keys client-side, so the server has to produce the
exact same tokens: a 32-bit rolling `h * 31 + c` hash over UTF-16 code units,
rendered as the absolute value in base 36. Not collision resistant, only stable.
"""
from typing import Iterator

from radiocalico.errors import InvalidArgument

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_UINT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _utf16_units(value: str) -> Iterator[int]:
    data = value.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def hash_string(value: str) -> str:
    """
    Hash a string into a short base36 token.

    Args:
        value: Any string (empty allowed)

    Returns:
        Lowercase alphanumeric token, "0" for the empty string

    Raises:
        InvalidArgument: value is not a string
    """
    if not isinstance(value, str):
        raise InvalidArgument("hash_string expects a string input")

    h = 0
    for unit in _utf16_units(value):
        h = (h * 31 + unit) & _UINT32_MASK
    # Reinterpret as signed int32 before taking the magnitude
    if h & _INT32_SIGN:
        h -= _UINT32_MASK + 1
    return _to_base36(abs(h))


def song_hash(artist: str, title: str, album: str | None = None) -> str:
    """
    Derive the external song key from track metadata.

    A missing album hashes like an empty one, so "A_T_" is the input for a
    track without album whether the client sent null, "" or nothing.
    """
    for name, value in (("artist", artist), ("title", title)):
        if not isinstance(value, str) or not value:
            raise InvalidArgument(f"song_hash requires a non-empty {name}")
    if album is not None and not isinstance(album, str):
        raise InvalidArgument("album must be a string when given")

    return hash_string(f"{artist}_{title}_{album or ''}".lower())
