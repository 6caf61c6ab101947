from __future__ import annotations

SHORTCODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

_INDEX = {char: i for i, char in enumerate(SHORTCODE_ALPHABET)}
_BASE = len(SHORTCODE_ALPHABET)


def decode_shortcode(short_code: str) -> str | None:
    """
    Convert a post shortcode to its numeric media id (as a decimal string).

    Returns None when any character is outside the alphabet; never a partial id.
    """
    if not short_code:
        return None

    media_id = 0
    for char in short_code:
        index = _INDEX.get(char)
        if index is None:
            return None
        media_id = media_id * _BASE + index
    return str(media_id)


def encode_media_id(media_id: int | str) -> str | None:
    if isinstance(media_id, bool):
        return None
    if isinstance(media_id, str):
        digits = media_id.strip()
        if not digits.isdigit() or not digits.isascii():
            return None
        value = int(digits)
    elif isinstance(media_id, int):
        value = media_id
    else:
        return None

    if value < 0:
        return None
    if value == 0:
        return SHORTCODE_ALPHABET[0]

    chars: list[str] = []
    while value:
        value, rem = divmod(value, _BASE)
        chars.append(SHORTCODE_ALPHABET[rem])
    return "".join(reversed(chars))
