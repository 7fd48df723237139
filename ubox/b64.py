"""Base64 encoding and strict decoding.

Decoding skips whitespace anywhere in the input, insists on correct
padding and rejects encodings whose unused trailing bits are not zero.
"""

from __future__ import annotations

import base64

__all__ = ["Base64Error", "encode", "decode"]

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_VALUES = {ch: value for value, ch in enumerate(_ALPHABET)}
_PAD = "="
_SPACE = " \t\n\v\f\r"


class Base64Error(ValueError):
    """Raised when a string is not valid base64."""


def encode(data: bytes | bytearray | memoryview) -> str:
    """Encode bytes as padded base64 text."""
    return base64.b64encode(bytes(data)).decode("ascii")


def decode(text: str | bytes | bytearray) -> bytes:
    """Decode base64 text, ignoring whitespace.

    Raises :class:`Base64Error` on characters outside the alphabet, on
    misplaced or missing padding, on trailing garbage and on non-zero
    left-over bits.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("latin-1")
    text = text.split("\0", 1)[0]

    out = bytearray()
    state = 0
    residual = 0
    chars = iter(text)
    padded = False

    for ch in chars:
        if ch in _SPACE:
            continue
        if ch == _PAD:
            padded = True
            break
        value = _VALUES.get(ch)
        if value is None:
            raise Base64Error(f"invalid base64 character {ch!r}")

        if state == 0:
            residual = value << 2
            state = 1
        elif state == 1:
            out.append(residual | (value >> 4))
            residual = (value & 0x0F) << 4
            state = 2
        elif state == 2:
            out.append(residual | (value >> 2))
            residual = (value & 0x03) << 6
            state = 3
        else:
            out.append(residual | value)
            residual = 0
            state = 0

    if not padded:
        if state != 0:
            raise Base64Error("truncated base64 input")
        return bytes(out)

    if state in (0, 1):
        raise Base64Error("misplaced padding")

    rest = "".join(chars)
    if state == 2:
        rest = rest.lstrip(_SPACE)
        if not rest.startswith(_PAD):
            raise Base64Error("missing second padding character")
        rest = rest[1:]

    if rest.strip(_SPACE):
        raise Base64Error("trailing characters after padding")
    if residual:
        raise Base64Error("non-zero trailing bits")
    return bytes(out)