# codec.py
"""
Numeric text codec used in notification emails.

ASCII letters map to their alphabet position (A=1 ... Z=26, case-insensitive), a
space maps to 0 and any other character to its code point; tokens are joined
with "-". Lower-case ASCII letters come back upper-cased, so
decode(encode(x)) == x holds for text without them.
"""
from typing import List

SEPARATOR = "-"


def _token(char: str) -> str:
    if char == " ":
        return "0"
    if "a" <= char <= "z":
        char = char.upper()
    if "A" <= char <= "Z":
        return str(ord(char) - 64)
    return str(ord(char))


def tokens(text: str) -> List[str]:
    return [_token(char) for char in text]


def encode(text: str) -> str:
    return SEPARATOR.join(tokens(text))


def decode(encoded: str) -> str:
    """Reverse of encode. Raises ValueError on non-numeric or out-of-range tokens."""
    if encoded == "":
        return ""
    out = []
    for part in encoded.split(SEPARATOR):
        n = int(part)
        if n == 0:
            out.append(" ")
        elif 1 <= n <= 26:
            out.append(chr(n + 64))
        else:
            out.append(chr(n))
    return "".join(out)
