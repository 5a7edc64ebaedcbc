"""Percent-escaping of repository URLs into mirror directory names."""

from __future__ import annotations

import string

__all__ = ["escape_url", "unescape_name", "SAFE_CHARS"]

SAFE_CHARS = frozenset(string.ascii_letters + string.digits + "-_")


def escape_url(url: str) -> str:
    """Map a repository URL to a single, filesystem-safe path segment.

    Letters, digits, ``-`` and ``_`` are kept, a space becomes ``+`` and
    every other character is written as the ``%XX`` form of its UTF-8 bytes.
    The result never contains a separator or a dot.

    Example:
        >>> escape_url("https://example.com/repo.git")
        'https%3A%2F%2Fexample%2Ecom%2Frepo%2Egit'
    """
    out: list[str] = []
    for char in url:
        if char in SAFE_CHARS:
            out.append(char)
        elif char == " ":
            out.append("+")
        else:
            out.extend(f"%{byte:02X}" for byte in char.encode("utf-8"))
    return "".join(out)


def unescape_name(name: str) -> str:
    """Inverse of :func:`escape_url`.

    Raises:
        ValueError: If ``name`` is not something :func:`escape_url` produces.
    """
    raw = bytearray()
    i = 0
    while i < len(name):
        char = name[i]
        if char == "%":
            digits = name[i + 1 : i + 3]
            if len(digits) != 2 or not all(d in string.hexdigits for d in digits):
                raise ValueError(f"Invalid escape at position {i} in {name!r}")
            raw.append(int(digits, 16))
            i += 3
            continue
        if char == "+":
            raw.extend(b" ")
        elif char in SAFE_CHARS:
            raw.extend(char.encode("ascii"))
        else:
            raise ValueError(f"Unexpected character {char!r} in {name!r}")
        i += 1
    url = raw.decode("utf-8")
    if escape_url(url) != name:
        raise ValueError(f"{name!r} is not in canonical escaped form")
    return url
