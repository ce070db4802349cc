"""
Module path syntax checks.

Mirrors the rules the Go toolchain applies to module paths (``go mod edit``
would reject anything that fails here):

  - non-empty, no leading dash, no ``//``, no trailing slash
  - every element non-empty, not all dots, no leading/trailing dot,
    characters limited to ASCII letters, digits and ``-._~``
  - no Windows reserved names, no ``~<digits>`` short-name suffix
  - the first element contains a dot and only lowercase letters, digits,
    ``-`` and ``.``
  - a trailing major-version element ``/vN`` has N >= 2, no leading zero
"""
from __future__ import annotations

from typing import Tuple

from foundry.errors import InvalidPathError

_ELEM_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "0123456789"
    "-._~"
)
_FIRST_ELEM_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz0123456789-.")

_BAD_WINDOWS_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)


def _check_elem(elem: str, path: str) -> None:
    if elem == "":
        raise InvalidPathError(f"malformed module path {path!r}: empty path element")
    if elem.count(".") == len(elem):
        raise InvalidPathError(f"malformed module path {path!r}: invalid path element {elem!r}")
    if elem[0] == ".":
        raise InvalidPathError(f"malformed module path {path!r}: leading dot in path element")
    if elem[-1] == ".":
        raise InvalidPathError(f"malformed module path {path!r}: trailing dot in path element")
    for ch in elem:
        if ch not in _ELEM_CHARS:
            raise InvalidPathError(f"malformed module path {path!r}: invalid char {ch!r}")

    short = elem.split(".", 1)[0]
    if short.upper() in _BAD_WINDOWS_NAMES:
        raise InvalidPathError(f"malformed module path {path!r}: {short!r} disallowed as path element component")
    tilde = short.rfind("~")
    if 0 <= tilde < len(short) - 1 and short[tilde + 1:].isdigit():
        raise InvalidPathError(f"malformed module path {path!r}: trailing tilde and digits in path element")


def split_path_version(path: str) -> Tuple[str, str, bool]:
    """
    Split ``path`` into (prefix, path_major, ok).

    ``path_major`` is the trailing ``/vN`` element, if any.  ``ok`` is False
    when that element is malformed (``/v0``, ``/v1``, ``/v01``, ``/v2.1``).
    """
    i = len(path)
    dot = False
    while i > 0 and (path[i - 1].isdigit() or path[i - 1] == "."):
        if path[i - 1] == ".":
            dot = True
        i -= 1

    if i <= 1 or i == len(path) or path[i - 1] != "v" or path[i - 2] != "/":
        return path, "", True

    prefix, path_major = path[: i - 2], path[i - 2:]
    if dot or len(path_major) <= 2 or path_major[2] == "0" or path_major == "/v1":
        return path, "", False
    return prefix, path_major, True


def check_path(path: str) -> None:
    """Raise InvalidPathError if ``path`` is not a valid module path."""
    if path == "":
        raise InvalidPathError("malformed module path: empty string")
    if not path.isascii():
        raise InvalidPathError(f"malformed module path {path!r}: invalid characters")
    if path[0] == "-":
        raise InvalidPathError(f"malformed module path {path!r}: leading dash")
    if "//" in path:
        raise InvalidPathError(f"malformed module path {path!r}: double slash")
    if path[-1] == "/":
        raise InvalidPathError(f"malformed module path {path!r}: trailing slash")

    for elem in path.split("/"):
        _check_elem(elem, path)

    first = path.split("/", 1)[0]
    if "." not in first:
        raise InvalidPathError(f"malformed module path {path!r}: missing dot in first path element")
    for ch in first:
        if ch not in _FIRST_ELEM_CHARS:
            raise InvalidPathError(f"malformed module path {path!r}: invalid char {ch!r} in first path element")

    _, _, ok = split_path_version(path)
    if not ok:
        raise InvalidPathError(f"malformed module path {path!r}: invalid version")
