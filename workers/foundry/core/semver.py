"""
Semantic versions as used by Go modules.

Versions carry a leading ``v``.  The shorthands ``vMAJOR`` and
``vMAJOR.MINOR`` are accepted and stand for ``vMAJOR.0.0`` and
``vMAJOR.MINOR.0``; shorthands cannot carry a prerelease or build suffix.
Canonical form is ``vMAJOR.MINOR.PATCH[-prerelease]`` (build metadata is
dropped).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

_NUM = r"0|[1-9][0-9]*"
_IDENT = r"[0-9A-Za-z-]+"

_SEMVER_RE = re.compile(
    rf"^v(?P<major>{_NUM})"
    rf"(?:\.(?P<minor>{_NUM})"
    rf"(?:\.(?P<patch>{_NUM})"
    rf"(?:-(?P<prerelease>{_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+(?P<build>{_IDENT}(?:\.{_IDENT})*))?"
    rf")?)?$"
)


@dataclass(frozen=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = ""

    def canonical(self) -> str:
        version = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        return version

    def major_str(self) -> str:
        return f"v{self.major}"


def parse(version: str) -> Optional[SemVer]:
    """Parse a version, returning None when it is not a valid semver."""
    m = _SEMVER_RE.match(version)
    if m is None:
        return None

    prerelease = m.group("prerelease") or ""
    for ident in prerelease.split(".") if prerelease else []:
        # numeric identifiers must not have leading zeros
        if ident.isdigit() and len(ident) > 1 and ident[0] == "0":
            return None

    return SemVer(
        major=int(m.group("major")),
        minor=int(m.group("minor") or 0),
        patch=int(m.group("patch") or 0),
        prerelease=prerelease,
        build=m.group("build") or "",
    )


def is_valid(version: str) -> bool:
    return parse(version) is not None


def canonical(version: str) -> str:
    """Canonical form of ``version``, or "" if it is not a valid semver."""
    sv = parse(version)
    return sv.canonical() if sv else ""


def major(version: str) -> str:
    """Major prefix (e.g. "v2") of ``version``, or "" if it is not valid."""
    sv = parse(version)
    return sv.major_str() if sv else ""
