"""
Target platform (GOOS/GOARCH pair).
"""
from __future__ import annotations

import platform as _platform
import sys
from dataclasses import dataclass

from foundry.errors import FoundryError


class InvalidPlatformError(FoundryError, ValueError):
    """The platform string is not of the form os/arch."""


# Python's view of the host → Go's names
_GOOS = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
    "cygwin": "windows",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
    "netbsd": "netbsd",
}

_GOARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


@dataclass(frozen=True)
class Platform:
    os: str
    arch: str

    @classmethod
    def parse(cls, text: str) -> "Platform":
        """Parse ``os/arch`` (e.g. ``linux/amd64``)."""
        goos, sep, goarch = text.partition("/")
        if not sep or not goos or not goarch or "/" in goarch:
            raise InvalidPlatformError(f"invalid platform {text!r}: expected os/arch")
        return cls(os=goos, arch=goarch)

    @classmethod
    def runtime(cls) -> "Platform":
        """The platform this process runs on."""
        goos = next(
            (v for k, v in _GOOS.items() if sys.platform.startswith(k)),
            sys.platform,
        )
        machine = _platform.machine().lower()
        return cls(os=goos, arch=_GOARCH.get(machine, machine))

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"
