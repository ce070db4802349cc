"""
Module references — one build dependency.

A dependency is written as::

    path[@version][=replace_path[@replace_version]]

Examples::

    github.com/grafana/xk6-kubernetes
    github.com/grafana/xk6-output-kafka@v0.7.0
    github.com/grafana/xk6-kubernetes=../xk6-kubernetes
    github.com/grafana/xk6-sql=github.com/me/xk6-sql@v0.4.1

If version is omitted ``latest`` is used.  A local replacement (a filesystem
path) cannot carry a replacement version.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Tuple

from foundry.core import semver
from foundry.core.module_path import check_path
from foundry.errors import (
    InvalidDependencyFormatError,
    InvalidPathError,
    InvalidSemanticVersionError,
    VersionConflictError,
)

LATEST = "latest"

_VERSIONED_PATH_RE = re.compile(r"^.+/(v\d+)$")


def normalize_version(version: str) -> str:
    """
    Normalize a requested version.

    "" → "latest"; "latest" passes through; anything else must be a valid
    semver and is returned in canonical form (``v1.2`` → ``v1.2.0``).
    """
    if version in ("", LATEST):
        return LATEST
    canon = semver.canonical(version)
    if not canon:
        raise InvalidSemanticVersionError(f"invalid dependency version: {version!r}")
    return canon


def is_local_path(path: str) -> bool:
    """
    True if a replacement path refers to the filesystem, not a module.

    Paths starting with an environment variable or ``~`` are local; they are
    expanded when the replacement is applied.
    """
    return path.startswith((".", "$", "~")) or os.path.isabs(path)


def _is_module_path(path: str) -> bool:
    if is_local_path(path):
        return False
    try:
        check_path(path)
    except InvalidPathError:
        return False
    return True


def versioned_path(path: str, version: str) -> str:
    """
    Return ``path`` with the major version suffix required by ``version``.

    - path="foo",    version="v1.0.0" → "foo"
    - path="foo",    version="v2.0.0" → "foo/v2"
    - path="foo/v2", version="v2.1.0" → "foo/v2"
    - path="foo/v2", version="v3.0.0" → VersionConflictError
    - path="foo",    version="latest" → "foo"
    """
    # not a semantic version (e.g. 'latest' or a commit hash): nothing to infer
    major = semver.major(version)
    if not major:
        return path

    m = _VERSIONED_PATH_RE.match(path)
    if m:
        if m.group(1) != major:
            raise VersionConflictError(
                f"versioned path {path!r} conflicts with requested major version {major}"
            )
        return path

    if major in ("v0", "v1"):
        return path
    return f"{path}/{major}"


def _split_version(text: str, spec: str) -> Tuple[str, str]:
    path, sep, version = text.partition("@")
    if sep and (path == "" or version == ""):
        raise InvalidDependencyFormatError(f"invalid dependency format: {spec!r}")
    return path, version


@dataclass(frozen=True)
class Module:
    """A parsed (path, version, optional replacement) dependency."""

    path: str
    version: str = LATEST
    replace_path: str = ""
    replace_version: str = ""

    @classmethod
    def parse(cls, spec: str) -> "Module":
        """Parse ``path[@version][=replace_path[@replace_version]]``."""
        dependency, has_replace, replace = spec.partition("=")
        if has_replace and replace == "":
            raise InvalidDependencyFormatError(f"invalid dependency format: {spec!r}")

        path, version = _split_version(dependency, spec)
        if path == "":
            raise InvalidDependencyFormatError(f"invalid dependency format: {spec!r}")

        replace_path, replace_version = _split_version(replace, spec)

        # only a module replacement may carry a version
        if replace_version and not _is_module_path(replace_path):
            raise InvalidDependencyFormatError(
                f"invalid dependency format: local replacement cannot have a version: {spec!r}"
            )

        version = normalize_version(version)

        try:
            check_path(path)
            versioned_path(path, version)
        except InvalidPathError as e:
            raise type(e)(f"invalid dependency path: {spec!r}: {e}") from e

        if replace_path and not is_local_path(replace_path):
            try:
                check_path(replace_path)
            except InvalidPathError as e:
                raise InvalidPathError(f"invalid replacement path: {spec!r}: {e}") from e

        if replace_version:
            replace_version = semver.canonical(replace_version)
            if not replace_version:
                raise InvalidSemanticVersionError(f"invalid replacement version: {spec!r}")

        return cls(
            path=path,
            version=version,
            replace_path=replace_path,
            replace_version=replace_version,
        )

    @property
    def is_replaced(self) -> bool:
        return self.replace_path != ""

    def versioned_path(self) -> str:
        """Import path including the /vN suffix required by the version."""
        return versioned_path(self.path, self.version)

    def __str__(self) -> str:
        text = f"{self.path}@{self.version}"
        if self.replace_path:
            text += f"={self.replace_path}"
            if self.replace_version:
                text += f"@{self.replace_version}"
        return text
