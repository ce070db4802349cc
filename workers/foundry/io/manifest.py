"""
Manifest reader — extract require/replace directives from a go.mod file.

Only reads what the receipt needs; all edits go through the toolchain.
"""
from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from foundry.io.receipt import ResolvedReplacement, ResolvedRequirement


@dataclass
class Manifest:
    module: str = ""
    go_version: str = ""
    requirements: List[ResolvedRequirement] = field(default_factory=list)
    replacements: List[ResolvedReplacement] = field(default_factory=list)

    def requirement(self, path: str) -> Optional[ResolvedRequirement]:
        for req in self.requirements:
            if req.path == path:
                return req
        return None


def _tokens(line: str) -> List[str]:
    """Split a directive line into tokens, dropping comments."""
    indirect = False
    code, sep, comment = line.partition("//")
    if sep and comment.strip() == "indirect":
        indirect = True
    try:
        toks = shlex.split(code, posix=True)
    except ValueError:
        toks = code.split()
    if indirect:
        toks.append("//indirect")
    return toks


def _parse_require(toks: List[str], manifest: Manifest) -> None:
    if len(toks) < 2:
        return
    manifest.requirements.append(
        ResolvedRequirement(
            path=toks[0],
            version=toks[1],
            indirect="//indirect" in toks[2:],
        )
    )


def _parse_replace(toks: List[str], manifest: Manifest) -> None:
    if "=>" not in toks:
        return
    arrow = toks.index("=>")
    old, new = toks[:arrow], toks[arrow + 1:]
    if not old or not new:
        return
    manifest.replacements.append(
        ResolvedReplacement(
            path=old[0],
            version=old[1] if len(old) > 1 else None,
            replace_path=new[0],
            replace_version=new[1] if len(new) > 1 else None,
        )
    )


def parse_manifest(text: str) -> Manifest:
    """Parse go.mod text."""
    manifest = Manifest()
    block: Optional[str] = None

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("//"):
            continue

        if block is not None:
            if line == ")":
                block = None
                continue
            toks = _tokens(line)
            if block == "require":
                _parse_require(toks, manifest)
            elif block == "replace":
                _parse_replace(toks, manifest)
            continue

        toks = _tokens(line)
        if not toks:
            continue
        verb, rest = toks[0], toks[1:]

        if rest == ["("]:
            block = verb
        elif verb == "module" and rest:
            manifest.module = rest[0]
        elif verb == "go" and rest:
            manifest.go_version = rest[0]
        elif verb == "require":
            _parse_require(rest, manifest)
        elif verb == "replace":
            _parse_replace(rest, manifest)

    return manifest


def read_manifest(path: Path) -> Manifest:
    return parse_manifest(path.read_text())
