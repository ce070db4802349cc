"""
Toolchain discovery — verify ``go`` and ``git`` before any build.

Both binaries must be on PATH and answer a ``version`` probe.  The probe
results are recorded in the build receipt.
"""
from __future__ import annotations

import logging
import shutil
import subprocess
from typing import List, Optional

from foundry.errors import GitNotFoundError, ToolchainNotFoundError
from foundry.io.receipt import ToolchainIdentity

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 10


def _probe(binary: str, args: List[str]) -> Optional[str]:
    """Run ``binary args`` and return its stdout, or None if unusable."""
    path = shutil.which(binary)
    if path is None:
        return None
    try:
        r = subprocess.run(
            [path, *args],
            capture_output=True,
            text=True,
            timeout=PROBE_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("%s version probe failed: %s", binary, e)
        return None
    if r.returncode != 0:
        return None
    return r.stdout.strip()


def parse_go_version(output: str) -> Optional[str]:
    """
    Extract the version from ``go version`` output.

    ``go version go1.22.2 linux/amd64`` → ``1.22.2``
    """
    fields = output.split(" ", 3)
    if len(fields) < 4 or fields[0] != "go" or not fields[2].startswith("go"):
        return None
    return fields[2][len("go"):]


def go_version() -> Optional[str]:
    out = _probe("go", ["version"])
    if out is None:
        return None
    return parse_go_version(out)


def git_version() -> Optional[str]:
    out = _probe("git", ["version"])
    if out is None:
        return None
    return out.splitlines()[0] if out else "unknown"


def check_toolchain() -> ToolchainIdentity:
    """
    Verify the external toolchain is usable.

    Raises
    ------
    ToolchainNotFoundError
        ``go`` is missing or ``go version`` does not answer.
    GitNotFoundError
        ``git`` is missing or ``git version`` does not answer.
    """
    go = go_version()
    if go is None:
        raise ToolchainNotFoundError("go toolchain not found")

    git = git_version()
    if git is None:
        raise GitNotFoundError("git not found")

    logger.debug("Toolchain: go %s, %s", go, git)
    return ToolchainIdentity(go_version=go, git_version=git)
