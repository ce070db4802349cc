"""
BuildReceipt schema.

One receipt per successful build: what was requested, what the manifest
resolved it to, which toolchain compiled it, and what came out.
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from foundry import BUILDER_NAME, BUILDER_VERSION


# =============================================================================
# Toolchain Identity
# =============================================================================

class ToolchainIdentity(BaseModel):
    """Versions reported by the external toolchain probes."""
    go_version: str
    git_version: str


# =============================================================================
# Inputs
# =============================================================================

class TargetInfo(BaseModel):
    """Target platform and toolchain switches."""
    os: str
    arch: str
    cgo: bool = False
    race_detector: bool = False
    build_flags: List[str] = []


class RequestedModule(BaseModel):
    """A dependency as requested by the caller."""
    path: str
    version: str
    import_path: str  # path with the /vN suffix applied
    replace_path: Optional[str] = None
    replace_version: Optional[str] = None


class ResolvedRequirement(BaseModel):
    """A requirement pinned in the final manifest."""
    path: str
    version: str
    indirect: bool = False


class ResolvedReplacement(BaseModel):
    """A replace directive in the final manifest."""
    path: str
    version: Optional[str] = None
    replace_path: str
    replace_version: Optional[str] = None


# =============================================================================
# Artifact
# =============================================================================

class ElfMeta(BaseModel):
    """Minimal ELF metadata."""
    elf_type: str = ""  # ET_EXEC, ET_DYN, etc.
    arch: str = ""  # EM_X86_64, etc.


class ArtifactMeta(BaseModel):
    """Metadata for the produced binary."""
    sha256: str
    size_bytes: int
    elf: Optional[ElfMeta] = None  # only for linux targets


# =============================================================================
# Top-level BuildReceipt
# =============================================================================

class BuilderInfo(BaseModel):
    """Identifies the builder package."""
    name: str = BUILDER_NAME
    version: str = BUILDER_VERSION


class BuildReceipt(BaseModel):
    """Single receipt for one successful build."""
    builder: BuilderInfo = Field(default_factory=BuilderInfo)
    created_at: str  # ISO 8601
    finished_at: str
    target: TargetInfo
    toolchain: ToolchainIdentity
    base: RequestedModule
    extensions: List[RequestedModule] = []
    requirements: List[ResolvedRequirement] = []
    replacements: List[ResolvedReplacement] = []
    artifact: ArtifactMeta

    def resolved_version(self, path: str) -> Optional[str]:
        """Version the manifest pinned for ``path``, if any."""
        for req in self.requirements:
            if req.path == path:
                return req.version
        return None


# =============================================================================
# Helpers
# =============================================================================

def hash_file(path: Path) -> str:
    """SHA-256 of a file."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def now_iso() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()
