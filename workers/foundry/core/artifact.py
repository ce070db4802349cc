"""
Artifact inspection — hash and (for linux targets) ELF header checks.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from elftools.elf.elffile import ELFFile

from foundry.core.platform import Platform
from foundry.io.receipt import ArtifactMeta, ElfMeta, hash_file

logger = logging.getLogger(__name__)

# GOARCH → e_machine
_ELF_MACHINES = {
    "amd64": "EM_X86_64",
    "386": "EM_386",
    "arm64": "EM_AARCH64",
    "arm": "EM_ARM",
    "ppc64le": "EM_PPC64",
    "s390x": "EM_S390",
    "riscv64": "EM_RISCV",
}


def read_elf_meta(path: Path) -> Optional[ElfMeta]:
    """ELF type and machine of ``path``, or None if it is not an ELF file."""
    try:
        with open(path, "rb") as f:
            elf = ELFFile(f)
            return ElfMeta(
                elf_type=elf.header["e_type"],
                arch=elf.header["e_machine"],
            )
    except Exception as e:
        logger.warning("ELF validation failed for %s: %s", path, e)
        return None


def inspect_artifact(path: Path, platform: Platform) -> ArtifactMeta:
    """Describe the compiled binary."""
    elf = None
    if platform.os == "linux":
        elf = read_elf_meta(path)
        expected = _ELF_MACHINES.get(platform.arch)
        if elf is not None and expected and elf.arch != expected:
            logger.warning(
                "Binary machine %s does not match target %s", elf.arch, platform
            )

    return ArtifactMeta(
        sha256=hash_file(path),
        size_bytes=path.stat().st_size,
        elf=elf,
    )
