"""
Error taxonomy for foundry builds.

Every failure surfaced by a build is one of the classes below.  Errors raised
from an external command carry the logical step that failed (``step``) and
keep the original error as ``__cause__``; the tool's diagnostic text is
included in the message, never replaced.

Cancellation is not wrapped: a cancelled build raises
``asyncio.CancelledError`` like any other asyncio task.
"""
from __future__ import annotations

from typing import Optional, Sequence


class FoundryError(Exception):
    """Base class for all build errors."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step


# ── Prerequisites ────────────────────────────────────────────────────────────

class PrerequisiteError(FoundryError):
    """A required external binary is missing or not functional."""


class ToolchainNotFoundError(PrerequisiteError):
    """The ``go`` toolchain is not installed."""


class GitNotFoundError(PrerequisiteError):
    """``git`` is not installed."""


# ── Build steps ──────────────────────────────────────────────────────────────

class WorkspaceSetupError(FoundryError):
    """The temporary workspace could not be created or written."""


class ModuleInitError(FoundryError):
    """``go mod init`` failed."""


class DependencyResolutionError(FoundryError):
    """A require/replace/tidy step failed (bad version, missing module, checksum)."""


class CompilationError(FoundryError):
    """``go build`` failed."""


# ── Process level ────────────────────────────────────────────────────────────

class ProcessExecutionError(FoundryError):
    """The command could not be started or its completion could not be awaited."""


class CommandFailedError(FoundryError):
    """The command ran and exited with a non-zero status."""

    def __init__(
        self,
        command: str,
        args: Sequence[str],
        returncode: int,
        stderr: str = "",
        step: Optional[str] = None,
    ):
        self.command = command
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        cmdline = " ".join([command, *self.args_list])
        message = f"{cmdline!r} exited with status {returncode}"
        if stderr:
            message += f": {stderr}"
        super().__init__(message, step=step)


class BuildTimeoutError(FoundryError, TimeoutError):
    """A step exceeded its timeout."""


# ── Module references ────────────────────────────────────────────────────────

class InvalidModuleError(FoundryError, ValueError):
    """A dependency specification could not be parsed."""


class InvalidDependencyFormatError(InvalidModuleError):
    """The dependency string does not follow path[@version][=replace[@version]]."""


class InvalidSemanticVersionError(InvalidModuleError):
    """The version is neither 'latest' nor a valid semantic version."""


class InvalidPathError(InvalidModuleError):
    """The module path does not satisfy module path rules."""


class VersionConflictError(InvalidPathError):
    """A /vN path suffix does not match the requested major version."""
