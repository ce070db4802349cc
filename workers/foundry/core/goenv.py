"""
Build environment — the go toolchain bound to one workspace.

Owns the environment variables passed to every ``go`` invocation and exposes
one coroutine per manifest step.  Each step runs through ``run_command``
with its own timeout class:

  - init:                 fixed, short (local only)
  - require/replace/tidy: ``GoOpts.get_timeout`` (network)
  - compile:              ``GoOpts.build_timeout``

Failures are re-raised as the step's error class with the step name attached
and the tool's message kept.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, TextIO, Type

from foundry.core.module import LATEST, is_local_path
from foundry.core.platform import Platform
from foundry.core.process import GRACE_PERIOD, run_command
from foundry.errors import (
    BuildTimeoutError,
    CommandFailedError,
    CompilationError,
    DependencyResolutionError,
    FoundryError,
    ModuleInitError,
    ProcessExecutionError,
    WorkspaceSetupError,
)
from foundry.policy.options import GoOpts

logger = logging.getLogger(__name__)

GO = "go"
# module name of the generated workspace
ROOT_MODULE = "k6"
TIDY_COMPAT = "1.17"


def compose_env(
    platform: Platform,
    opts: GoOpts,
    cache_dir: Optional[str] = None,
    inherited: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Compute the environment for go commands.

    Precedence, lowest to highest: inherited environment (only when
    ``opts.copy_env``), explicit options, ephemeral cache directories.
    """
    env: Dict[str, str] = {}
    if opts.copy_env:
        env.update(os.environ if inherited is None else inherited)

    env["GOOS"] = platform.os
    env["GOARCH"] = platform.arch
    # the race detector needs cgo
    env["CGO_ENABLED"] = "1" if (opts.cgo or opts.race_detector) else "0"

    optional = {
        "GOCACHE": opts.gocache,
        "GOMODCACHE": opts.gomodcache,
        "GOPROXY": opts.goproxy,
        "GONOPROXY": opts.gonoproxy,
        "GOPRIVATE": opts.goprivate,
        "GONOSUMDB": opts.gonosumdb,
        "GOFLAGS": opts.goflags,
    }
    for key, value in optional.items():
        if value:
            env[key] = value

    if cache_dir is not None:
        env["GOCACHE"] = os.path.join(cache_dir, "gocache")
        env["GOMODCACHE"] = os.path.join(cache_dir, "gomodcache")

    return env


class BuildEnvironment:
    """
    The go toolchain bound to a workspace directory and target platform.

    The environment mapping is computed once in the constructor and is
    read-only afterwards.  Use as an async context manager (or call
    ``close``) to release an ephemeral cache.
    """

    def __init__(
        self,
        workdir: Path,
        platform: Platform,
        opts: GoOpts,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        grace_period: float = GRACE_PERIOD,
    ):
        self.workdir = Path(workdir)
        self.platform = platform
        self.opts = opts
        self.stdout = stdout
        self.stderr = stderr
        self.grace_period = grace_period

        self.cache_dir: Optional[str] = None
        if opts.ephemeral_cache:
            try:
                self.cache_dir = tempfile.mkdtemp(prefix="foundry-cache-")
            except OSError as e:
                raise WorkspaceSetupError(f"creating ephemeral cache: {e}", step="setup") from e
            logger.debug("Ephemeral go cache: %s", self.cache_dir)

        self.env: Mapping[str, str] = MappingProxyType(
            compose_env(platform, opts, self.cache_dir)
        )

    async def __aenter__(self) -> "BuildEnvironment":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ── command plumbing ─────────────────────────────────────────────────

    async def _go(
        self,
        step: str,
        error_cls: Type[FoundryError],
        timeout: float,
        *args: str,
    ) -> str:
        try:
            return await run_command(
                GO,
                args,
                env=self.env,
                cwd=str(self.workdir),
                timeout=timeout,
                stdout=self.stdout,
                stderr=self.stderr,
                grace_period=self.grace_period,
            )
        except CommandFailedError as e:
            raise error_cls(f"{step}: {e}", step=step) from e
        except ProcessExecutionError as e:
            raise ProcessExecutionError(f"{step}: {e}", step=step) from e
        except BuildTimeoutError as e:
            raise BuildTimeoutError(f"{step}: {e}", step=step) from e

    # ── manifest steps ───────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create the workspace manifest (``go mod init``)."""
        await self._go("init", ModuleInitError, self.opts.init_timeout, "mod", "init", ROOT_MODULE)

    async def add_requirement(self, path: str, version: str = "") -> None:
        """Require ``path`` at ``version`` ("" means latest)."""
        mod = f"{path}@{version or LATEST}"
        await self._go(
            "require", DependencyResolutionError, self.opts.get_timeout,
            "mod", "edit", "-require", mod,
        )

    async def add_replacement(
        self,
        path: str,
        version: str,
        replace_path: str,
        replace_version: str = "",
    ) -> None:
        """
        Replace ``path[@version]`` with ``replace_path[@replace_version]``.

        Environment variables in ``replace_path`` are expanded.  Relative
        local paths are made absolute against the caller's working directory,
        since go.mod resolves them against the workspace instead.
        """
        replace_path = os.path.expanduser(os.path.expandvars(replace_path))
        if is_local_path(replace_path):
            replace_path = os.path.abspath(replace_path)

        old = f"{path}@{version}" if version else path
        new = f"{replace_path}@{replace_version}" if replace_version else replace_path

        await self._go(
            "replace", DependencyResolutionError, self.opts.get_timeout,
            "mod", "edit", "-replace", f"{old}={new}",
        )

    async def tidy(self) -> None:
        """Resolve and pin floating versions (``go mod tidy``)."""
        await self._go(
            "tidy", DependencyResolutionError, self.opts.get_timeout,
            "mod", "tidy", f"-compat={TIDY_COMPAT}",
        )

    async def compile(self, output_path: Path, *build_flags: str) -> None:
        """Build the workspace into ``output_path``."""
        args = ["build", "-o", str(output_path), "-trimpath"]
        if self.opts.race_detector:
            args.append("-race")
        args.extend(build_flags)
        await self._go("compile", CompilationError, self.opts.build_timeout, *args)

    # ── cleanup ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Discard the ephemeral cache, if any."""
        if self.cache_dir is None:
            return

        cache_dir, self.cache_dir = self.cache_dir, None
        # module cache files are read-only; let go remove them
        try:
            await run_command(
                GO,
                ["clean", "-cache", "-modcache"],
                env=self.env,
                cwd=str(self.workdir) if self.workdir.is_dir() else None,
                timeout=self.opts.get_timeout,
                grace_period=self.grace_period,
            )
        except FoundryError as e:
            logger.warning("Cleaning ephemeral cache %s failed: %s", cache_dir, e)

        try:
            shutil.rmtree(cache_dir)
        except OSError as e:
            logger.warning("Removing ephemeral cache %s failed: %s", cache_dir, e)
