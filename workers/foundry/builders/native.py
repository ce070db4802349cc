"""
Native builder — build a custom binary with the locally installed go toolchain.

Sequence for one build (aborts on the first error, cleanup always runs):

  1. create a temporary workspace
  2. bind a BuildEnvironment to it
  3. go mod init
  4. write main.go calling the base program's cmd.Execute()
  5. require (or replace) the base program, tidy
  6. per extension: write a blank-import file, require (or replace), tidy
  7. go build into the workspace
  8. copy the binary to the caller's sink

Tidy runs after every manifest edit so that floating versions ("latest")
are pinned before the next edit is made.
"""
from __future__ import annotations

import logging
import shutil
import tempfile
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from foundry.builders.base import Builder
from foundry.core import sources
from foundry.core.artifact import inspect_artifact
from foundry.core.goenv import BuildEnvironment
from foundry.core.module import LATEST, Module, normalize_version
from foundry.core.platform import Platform
from foundry.core.toolchain import check_toolchain, git_version, go_version
from foundry.errors import (
    CompilationError,
    DependencyResolutionError,
    FoundryError,
    VersionConflictError,
    WorkspaceSetupError,
)
from foundry.io.manifest import read_manifest
from foundry.io.receipt import (
    BuildReceipt,
    RequestedModule,
    TargetInfo,
    ToolchainIdentity,
    now_iso,
)
from foundry.policy.options import NativeBuilderOpts

logger = logging.getLogger(__name__)

WORKDIR_PREFIX = "foundry-"
BINARY_NAME = "k6"


class BuildState(str, Enum):
    """Progress of a single build."""
    CREATED = "CREATED"
    WORKSPACE_READY = "WORKSPACE_READY"
    MODULE_INITIALIZED = "MODULE_INITIALIZED"
    BASE_ADDED = "BASE_ADDED"
    EXTENSION_ADDED = "EXTENSION_ADDED"
    COMPILED = "COMPILED"
    DONE = "DONE"
    FAILED = "FAILED"


def _requested(mod: Module, import_path: str) -> RequestedModule:
    return RequestedModule(
        path=mod.path,
        version=mod.version,
        import_path=import_path,
        replace_path=mod.replace_path or None,
        replace_version=mod.replace_version or None,
    )


class _BuildRun:
    """State of one build; never shared between builds."""

    def __init__(self, builder: "NativeBuilder", platform: Platform):
        self.opts = builder.opts
        self.log = builder.log
        self.platform = platform
        self.state = BuildState.CREATED
        self.workdir: Optional[Path] = None

    def advance(self, state: BuildState) -> None:
        self.log.debug("Build state %s -> %s", self.state.value, state.value)
        self.state = state

    # ── workspace ────────────────────────────────────────────────────────

    def create_workspace(self) -> Path:
        try:
            workdir = tempfile.mkdtemp(prefix=WORKDIR_PREFIX, dir=self.opts.workdir_root)
        except OSError as e:
            raise WorkspaceSetupError(f"creating working directory: {e}", step="workspace") from e
        self.workdir = Path(workdir)
        self.log.info("Working directory: %s", self.workdir)
        self.advance(BuildState.WORKSPACE_READY)
        return self.workdir

    def cleanup(self) -> None:
        if self.workdir is None:
            return
        if self.opts.skip_cleanup:
            self.log.info("Skipping cleanup; leaving folder intact: %s", self.workdir)
            return
        self.log.info("Cleaning up work directory: %s", self.workdir)
        try:
            shutil.rmtree(self.workdir)
        except OSError as e:
            self.log.warning("Removing %s failed: %s", self.workdir, e)

    def write_source(self, write, *args) -> Path:
        try:
            return write(self.workdir, *args)
        except OSError as e:
            raise WorkspaceSetupError(f"writing file: {e}", step="workspace") from e

    # ── manifest ─────────────────────────────────────────────────────────

    @staticmethod
    def import_path(mod: Module) -> str:
        try:
            return mod.versioned_path()
        except VersionConflictError as e:
            raise DependencyResolutionError(f"resolving {mod}: {e}", step="resolve") from e

    async def add_module(self, env: BuildEnvironment, mod: Module, import_path: str) -> None:
        if mod.is_replaced:
            # a floating version cannot be the left side of a replace
            version = "" if mod.version == LATEST else mod.version
            await env.add_replacement(import_path, version, mod.replace_path, mod.replace_version)
        else:
            await env.add_requirement(import_path, mod.version)
        await env.tidy()


class NativeBuilder(Builder):
    """Builder that drives the installed go toolchain.

    The toolchain is checked when the builder is created, so a missing
    ``go`` or ``git`` fails before any workspace exists.
    """

    def __init__(
        self,
        opts: Optional[NativeBuilderOpts] = None,
        toolchain: Optional[ToolchainIdentity] = None,
    ):
        self.opts = opts or NativeBuilderOpts()
        self.log = self.opts.logger or logger
        self.toolchain = toolchain or check_toolchain()

    @staticmethod
    def is_available() -> bool:
        return go_version() is not None and git_version() is not None

    def base_module(self, base_version: str) -> Module:
        """The base program as a module reference."""
        return Module(
            path=self.opts.base_module,
            version=normalize_version(base_version),
            replace_path=self.opts.base_replace or "",
        )

    async def build(
        self,
        platform: Platform,
        base_version: str,
        extensions: Sequence[Module],
        build_flags: Sequence[str],
        out: BinaryIO,
    ) -> BuildReceipt:
        created_at = now_iso()
        run = _BuildRun(self, platform)
        base = self.base_module(base_version)

        self.log.info("Building new binary (native) for %s", platform)
        try:
            workdir = run.create_workspace()
            try:
                env = BuildEnvironment(
                    workdir,
                    platform,
                    self.opts.go,
                    stdout=self.opts.stdout,
                    stderr=self.opts.stderr,
                )
                async with env:
                    receipt = await self._build_in(
                        run, env, base, extensions, build_flags, out, created_at
                    )
            finally:
                run.cleanup()
        except BaseException:
            self.log.info("Build failed in state %s", run.state.value)
            run.advance(BuildState.FAILED)
            raise

        run.advance(BuildState.DONE)
        return receipt

    async def _build_in(
        self,
        run: _BuildRun,
        env: BuildEnvironment,
        base: Module,
        extensions: Sequence[Module],
        build_flags: Sequence[str],
        out: BinaryIO,
        created_at: str,
    ) -> BuildReceipt:
        workdir = env.workdir

        self.log.info("Initializing Go module")
        await env.initialize()
        run.advance(BuildState.MODULE_INITIALIZED)

        base_path = run.import_path(base)
        self.log.info("Creating main for %s", base)
        run.write_source(sources.write_main, base_path)
        await run.add_module(env, base, base_path)
        run.advance(BuildState.BASE_ADDED)

        requested: List[RequestedModule] = []
        for mod in extensions:
            import_path = run.import_path(mod)
            self.log.info("Adding dependency %s", mod)
            run.write_source(sources.write_import, import_path)
            await run.add_module(env, mod, import_path)
            requested.append(_requested(mod, import_path))
            run.advance(BuildState.EXTENSION_ADDED)

        self.log.info("Building binary")
        binary = workdir / BINARY_NAME
        await env.compile(binary, *build_flags)
        run.advance(BuildState.COMPILED)

        try:
            manifest = read_manifest(workdir / "go.mod")
        except OSError as e:
            raise FoundryError(f"reading go.mod: {e}", step="output") from e
        try:
            bin_file = open(binary, "rb")
        except OSError as e:
            raise CompilationError(f"opening compiled binary: {e}", step="compile") from e
        with bin_file:
            try:
                artifact = inspect_artifact(binary, run.platform)
            except OSError as e:
                raise FoundryError(f"inspecting binary: {e}", step="output") from e
            try:
                shutil.copyfileobj(bin_file, out)
            except OSError as e:
                raise FoundryError(f"copying binary: {e}", step="output") from e

        self.log.info("Build complete")

        return BuildReceipt(
            created_at=created_at,
            finished_at=now_iso(),
            target=TargetInfo(
                os=run.platform.os,
                arch=run.platform.arch,
                cgo=env.env.get("CGO_ENABLED") == "1",
                race_detector=self.opts.go.race_detector,
                build_flags=list(build_flags),
            ),
            toolchain=self.toolchain,
            base=_requested(base, base_path),
            extensions=requested,
            requirements=manifest.requirements,
            replacements=manifest.replacements,
            artifact=artifact,
        )


__all__ = ["BuildState", "NativeBuilder"]
