"""
Builder options — every knob of a build in one immutable place.

The builder and the build environment read options only; they never reach
into process-wide state (environment, loggers, stdio) on their own.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, TextIO

from foundry.config import FoundrySettings

DEFAULT_BASE_MODULE = "go.k6.io/k6"

# go mod init is local and fast
INIT_TIMEOUT = 10.0


@dataclass(frozen=True)
class GoOpts:
    """Options for the go build environment."""

    # Copy this process' environment into the go environment.
    # Explicit options below always override copied values.
    copy_env: bool = False
    cgo: bool = False
    # Instrument the binary with the race detector (forces cgo on)
    race_detector: bool = False

    gocache: Optional[str] = None
    gomodcache: Optional[str] = None
    goproxy: Optional[str] = None
    gonoproxy: Optional[str] = None
    goprivate: Optional[str] = None
    gonosumdb: Optional[str] = None
    goflags: Optional[str] = None

    # Allocate a private GOCACHE/GOMODCACHE for the build and discard it
    # afterwards.  Wins over gocache/gomodcache and copied values.
    ephemeral_cache: bool = False

    # Seconds; 0 disables the timeout
    get_timeout: float = 300.0
    build_timeout: float = 600.0
    init_timeout: float = INIT_TIMEOUT


@dataclass(frozen=True)
class NativeBuilderOpts:
    """Options for the native builder."""

    go: GoOpts = field(default_factory=GoOpts)

    base_module: str = DEFAULT_BASE_MODULE
    # Local checkout (or alternate module) that replaces the base module
    base_replace: Optional[str] = None

    # Parent directory for workspaces; None uses the system temp dir
    workdir_root: Optional[str] = None
    # Keep the workspace after the build (debugging)
    skip_cleanup: bool = False

    # Where build progress is logged
    logger: Optional[logging.Logger] = None
    # Sinks for the toolchain's own output (verbose builds)
    stdout: Optional[TextIO] = None
    stderr: Optional[TextIO] = None

    @classmethod
    def from_settings(cls, settings: Optional[FoundrySettings] = None, **overrides) -> "NativeBuilderOpts":
        """Build options from FOUNDRY_* settings, then apply ``overrides``."""
        if settings is None:
            settings = FoundrySettings()

        go = GoOpts(
            copy_env=settings.COPY_ENV,
            cgo=settings.CGO,
            race_detector=settings.RACE_DETECTOR,
            gocache=settings.GOCACHE,
            gomodcache=settings.GOMODCACHE,
            goproxy=settings.GOPROXY,
            gonoproxy=settings.GONOPROXY,
            goprivate=settings.GOPRIVATE,
            gonosumdb=settings.GONOSUMDB,
            goflags=settings.GOFLAGS,
            ephemeral_cache=settings.EPHEMERAL_CACHE,
            get_timeout=settings.GET_TIMEOUT,
            build_timeout=settings.BUILD_TIMEOUT,
        )
        values = dict(
            go=go,
            base_module=settings.BASE_MODULE,
            base_replace=settings.BASE_REPLACE,
            workdir_root=settings.WORKDIR_ROOT,
            skip_cleanup=settings.SKIP_CLEANUP,
        )
        values.update(overrides)
        return cls(**values)
