"""
Builder Router — custom binary builds.

One request builds one binary and streams it back.  Builds run in the
request's task, so a client disconnect cancels the build and its go
processes.
"""
import io
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from app.config import Settings
from foundry.builders import Builder, available_builders, new_builder
from foundry.core.module import Module
from foundry.core.platform import InvalidPlatformError, Platform
from foundry.errors import (
    BuildTimeoutError,
    CompilationError,
    DependencyResolutionError,
    FoundryError,
    InvalidModuleError,
    PrerequisiteError,
)
from foundry.policy.options import NativeBuilderOpts

_log = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Dependencies
# =============================================================================

def get_builder() -> Builder:
    """Native builder configured from FOUNDRY_* settings."""
    settings = Settings()
    opts = NativeBuilderOpts.from_settings(workdir_root=settings.BUILDER_WORKSPACE)
    try:
        return new_builder(opts=opts)
    except PrerequisiteError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e


# =============================================================================
# Request Models
# =============================================================================

class BuildRequest(BaseModel):
    """Request to build a custom binary."""
    platform: str = Field(..., description="Target platform as os/arch (e.g. 'linux/amd64')")
    base_version: str = Field("", description="Base program version; empty means latest")
    dependencies: List[str] = Field(
        default_factory=list,
        description="Extensions as path[@version][=replace[@version]]",
    )
    build_flags: List[str] = Field(default_factory=list, description="Extra go build flags")


# =============================================================================
# Error mapping
# =============================================================================

def _status_for(exc: FoundryError) -> int:
    if isinstance(exc, InvalidModuleError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, PrerequisiteError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, (DependencyResolutionError, CompilationError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, BuildTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# =============================================================================
# Endpoints
# =============================================================================

@router.post(
    "/build",
    response_class=Response,
    responses={200: {"content": {"application/octet-stream": {}}}},
)
async def build_binary(request: BuildRequest, builder: Builder = Depends(get_builder)):
    """
    Build a binary for `platform` with the base program at `base_version`
    and the listed extensions.

    Returns the binary.  Response headers carry the artifact hash and the
    resolved base version.
    """
    try:
        platform = Platform.parse(request.platform)
        extensions = [Module.parse(d) for d in request.dependencies]
    except (InvalidModuleError, InvalidPlatformError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    out = io.BytesIO()
    try:
        receipt = await builder.build(
            platform,
            request.base_version,
            extensions,
            request.build_flags,
            out,
        )
    except FoundryError as e:
        code = _status_for(e)
        _log.warning("Build failed (%s, step=%s): %s", code, e.step, e)
        raise HTTPException(
            status_code=code,
            detail={"error": type(e).__name__, "step": e.step, "message": str(e)},
        ) from e

    base = receipt.base
    return Response(
        content=out.getvalue(),
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": 'attachment; filename="k6"',
            "X-Build-Sha256": receipt.artifact.sha256,
            "X-Build-Base-Version": receipt.resolved_version(base.import_path) or base.version,
        },
    )


@router.get("/builders")
async def list_builders():
    """Registered builder variants and whether each can run on this host."""
    return available_builders()
