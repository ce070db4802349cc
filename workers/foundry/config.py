"""
Builder configuration
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class FoundrySettings(BaseSettings):
    """Defaults for builds, read from FOUNDRY_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FOUNDRY_",
        env_file=".env",
        extra="ignore",
    )

    # Base program
    BASE_MODULE: str = "go.k6.io/k6"
    BASE_REPLACE: Optional[str] = None

    # Go environment
    COPY_ENV: bool = False
    CGO: bool = False
    RACE_DETECTOR: bool = False
    GOCACHE: Optional[str] = None
    GOMODCACHE: Optional[str] = None
    GOPROXY: Optional[str] = None
    GONOPROXY: Optional[str] = None
    GOPRIVATE: Optional[str] = None
    GONOSUMDB: Optional[str] = None
    GOFLAGS: Optional[str] = None
    EPHEMERAL_CACHE: bool = False

    # Timeouts (seconds)
    GET_TIMEOUT: float = 300
    BUILD_TIMEOUT: float = 600

    # Workspace
    WORKDIR_ROOT: Optional[str] = None
    SKIP_CLEANUP: bool = False

    LOG_LEVEL: str = "INFO"
