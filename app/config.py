"""
Application configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080
    API_TITLE: str = "Foundry API"
    API_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Parent directory of build workspaces; None uses the system temp dir
    BUILDER_WORKSPACE: str | None = None


settings = Settings()
