"""Service configuration loaded from environment variables (prefix PIPELINE_).

For local development put overrides in a .env file next to pyproject.toml.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Runtime data lives at project root: /data/runtime/
DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data" / "runtime"


class ServerConfig(BaseSettings):
    """Pipeline board server settings."""

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(default=DEFAULT_DATA_DIR, description="Root for JSON storage")
    log_level: str = Field(default="INFO", description="Root logging level")
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    # Comma separated; Vite dev server by default
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return v

    def get_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_config() -> ServerConfig:
    """Cached config instance."""
    return ServerConfig()
