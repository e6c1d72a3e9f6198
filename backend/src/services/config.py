"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.settings import ModelProvider

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "journal.db"


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    database_path: Path = Field(
        default=DEFAULT_DB_PATH, description="SQLite file holding summaries and journal entries"
    )
    normalizer_provider: ModelProvider = Field(
        default=ModelProvider.OPENROUTER,
        description="Provider used to normalize free-form summary reports",
    )
    normalizer_model: str = Field(
        default="anthropic/claude-haiku-4.5",
        description="Model identifier passed to the normalizer provider",
    )
    openrouter_api_key: Optional[str] = Field(None, description="OpenRouter API key")
    google_api_key: Optional[str] = Field(None, description="Google Gemini API key")
    change_summary_preview_chars: int = Field(
        default=200,
        ge=20,
        le=4000,
        description="Maximum length of change summaries stored in section history",
    )
    recent_entries_default: int = Field(
        default=5, ge=0, description="Journal entries handed to the normalizer by default"
    )
    recent_entries_max: int = Field(
        default=20, ge=0, description="Upper bound on journal entries handed to the normalizer"
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    mcp_transport: str = Field(
        default="stdio", description="FastMCP transport for the standalone server"
    )
    mcp_host: str = Field(
        default="127.0.0.1", description="Bind host for the HTTP MCP transport"
    )
    mcp_port: int = Field(
        default=8001, ge=1, le=65535, description="Bind port for the HTTP MCP transport"
    )
    port: int = Field(default=8000, ge=1, le=65535, description="Port for the FastAPI server")

    @field_validator("database_path", mode="before")
    @classmethod
    def _normalize_db_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("JOURNAL_DB_PATH cannot be empty")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("openrouter_api_key", "google_api_key", mode="before")
    @classmethod
    def _blank_key_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Optional[str]) -> str:
        level = (value or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported LOG_LEVEL: {value}")
        return level

    @field_validator("mcp_transport", mode="before")
    @classmethod
    def _normalize_transport(cls, value: Optional[str]) -> str:
        transport = (value or "stdio").strip().lower() or "stdio"
        if transport not in {"stdio", "http", "sse", "streamable-http"}:
            raise ValueError(f"Unsupported MCP_TRANSPORT: {value}")
        return transport


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_int(key: str, default: int) -> int:
    raw = _read_env(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    return AppConfig(
        database_path=_read_env("JOURNAL_DB_PATH", str(DEFAULT_DB_PATH)),
        normalizer_provider=_read_env("NORMALIZER_PROVIDER", ModelProvider.OPENROUTER.value),
        normalizer_model=_read_env("NORMALIZER_MODEL", "anthropic/claude-haiku-4.5"),
        openrouter_api_key=_read_env("OPENROUTER_API_KEY"),
        google_api_key=_read_env("GOOGLE_API_KEY"),
        change_summary_preview_chars=_read_int("CHANGE_SUMMARY_PREVIEW_CHARS", 200),
        recent_entries_default=_read_int("RECENT_ENTRIES_DEFAULT", 5),
        recent_entries_max=_read_int("RECENT_ENTRIES_MAX", 20),
        log_level=_read_env("LOG_LEVEL", "INFO"),
        mcp_transport=_read_env("MCP_TRANSPORT", "stdio"),
        mcp_host=_read_env("MCP_HOST", "127.0.0.1"),
        mcp_port=_read_int("MCP_PORT", 8001),
        port=_read_int("PORT", 8000),
    )


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["AppConfig", "get_config", "reload_config", "PROJECT_ROOT", "DEFAULT_DB_PATH"]
