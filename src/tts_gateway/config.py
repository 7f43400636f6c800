"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    static_api_key: SecretStr = Field(
        default=SecretStr("sk-123456"),
        validation_alias=AliasChoices("STATIC_API_KEY", "static_api_key"),
    )
    upstream_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://bot.n.cn"),
        validation_alias=AliasChoices("UPSTREAM_BASE_URL", "upstream_base_url"),
    )
    upstream_user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        validation_alias=AliasChoices("UPSTREAM_USER_AGENT", "upstream_user_agent"),
    )
    request_timeout: float = Field(
        default=30.0,
        validation_alias=AliasChoices("UPSTREAM_TIMEOUT", "request_timeout"),
        ge=1,
    )
    tts_concurrency: int = Field(
        default=3,
        ge=1,
        validation_alias=AliasChoices("TTS_CONCURRENCY", "tts_concurrency"),
    )
    segment_max_chars: int = Field(
        default=200,
        ge=1,
        validation_alias=AliasChoices("SEGMENT_MAX_CHARS", "segment_max_chars"),
    )
    default_voice: str = Field(
        default="DeepSeek",
        validation_alias=AliasChoices("DEFAULT_VOICE", "default_voice"),
    )
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "host"),
    )
    port: int = Field(
        default=5050,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "port"),
    )

    @property
    def upstream_root(self) -> str:
        """Return the upstream base URL without a trailing slash."""

        return str(self.upstream_base_url).rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["DEFAULT_USER_AGENT", "Settings", "get_settings"]
