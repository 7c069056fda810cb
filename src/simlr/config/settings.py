"""Application settings loaded from environment variables and .env files.

Hey future me - nested sections are plain pydantic models hanging off the root
``Settings``. Environment variables use ``__`` as the nesting delimiter, so
``MUSICBRAINZ__CONTACT=ops@example.com`` sets ``settings.musicbrainz.contact``
and ``DATABASE__URL=...`` sets the database URL.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Relational store configuration."""

    url: str = "sqlite+aiosqlite:///./simlr.db"
    echo: bool = False
    pool_pre_ping: bool = True
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600

    @field_validator("url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs the driver suffix."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def sqlite_path(self) -> Path | None:
        """File behind a SQLite URL; None for in-memory or other backends."""
        if not self.is_sqlite:
            return None
        path = self.url.partition(":///")[2]
        return Path(path) if path and path != ":memory:" else None


class MusicBrainzSettings(BaseModel):
    """MusicBrainz client configuration."""

    app_name: str = "simlr-fm"
    app_version: str = "1.0"
    contact: str = "contact@simlr.fm"
    timeout: float = 10.0
    max_retries: int = 3
    initial_retry_delay: float = 1.0


class CoverArtSettings(BaseModel):
    """Cover Art Archive client configuration."""

    timeout: float = 10.0
    max_retries: int = 3
    initial_retry_delay: float = 1.0


class SpotifySettings(BaseModel):
    """Legacy streaming catalog credentials (client-credentials flow).

    Empty credentials switch the legacy catalog to the seeded mock dataset.
    """

    client_id: str = ""
    client_secret: str = ""
    timeout: float = 10.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


class AuthSettings(BaseModel):
    """Signed token and cookie configuration."""

    jwt_secret: str = "change-me-in-production-please-32chars"
    jwt_algorithm: str = "HS256"
    access_token_ttl_seconds: int = 15 * 60
    refresh_token_ttl_seconds: int = 7 * 24 * 60 * 60
    cookie_secure: bool = False
    password_min_length: int = 8
    bcrypt_rounds: int = 12


class RankingSettings(BaseModel):
    """Tuning constants for the hot rank."""

    epoch: float = 1134028003.0
    divisor: float = 45000.0
    post_candidate_limit: int = 100
    edge_candidate_limit: int = 200
    result_limit: int = 50


class SimlrSettings(BaseModel):
    """Per-field validation for similarity reasons."""

    reason_min_length: int = 140
    reason_max_length: int = 280
    reasons_per_edge: int = 3


class ObservabilitySettings(BaseModel):
    """Logging output configuration."""

    log_json_format: bool = False


class Settings(BaseSettings):
    """Root application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "simlr"
    log_level: str = "INFO"
    seed_mock_data: bool = True
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    musicbrainz: MusicBrainzSettings = Field(default_factory=MusicBrainzSettings)
    coverart: CoverArtSettings = Field(default_factory=CoverArtSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    ranking: RankingSettings = Field(default_factory=RankingSettings)
    simlr: SimlrSettings = Field(default_factory=SimlrSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get the cached process-wide settings instance."""
    return Settings()
