"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ALLOWED_DOMAINS = (
    "sanook.com",
    "bangkokpost.com",
    "thairath.co.th",
    "matichon.co.th",
    "overseas.mofa.go.kr",
    "khaosod.co.th",
    "dailynews.co.th",
    "nationthailand.com",
    "mgronline.com",
    "world.thaipbs.or.th",
    "komchadluek.net",
    "naewna.com",
    "prachatai.com",
    "innnews.co.th",
)


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    db_path: Path = Field(
        default=Path("data/thaiinfo.sqlite"), validation_alias="THAIINFO_DB_PATH"
    )
    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(
        default="gemini-2.5-flash", validation_alias="GEMINI_MODEL"
    )
    user_agent: str | None = Field(default=None, validation_alias="THAIINFO_USER_AGENT")
    max_body_chars: int = Field(
        default=5000, ge=100, validation_alias="THAIINFO_MAX_BODY_CHARS"
    )
    allowed_domains_raw: str = Field(
        default=",".join(DEFAULT_ALLOWED_DOMAINS),
        validation_alias="THAIINFO_ALLOWED_DOMAINS",
    )
    view_flush_delay_seconds: float = Field(
        default=1.0, ge=0.0, validation_alias="THAIINFO_VIEW_FLUSH_DELAY"
    )

    @property
    def allowed_domains(self) -> list[str]:
        """Domains ingest_url accepts; an empty list disables the check."""
        return [d.strip() for d in self.allowed_domains_raw.split(",") if d.strip()]


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
