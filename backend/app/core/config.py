from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    debug: bool = Field(False, alias="ADRESSE_DEBUG")
    storage_root: Path = Field(Path("./data"), alias="ADRESSE_STORAGE_ROOT")

    input_path: Path = Field(Path("input.csv"), alias="ADRESSE_INPUT_PATH")
    output_path: Path = Field(Path("output.csv"), alias="ADRESSE_OUTPUT_PATH")

    search_url: str = Field(
        "https://www.google.com/search", alias="ADRESSE_SEARCH_URL"
    )
    search_language: str = Field("fr", alias="ADRESSE_SEARCH_LANGUAGE")
    search_user_agent: str = Field(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
        alias="ADRESSE_SEARCH_USER_AGENT",
    )
    search_timeout: float = Field(15.0, alias="ADRESSE_SEARCH_TIMEOUT")
    search_retries: int = Field(3, ge=1, alias="ADRESSE_SEARCH_RETRIES")
    search_backoff: float = Field(2.0, ge=0.0, alias="ADRESSE_SEARCH_BACKOFF")
    search_cache_ttl: int = Field(60 * 60, ge=0, alias="ADRESSE_SEARCH_CACHE_TTL")

    # Randomized pause between two lookups, in seconds
    delay_min: float = Field(5.0, ge=0.0, alias="ADRESSE_DELAY_MIN")
    delay_max: float = Field(8.0, ge=0.0, alias="ADRESSE_DELAY_MAX")

    name_column: str = Field("Nom établissement", alias="ADRESSE_NAME_COLUMN")
    street_column: str = Field("Adresse", alias="ADRESSE_STREET_COLUMN")
    postal_code_column: str = Field(
        "Code postal", alias="ADRESSE_POSTAL_CODE_COLUMN"
    )
    city_column: str = Field("Ville", alias="ADRESSE_CITY_COLUMN")

    advanced_parsing: bool = Field(True, alias="ADRESSE_ADVANCED_PARSING")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("storage_root", mode="before")
    def _expand_storage_root(cls, value: Path | str) -> Path:
        """Expand user and resolve the storage directory."""
        path = Path(value).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("input_path", "output_path", mode="before")
    def _expand_path(cls, value: Path | str) -> Path:
        return Path(value).expanduser()

    @field_validator("search_url", mode="before")
    def _normalize_search_url(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def _check_delays(self) -> "Settings":
        if self.delay_min > self.delay_max:
            raise ValueError(
                f"delay_min ({self.delay_min}) must not exceed "
                f"delay_max ({self.delay_max})"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()  # type: ignore[call-arg]
