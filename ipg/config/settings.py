"""Application settings loaded from environment variables."""

import json
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.providers.dotenv import DotEnvSettingsSource
from pydantic_settings.sources.providers.env import EnvSettingsSource


VALID_SCRAPERS = ("mobile", "apify")

# Fields that accept comma-separated strings in .env
_COMMA_LIST_FIELDS = frozenset({"collect_zone_slugs"})


class _CommaListSourceMixin:
    """Allow comma-separated values for list fields instead of requiring JSON."""

    def prepare_field_value(
        self, field_name: str, field: object, value: object, value_is_complex: bool
    ) -> object:
        if field_name in _COMMA_LIST_FIELDS and isinstance(value, str):
            try:
                return json.loads(value)
            except (json.JSONDecodeError, ValueError):
                return [v.strip() for v in value.split(",") if v.strip()]
        return super().prepare_field_value(field_name, field, value, value_is_complex)


class _Env(_CommaListSourceMixin, EnvSettingsSource):
    pass


class _DotEnv(_CommaListSourceMixin, DotEnvSettingsSource):
    pass


class Settings(BaseSettings):
    """Runtime configuration for the API, workers, and collection jobs."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: str = "il-prezzo-giusto"
    app_env: str = "local"
    log_level: str = "INFO"

    data_dir: Path = Path("data")
    redis_url: str = "redis://localhost:6379/0"
    taskiq_testing: bool = False

    mobile_api_base_url: str = "https://ios-imm-v4.ws-app.com/b2c/v1"
    mobile_api_timeout_seconds: float = 30.0
    mobile_api_page_delay_ms: int = Field(default=50, ge=0)
    mobile_api_default_limit: int = Field(default=10000, ge=1)
    mobile_api_max_retries: int = Field(default=3, ge=0)

    apify_token: str = ""
    apify_base_url: str = "https://api.apify.com/v2"
    apify_actor_id: str = "memo23/immobiliare-scraper"
    apify_timeout_seconds: float = 300.0
    apify_default_limit: int = Field(default=1000, ge=1)
    apify_max_pages: int = Field(default=20, ge=1)

    collect_scraper: str = "mobile"
    collect_zone_slugs: list[str] = Field(default_factory=list)
    collect_sleep_between_zones_seconds: float = Field(default=0.0, ge=0)
    collect_dedup_ttl_seconds: int = 3600
    collect_limit: int | None = Field(default=None, ge=1)
    collect_cron: str = "0 4 * * *"
    task_result_ttl_seconds: int = 3600

    @field_validator("collect_scraper", mode="before")
    @classmethod
    def _validate_collect_scraper(cls, value: object) -> str:
        scraper = str(value or "mobile").strip().lower()
        if scraper not in VALID_SCRAPERS:
            raise ValueError(
                f"Invalid collect_scraper: {scraper}. "
                f"Valid values are: {', '.join(VALID_SCRAPERS)}"
            )
        return scraper

    @field_validator("collect_zone_slugs", mode="before")
    @classmethod
    def _parse_collect_zone_slugs(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            raw_items = value.split(",")
        elif isinstance(value, list):
            raw_items = [str(item) for item in value]
        else:
            raise ValueError(
                "collect_zone_slugs must be a comma-separated string or list"
            )

        normalized: list[str] = []
        seen: set[str] = set()
        for raw_item in raw_items:
            slug = raw_item.strip().lower()
            if not slug or slug in seen:
                continue
            seen.add(slug)
            normalized.append(slug)

        return normalized

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            _Env(settings_cls),
            _DotEnv(
                settings_cls,
                env_file=settings_cls.model_config.get("env_file", ".env"),
                env_file_encoding=settings_cls.model_config.get(
                    "env_file_encoding", "utf-8"
                ),
            ),
            file_secret_settings,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
