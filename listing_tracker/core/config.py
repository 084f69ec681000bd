from dataclasses import dataclass

from pydantic import Field
from pydantic_settings import BaseSettings

from listing_tracker.core.errors import ConfigurationError


class Settings(BaseSettings):
    # App
    app_name: str = "FBMP Listings"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8080, validation_alias="PORT")

    # CORS
    cors_origins: list[str] = ["*"]

    # Store: two alternate variable pairs are accepted, see load_store_config()
    store_url: str = Field(default="", validation_alias="STORE_URL")
    store_key: str = Field(default="", validation_alias="STORE_KEY")
    database_url: str = Field(default="", validation_alias="DATABASE_URL")
    database_password: str = Field(default="", validation_alias="DATABASE_PASSWORD")

    # UI
    recent_listings_limit: int = 50

    model_config = {
        "env_prefix": "APP_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }


@dataclass(frozen=True)
class StoreConfig:
    url: str
    key: str


def _first_non_empty(*values: str) -> str:
    for value in values:
        if value and value.strip():
            return value.strip()
    return ""


def load_store_config(settings: Settings) -> StoreConfig:
    """Resolve the store connection settings or raise ConfigurationError.

    ``STORE_URL``/``STORE_KEY`` take precedence over
    ``DATABASE_URL``/``DATABASE_PASSWORD``; for each value the first
    non-empty one wins.
    """
    url = _first_non_empty(settings.store_url, settings.database_url)
    key = _first_non_empty(settings.store_key, settings.database_password)

    missing = []
    if not url:
        missing.append("STORE_URL or DATABASE_URL")
    if not key:
        missing.append("STORE_KEY or DATABASE_PASSWORD")
    if missing:
        raise ConfigurationError(missing)

    return StoreConfig(url=url, key=key)


settings = Settings()
