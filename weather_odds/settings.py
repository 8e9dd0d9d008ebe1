from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized configuration.

    Loaded from:
    - environment variables
    - .env file (if present)
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Weather Odds API"

    # Samples per series, one per past year
    sample_count: int = Field(10, ge=1)

    # "synthetic" until the archive is the real source of truth
    sample_provider: Literal["synthetic", "power"] = "synthetic"
    power_api_base: str = "https://power.larc.nasa.gov/api/temporal/daily/point"
    power_timeout_s: float = 10.0

    # Where pending CSV downloads live until they are fetched
    artifact_store: Literal["memory", "filesystem"] = "memory"
    downloads_dir: str = "downloads"

    log_level: str = "INFO"


settings = Settings()
