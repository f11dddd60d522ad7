"""Configuration management using Pydantic settings."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "WireOS"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Annotation data
    data_dir: Path = Path("./data")
    seed_path: Optional[Path] = Path("./data/bos.geojson")
    store_filename: str = "annotations.geojson"
    persist_enabled: bool = True

    # Episode gating
    default_episode: str = "S01E01"

    # Export
    export_filename: str = "bos.geojson"

    @property
    def store_path(self) -> Path:
        return self.data_dir / self.store_filename


settings = Settings()
