"""Application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    root_dir: Path = Path("site/root")
    template_dir: Path | None = None
    page_types_dir: Path | None = None
    type_map_file: Path | None = None
    template_suffix: str = ".html"
    debug: bool = False
    app_title: str = "Treeweave"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="TREEWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
