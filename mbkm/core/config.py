"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "mbkm"
    app_env: str = "development"
    log_level: str = "INFO"

    # PostgreSQL
    db_host: str = "127.0.0.1"
    db_port: int = 5432
    db_name: str = "mbkm"
    db_user: str = "postgres"
    db_password: str = ""
    db_echo: bool = False

    # Full URL wins over the parts above (tests point this at SQLite)
    database_url: Optional[str] = None

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Uploads
    upload_dir: str = "./uploads"
    max_upload_mb: int = 10

    # Student CSV import
    import_email_domain: str = "mbkm.ulbi.ac.id"

    @property
    def sqlalchemy_url(self) -> str:
        """Construct the database connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
