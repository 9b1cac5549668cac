from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Hireform"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8787
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/hireform.db"
    data_dir: Path = Path("./data")
    upload_dir: Path = Path("./data/uploads")
    public_base_url: str = "http://127.0.0.1:8787"

    max_attachment_bytes: int = 5 * 1024 * 1024
    cover_letter_min_length: int = 50
    default_page_size: int = 50

    cors_origins: str = "http://127.0.0.1:8787"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("cover_letter_min_length", "max_attachment_bytes", "default_page_size")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def upload_base_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/uploads"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
