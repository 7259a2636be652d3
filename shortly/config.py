"""
Shortly configuration.
All tunables come from environment variables (SHORTLY_*) or a .env file.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # --- App ---
    app_name: str = "Shortly"
    debug: bool = False
    base_url: str = "https://sho.rt"

    # --- Storage ---
    # "memory://" keeps snapshots in-process; anything else is a SQLAlchemy URL
    store_url: str = "sqlite:///./shortly.db"
    store_write_retries: int = 2

    # --- Slugs ---
    slug_length: int = 6
    slug_max_attempts: int = 30
    slug_alphabet: str = "abcdefghijklmnopqrstuvwxyz0123456789"
    slug_min_length: int = 3
    slug_max_length: int = 32
    reserved_slugs: frozenset[str] = frozenset(
        {"login", "dashboard", "shorten", "api", "admin", "settings"}
    )

    model_config = {"env_prefix": "SHORTLY_", "env_file": ".env"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
