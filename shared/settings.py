from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    api_base_url: str = "http://localhost:8080"
    request_timeout: float = 30.0
    items_per_page: int = 10

    data_dir: Path = BASE_DIR / "data"

    model_config = {
        "env_prefix": "FIR_",
        "env_file": BASE_DIR / ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
