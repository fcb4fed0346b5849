# backend/homeslots/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/homeslots.db"
    redis_url: str = ""

    default_timezone: str = "UTC"

    # Slots
    horizon_days: int = 90
    min_advance_minutes: int = 0
    min_slot_minutes: int = 15
    max_slot_minutes: int = 480
    default_slot_minutes: int = 30
    default_buffer_minutes: int = 15
    segments_cache_ttl_seconds: int = 86400

    db_busy_timeout_seconds: float = 5.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative sqlite paths are anchored at the project root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
