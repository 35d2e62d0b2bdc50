from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Keeps datetimes naive so they stay compatible with SQLite
    (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Elorize"
    data_dir: Path = Path.home() / ".elorize"
    database_url: str | None = None
    default_policy: str = "due_date"  # due_date, rotation
    feedback_delay_seconds: float = 1.0
    stats_window_days: int = 30
    debug: bool = False

    model_config = {"env_prefix": "ELORIZE_", "env_file": ".env"}

    @property
    def db_url(self) -> str:
        """Configured database URL, or the SQLite file inside ``data_dir``."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_dir / 'elorize.db'}"


settings = Settings()
