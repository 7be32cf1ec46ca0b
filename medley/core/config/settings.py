# File: medley/core/config/settings.py

import os
import shutil
from pathlib import Path


class Settings:
    # --- Paths ---
    # medley/core/config/settings.py -> medley/core/config -> medley/core -> medley -> ROOT
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    LOG_DIR: Path = DATA_DIR / "logs"

    # --- Database (duration cache) ---
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "password")
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "medley_db")

    @property
    def DATABASE_URL(self) -> str:
        # Postgres (psycopg2) by default; SQLite only if explicitly requested (USE_SQLITE=true).
        if os.getenv("USE_SQLITE", "false").lower() == "true":
            return os.getenv("SQLITE_URL", "sqlite:///./medley.db")

        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # --- External Tools ---
    # Auto-detect ffprobe/ffplay or use env vars
    FFPROBE_BINARY: str = os.getenv("FFPROBE_BINARY_PATH", shutil.which("ffprobe") or "ffprobe")
    FFPLAY_BINARY: str = os.getenv("FFPLAY_BINARY_PATH", shutil.which("ffplay") or "ffplay")

    # --- Duration Probing ---
    PROBE_TIMEOUT_SECONDS: float = float(os.getenv("MEDLEY_PROBE_TIMEOUT", "15"))
    PROBE_CONCURRENCY: int = int(os.getenv("MEDLEY_PROBE_CONCURRENCY", "4"))

    # --- Playback ---
    # How often the ffplay decoder reports its position (seconds)
    POSITION_UPDATE_INTERVAL: float = float(os.getenv("MEDLEY_POSITION_INTERVAL", "0.25"))

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("MEDLEY_LOG_LEVEL", "INFO")

    def ensure_dirs(self):
        """Creates necessary data directories if they don't exist."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.LOG_DIR.mkdir(parents=True, exist_ok=True)


settings = Settings()
