import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///data/job_search.db"


@dataclass
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    seed_dir: Optional[Path] = None
    log_level: str = "INFO"
    log_dir: Optional[Path] = None
    connect_retries: int = 5


def load_env() -> None:
    """Load .env from the working directory if present. Existing variables win."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


def load_settings() -> Settings:
    """Build Settings from JOBSEARCH_* environment variables."""
    load_env()
    seed_dir = os.getenv("JOBSEARCH_SEED_DIR")
    log_dir = os.getenv("JOBSEARCH_LOG_DIR")
    return Settings(
        database_url=os.getenv("JOBSEARCH_DATABASE_URL", DEFAULT_DATABASE_URL),
        seed_dir=Path(seed_dir) if seed_dir else None,
        log_level=os.getenv("JOBSEARCH_LOG_LEVEL", "INFO").upper(),
        log_dir=Path(log_dir) if log_dir else None,
        connect_retries=int(os.getenv("JOBSEARCH_CONNECT_RETRIES", "5")),
    )
