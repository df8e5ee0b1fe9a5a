"""
Settings for scripts and services using shopkit.

Values come from the environment, after loading a `.env` file if one is
present. The library itself never reads settings implicitly: callers pass
a Settings (or individual values) where needed.

Variables:
    SHOPKIT_DB_URL                 Postgres URL (falls back to SUPABASE_DB_URL)
    SHOPKIT_FAILURE_DISPLAY_LIMIT  Failed products listed in import reports (10)
    SHOPKIT_DEFAULT_CATEGORY       Category for imported rows that leave it empty
    SHOPKIT_STATEMENT_TIMEOUT_MS   Postgres statement_timeout for store calls
    SHOPKIT_LOG_LEVEL              Log level for configure_logging (INFO)
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv


@dataclass(frozen=True)
class Settings:
    db_url: Optional[str] = None
    failure_display_limit: int = 10
    default_category: Optional[str] = None
    statement_timeout_ms: Optional[int] = None
    log_level: str = "INFO"


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Load settings from the environment.

    Args:
        env_file: Path of a .env file to load first. If omitted, python-dotenv
            searches for one from the working directory upwards. Variables
            already set in the environment take precedence.

    Returns:
        Settings instance
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    return Settings(
        db_url=os.getenv("SHOPKIT_DB_URL") or os.getenv("SUPABASE_DB_URL"),
        failure_display_limit=_int_env("SHOPKIT_FAILURE_DISPLAY_LIMIT", 10),
        default_category=os.getenv("SHOPKIT_DEFAULT_CATEGORY") or None,
        statement_timeout_ms=_int_env("SHOPKIT_STATEMENT_TIMEOUT_MS", None),
        log_level=(os.getenv("SHOPKIT_LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(settings: Settings) -> None:
    """Basic console logging for scripts. Libraries should not call this."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
