"""Settings loaded from environment variables."""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def try_parse_int(value: Optional[str], default: int) -> int:
    """Parse an integer, falling back to a default if missing or invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Global settings for the calendar proxy."""
    port: int = 3000
    cache_ttl: int = 60 * 60
    cache_max_keys: int = 100
    force_reload_timeout: int = 60 * 5
    respect_ical_refresh_interval: bool = False
    include_exceptions: bool = False
    user_agent: Optional[str] = None
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    extensions_dir: Optional[str] = None
    extensions_bucket: Optional[str] = None
    extensions_prefix: str = ''
    profiles_dir: Optional[str] = None


def load_settings() -> Settings:
    """
    Read settings from the environment, loading a .env file if present.

    Returns:
        Settings with defaults for anything unset or invalid
    """
    load_dotenv()
    defaults = Settings()
    env = os.environ

    return Settings(
        port=try_parse_int(env.get('PORT'), defaults.port),
        cache_ttl=try_parse_int(env.get('CACHE_TTL'), defaults.cache_ttl),
        cache_max_keys=try_parse_int(env.get('CACHE_MAX_KEYS'), defaults.cache_max_keys),
        force_reload_timeout=try_parse_int(
            env.get('FORCE_RELOAD_TIMEOUT'), defaults.force_reload_timeout
        ),
        respect_ical_refresh_interval=env.get('RESPECT_ICAL_REFRESH_INTERVAL') == 'true',
        include_exceptions=env.get('INCLUDE_EXCEPTIONS') == 'true',
        user_agent=env.get('USER_AGENT') or None,
        log_level=env.get('LOG_LEVEL', defaults.log_level),
        timeout_seconds=try_parse_int(env.get('TIMEOUT_SECONDS'), defaults.timeout_seconds),
        extensions_dir=env.get('EXTENSIONS_DIR') or None,
        extensions_bucket=env.get('EXTENSIONS_BUCKET') or None,
        extensions_prefix=env.get('EXTENSIONS_PREFIX', ''),
        profiles_dir=env.get('PROFILES_DIR') or None,
    )
