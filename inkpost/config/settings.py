from pydantic_settings import BaseSettings
from dotenv import load_dotenv, find_dotenv
from os import getenv
from typing import Optional

_env_path = find_dotenv()  # locate a .env file in this folder or parent folders
if _env_path:
    load_dotenv(_env_path)


def _flag(name: str, default: str = "false") -> bool:
    return (getenv(name) or default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseSettings):
    # Hosted backend (record store + identity provider)
    BACKEND_URL: str = getenv('BACKEND_URL') or ''
    BACKEND_ANON_KEY: str = getenv('BACKEND_ANON_KEY') or ''
    HTTP_TIMEOUT: int = int(getenv('HTTP_TIMEOUT') or 30)

    # Authoring (write / edit / delete / create column) is only exposed when enabled
    ADMIN_ENABLED: bool = _flag('ADMIN_ENABLED')

    # Local cache database
    CACHE_DB_URL: str = getenv('CACHE_DB_URL') or 'sqlite:///./inkpost_cache.db'

    # Cache lifetimes, in milliseconds
    CACHE_TTL_HOMEPAGE_POSTS_MS: int = int(getenv('CACHE_TTL_HOMEPAGE_POSTS_MS') or 5 * 60 * 1000)
    CACHE_TTL_DETAIL_MS: int = int(getenv('CACHE_TTL_DETAIL_MS') or 60 * 60 * 1000)
    CACHE_TTL_COLUMNS_MS: int = int(getenv('CACHE_TTL_COLUMNS_MS') or 24 * 60 * 60 * 1000)

    # Listing / preview
    POSTS_PER_PAGE: int = int(getenv('POSTS_PER_PAGE') or 10)
    EXCERPT_LENGTH: int = int(getenv('EXCERPT_LENGTH') or 150)
    TITLE_LENGTH: int = int(getenv('TITLE_LENGTH') or 30)

    # Comment form and throttle
    COMMENT_MAX_LENGTH: int = int(getenv('COMMENT_MAX_LENGTH') or 1000)
    COMMENT_MIN_INTERVAL_SECONDS: float = float(getenv('COMMENT_MIN_INTERVAL_SECONDS') or 60)
    COMMENT_MAX_PER_WINDOW: int = int(getenv('COMMENT_MAX_PER_WINDOW') or 3)
    COMMENT_WINDOW_SECONDS: float = float(getenv('COMMENT_WINDOW_SECONDS') or 60)

    # Logging
    LOG_LEVEL: Optional[str] = getenv('LOG_LEVEL') or 'INFO'

settings = Settings()
