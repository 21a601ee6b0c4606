import os
from functools import lru_cache

from dotenv import load_dotenv, find_dotenv

# Values already present in the process environment win over the .env file
_env_path = find_dotenv(usecwd=True)
if _env_path:
    load_dotenv(_env_path, override=False)


class Settings:
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8080")
    # Reads abort after this many seconds and surface as network failures
    REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "8"))
    # Refresh exchanges allowed before the session is forcibly ended
    MAX_REFRESH_ATTEMPTS: int = int(os.getenv("MAX_REFRESH_ATTEMPTS", "3"))
    ERROR_DEDUP_WINDOW_SECONDS: float = float(os.getenv("ERROR_DEDUP_WINDOW_SECONDS", "2"))
    SESSION_DATABASE_URL: str = os.getenv("SESSION_DATABASE_URL", "sqlite:///quickcart_session.db")
    LOGIN_PATH: str = os.getenv("LOGIN_PATH", "/login")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    IMAGE_CDN_QUERY: str = os.getenv("IMAGE_CDN_QUERY", "q=auto:good&f=auto&w=500")

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)


@lru_cache
def get_settings():
    return Settings()
