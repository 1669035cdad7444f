# config.py
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from textual.logging import TextualHandler


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass
class Config:
    """Holds all application configuration."""
    API_BASE_URL: str = "https://www.omdbapi.com/"
    OMDB_API_KEY: Optional[str] = None
    DEFAULT_TOPIC: str = "Avengers"
    DEFAULT_LIMIT: int = 20
    SEARCH_INITIAL_LIMIT: int = 15
    SEARCH_LOAD_MORE_COUNT: int = 10
    PAGE_SIZE: int = 10
    MAX_DEFAULT_PAGES: int = 100
    DEBOUNCE_SECONDS: float = 0.5
    FETCH_TIMEOUT_SECONDS: float = 10.0
    PLACEHOLDER_POSTER: str = "no-movie.png"
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env") -> "Config":
        """Builds a Config from the process environment and an optional dotenv file."""
        if env_file:
            load_dotenv(env_file)
        config = cls(OMDB_API_KEY=os.getenv("OMDB_API_KEY"))
        base_url = os.getenv("OMDB_API_URL")
        if base_url:
            config.API_BASE_URL = base_url
        log_level = os.getenv("FIND_MOVIES_LOG_LEVEL")
        if log_level:
            config.LOG_LEVEL = log_level.upper()
        return config

    def require_api_key(self) -> str:
        key = (self.OMDB_API_KEY or "").strip()
        if not key:
            raise ConfigError(
                "OMDB_API_KEY is not set. Export it or add it to a .env file "
                "(get a key at https://www.omdbapi.com/apikey.aspx)."
            )
        return key


def configure_logging(level: str = "INFO") -> None:
    """Sends the logging tree to the Textual devtools console."""
    logging.basicConfig(level=level, handlers=[TextualHandler()], force=True)
