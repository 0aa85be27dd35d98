"""Environment-driven configuration for the Finac API."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_FALSEY = {"0", "false", "False", "no", ""}


@dataclass(slots=True)
class DatabaseSettings:
    """Connection details for the finance database."""

    driver: str
    host: str
    port: int
    user: str
    password: str
    name: str
    url: Optional[str] = None

    @property
    def sqlalchemy_url(self) -> str:
        """Build a SQLAlchemy compatible URL (``DATABASE_URL`` wins when set)."""

        if self.url:
            return self.url
        if self.password:
            credentials = f"{self.user}:{self.password}"
        else:
            credentials = self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.name}"

    @property
    def masked_url(self) -> str:
        if self.url:
            return self.url.split("@")[-1]
        pwd = "***" if self.password else ""
        return f"{self.driver}://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"


@dataclass(slots=True)
class OpenRouterSettings:
    """Credentials and routing for the OpenAI-compatible OpenRouter endpoint."""

    api_key: str
    base_url: str
    model: Optional[str]
    referer: str
    app_title: str = "Finac AI Assistant"

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass(slots=True)
class Settings:
    """Top-level application configuration container."""

    database: DatabaseSettings
    openrouter: OpenRouterSettings
    sqlalchemy_echo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration values from environment variables."""

        def _get_env(name: str, default: str) -> str:
            return os.getenv(name, default)

        db = DatabaseSettings(
            driver=_get_env("DB_DRIVER", "mysql+pymysql"),
            host=_get_env("DB_HOST", "127.0.0.1"),
            port=int(_get_env("DB_PORT", "3306")),
            user=_get_env("DB_USER", "finac"),
            password=_get_env("DB_PASSWORD", "finac"),
            name=_get_env("DB_NAME", "finac"),
            url=os.getenv("DATABASE_URL") or None,
        )
        openrouter = OpenRouterSettings(
            api_key=_get_env("OPENROUTER_API_KEY", ""),
            base_url=_get_env("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/"),
            model=os.getenv("OPENROUTER_MODEL") or None,
            referer=_get_env("NEXT_PUBLIC_BASE_URL", "http://localhost:8000"),
        )
        return cls(
            database=db,
            openrouter=openrouter,
            sqlalchemy_echo=_get_env("SQLALCHEMY_ECHO", "0") not in _FALSEY,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_env()

    # Import locally to avoid circular dependencies during module import time.
    from .logger import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "sqlalchemy_echo": settings.sqlalchemy_echo,
            "database": settings.database.masked_url,
            "openrouter": {
                "base_url": settings.openrouter.base_url,
                "model": settings.openrouter.model,
                "configured": settings.openrouter.configured,
            },
        },
    )
    return settings
