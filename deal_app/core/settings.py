import logging
from functools import lru_cache
from typing import List, Literal

from dotenv import load_dotenv
from fastapi import Request
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    PROJECT_NAME: str = "DEALS MARKETPLACE API"
    DATABASE_URL: str = "sqlite+aiosqlite:///./deals.db"
    DATABASE_ECHO: bool = False
    JWT_SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    TOKEN_EXPIRE_DAYS: int = 1
    TOKEN_COOKIE_NAME: str = "token"
    SECURE_COOKIES: bool = False  # must be false on localhost
    ALLOWED_HOSTS_RAW: str = ""
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REDIS_URL: str = "redis://localhost:6379/0"
    ADMIN_RATE_LIMIT: int = 20
    USER_RATE_LIMIT: int = 10
    GUEST_RATE_LIMIT: int = 5
    # restrict: refuse to delete a user still referenced by listings/deals/messages
    # cascade: delete those rows together with the user
    USER_DELETE_POLICY: Literal["restrict", "cascade"] = "restrict"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @property
    def ALLOWED_HOSTS(self) -> List[str]:
        """CORS origins from the comma separated ALLOWED_HOSTS_RAW; non-URLs are dropped."""
        origins = [item.strip().rstrip("/") for item in self.ALLOWED_HOSTS_RAW.split(",")]
        valid = [o for o in origins if o.startswith(("http://", "https://"))]
        if len(valid) != len([o for o in origins if o]):
            logger.warning(f"Ignoring malformed ALLOWED_HOSTS entries: {self.ALLOWED_HOSTS_RAW}")
        return valid


@lru_cache
def get_settings() -> Settings:
    return Settings()


def app_settings(request: Request) -> Settings:
    return request.app.state.settings
