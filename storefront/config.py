# storefront/config.py
from fastapi import Request
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    # Falls back to SECRET_KEY when not set
    REFRESH_SECRET_KEY: Optional[str] = None
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    REFRESH_COOKIE_NAME: str = "refresh_token"
    # None = derive from request scheme
    COOKIE_SECURE: Optional[bool] = None

    DATABASE_URL: str = "sqlite:///./storefront.db"
    DB_TIMEOUT_SECONDS: int = 10
    DB_POOL_SIZE: int = 5
    CHECKOUT_RETRY_ATTEMPTS: int = 3

    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_LOCK_MINUTES: int = 15

    # Simulated tracking advancement interval, 0 disables the background task
    TRACKING_ADVANCE_SECONDS: int = 8

    FRONTEND_URL: Optional[str] = None

    class Config:
        env_file: ClassVar[str] = str(env_path)

    @property
    def refresh_secret(self) -> str:
        return self.REFRESH_SECRET_KEY or self.SECRET_KEY


def get_settings(request: Request) -> Settings:
    # Settings bound to the running app (tests build their own)
    return request.app.state.settings
