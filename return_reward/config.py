"""Configuration for the Return&Reward service."""
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from return_reward.errors import ConfigurationMissing

MIN_SECRET_LENGTH = 8
DEFAULT_DATABASE_URL = "sqlite:///./return_reward.db"


class Settings(BaseModel):
    """Runtime settings read from the environment (.env supported)."""

    database_url: str = DEFAULT_DATABASE_URL
    auth_secret: Optional[str] = None
    app_id: str = "return-and-reward-default"
    profile_page_size: int = 50
    qr_service_url: str = "https://api.qrserver.com/v1/create-qr-code/"
    qr_size: int = 300
    environment: str = "development"
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    def missing_backend_settings(self) -> List[str]:
        """Names of settings that are absent or invalid for the backend."""
        missing = []
        if not self.database_url:
            missing.append("DATABASE_URL")
        if not self.auth_secret or len(self.auth_secret) < MIN_SECRET_LENGTH:
            missing.append("AUTH_SECRET")
        return missing

    def require_backend(self) -> "Settings":
        missing = self.missing_backend_settings()
        if missing:
            raise ConfigurationMissing(missing)
        return self


def load_settings() -> Settings:
    """Build Settings from environment variables, loading .env first."""
    load_dotenv()

    return Settings(
        database_url=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
        auth_secret=os.environ.get("AUTH_SECRET"),
        app_id=os.environ.get("APP_ID", "return-and-reward-default"),
        profile_page_size=int(os.environ.get("PROFILE_PAGE_SIZE", "50")),
        qr_service_url=os.environ.get("QR_SERVICE_URL", "https://api.qrserver.com/v1/create-qr-code/"),
        qr_size=int(os.environ.get("QR_SIZE", "300")),
        environment=os.environ.get("ENVIRONMENT", "development"),
        frontend_url=os.environ.get("FRONTEND_URL", "http://localhost:3000"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
