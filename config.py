from pydantic_settings import BaseSettings
from typing import List
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./calendar.db")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Sessions
    SESSION_SECRET: str = os.getenv("SESSION_SECRET", "calendar-app-secret")
    SESSION_COOKIE_NAME: str = "calendar_session"
    SESSION_MAX_AGE: int = 86400
    SESSION_COOKIE_SECURE: bool = False

    # Signup is only accepted from this peer address
    ADMIN_SIGNUP_IP: str = "127.0.0.1"

    # Uploads
    DISK_MOUNT_PATH: str = ""
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024

    # Email
    EMAIL_NOTIFICATIONS_ENABLED: bool = False
    EMAIL_HOST: str = ""
    EMAIL_PORT: int = 587
    EMAIL_USER: str = ""
    EMAIL_PASS: str = ""
    EMAIL_FROM: str = ""
    NOTIFICATION_RECIPIENTS: str = ""

    # Dispatch loop
    DISPATCH_INTERVAL_SECONDS: float = 60
    DISPATCH_THROTTLE_SECONDS: float = 0.5

    CALENDAR_TIMEZONE: str = "UTC"
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    @property
    def recipients(self) -> List[str]:
        return [r.strip() for r in self.NOTIFICATION_RECIPIENTS.split(",") if r.strip()]

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def email_configured(self) -> bool:
        return bool(
            self.EMAIL_NOTIFICATIONS_ENABLED
            and self.EMAIL_HOST
            and self.EMAIL_USER
            and self.EMAIL_PASS
        )

settings = Settings()
