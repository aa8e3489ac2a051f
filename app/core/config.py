"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # Database
    DATABASE_URL: str

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Dispatcher (service-to-service). Empty = fall back to end-user auth.
    DISPATCHER_API_KEY: str = ""

    # Azure Logic Apps workflows
    LOGIC_APP_EMAIL_URL: str = ""
    LOGIC_APP_TIMEOUT_SECONDS: float = 10.0

    # Reminders
    REMINDER_LOOKBACK_HOURS: int = 24
    REMINDER_BUFFER_MINUTES: int = 5

    # Notifications worker
    DELIVERY_INTERVAL_SECONDS: int = 60
    SCHEDULING_INTERVAL_SECONDS: int = 900         # next-hour reminder scan
    DAILY_SCHEDULING_INTERVAL_SECONDS: int = 3600  # day-before batch; its window is one hour wide

    # Environment
    ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()
