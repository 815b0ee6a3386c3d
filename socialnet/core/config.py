from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """
    Основные настройки приложения.
    Считываются из переменных окружения (.env файл)
    """
    APP_NAME: str = "Socialnet API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    DATABASE_URL: str = "sqlite:///./socialnet.db"

    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120

    ADMIN_KEY: str = "default-admin-key-change-in-production"

    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    LOG_LEVEL: str = "INFO"

    # Дружба
    MAX_PENDING_REQUESTS: int = 500
    REQUEST_EXPIRY_DAYS: int = 30
    COOLING_PERIOD_DAYS: int = 7
    FRIENDS_PER_PAGE: int = 10
    MAX_PAGE_SIZE: int = 100
    FRIEND_REQUEST_RATE_LIMIT: int = 50
    FRIEND_REQUEST_RATE_WINDOW_HOURS: int = 24
    SUGGESTIONS_LIMIT: int = 10

    # Клиент
    API_BASE_URL: str = "http://localhost:8000"
    CLIENT_TIMEOUT_SECONDS: float = 10.0
    STATUS_CACHE_TTL_SECONDS: float = 60.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
