"""
Конфигурация приложения
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path


class Settings(BaseSettings):
    """Настройки приложения"""

    # Database
    DATABASE_URL: str = "sqlite:///./barberbook.db"

    # Salon
    SALON_NAME: str = "Barber Shop #1"
    SALON_ID: int = 1

    # Booking Settings (значения по умолчанию, пока настройки салона не сохранены в БД)
    SLOT_INTERVAL_MINUTES: int = 30
    BUFFER_TIME_MINUTES: int = 10
    BOOKING_PERIOD_MONTHS: int = 1  # 1, 3, 6, 12
    SCHEDULE_MODE: str = "weekly"  # weekly | shift
    ALLOW_UNASSIGNED_BOOKINGS: bool = True

    # Anti-fraud
    MAX_ACTIVE_BOOKINGS: int = 3
    SUSPICIOUS_ACTIVE_BOOKINGS: int = 2

    # Development
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    class Config:
        # Путь к .env относительно корня проекта
        env_file = Path(__file__).resolve().parent.parent.parent / ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Получить настройки приложения (с кешированием)"""
    return Settings()
