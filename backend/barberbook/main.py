"""
Главный файл FastAPI приложения
Barber Shop Booking System - движок расписания и записи
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import SessionLocal, init_db
from .models.master import Master
from .models.service import Service
from .routes.booking import router as booking_router
from .routes.settings import router as settings_router
from .services.scheduling import SchedulingService

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


# Начальные услуги (название на трёх языках)
DEFAULT_SERVICES = [
    {"name": {"ru": "Мужская стрижка", "en": "Men's haircut", "kz": "Ерлер шаш қиюы"}, "duration_minutes": 60, "price": 5000},
    {"name": {"ru": "Стрижка бороды", "en": "Beard trim", "kz": "Сақал қию"}, "duration_minutes": 30, "price": 3000},
    {"name": {"ru": "Комплекс (Стрижка + Борода)", "en": "Haircut + Beard", "kz": "Кешен (Шаш + Сақал)"}, "duration_minutes": 90, "price": 7000},
    {"name": {"ru": "Детская стрижка", "en": "Kids haircut", "kz": "Балалар шаш қиюы"}, "duration_minutes": 45, "price": 4000},
]

DEFAULT_MASTERS = ["Айдар", "Тимур"]


def init_default_schedule():
    """Инициализация расписания и настроек салона по умолчанию"""
    db = SessionLocal()
    try:
        schedule_service = SchedulingService(db)
        schedule_service.init_default_schedule()
        schedule_service.get_salon_settings()
        db.commit()
    finally:
        db.close()


def init_default_services():
    """Добавить услуги и мастеров в БД если их нет"""
    db = SessionLocal()
    try:
        if db.query(Service).count() == 0:
            for service_data in DEFAULT_SERVICES:
                db.add(Service(**service_data, is_active=True))
            logger.info(f"Добавлено {len(DEFAULT_SERVICES)} услуг")

        if db.query(Master).count() == 0:
            for name in DEFAULT_MASTERS:
                db.add(Master(name=name, status="active"))
            logger.info(f"Добавлено {len(DEFAULT_MASTERS)} мастеров")

        db.commit()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Создание таблиц в БД
    init_db()
    init_default_schedule()
    init_default_services()
    logger.info(f"{settings.SALON_NAME}: сервис записи запущен ({settings.ENVIRONMENT})")
    yield


# FastAPI приложение
app = FastAPI(
    title=f"{settings.SALON_NAME} - Booking API",
    description="API расписания и онлайн-записи",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Подключение роутеров
app.include_router(booking_router)
app.include_router(settings_router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
