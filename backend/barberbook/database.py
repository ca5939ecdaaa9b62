"""
Подключение к базе данных (PostgreSQL или SQLite)
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from .config import get_settings

settings = get_settings()

# Создание движка базы данных
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite - для локальной разработки
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=settings.DEBUG
    )
else:
    # PostgreSQL - для продакшена
    engine = create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=settings.DEBUG
    )

# Создание фабрики сессий
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Базовый класс для моделей
Base = declarative_base()


def get_db():
    """
    Сессия на один запрос; движку расписания она передаётся через SchedulingService
    Использование:
        @router.post("/appointments")
        async def create_appointment(data: AppointmentCreate, db: Session = Depends(get_db)):
            decision = SchedulingService(db).create_appointment(request)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Инициализация базы данных
    Создание всех таблиц, определенных в моделях
    """
    from . import models  # noqa: F401  регистрирует таблицы в metadata

    Base.metadata.create_all(bind=engine)
