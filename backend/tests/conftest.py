"""
Общие фикстуры тестов
"""
from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from barberbook import models  # noqa: F401  регистрирует таблицы
from barberbook.database import Base, get_db
from barberbook.engine import (
    Appointment,
    DaySchedule,
    Master,
    SalonConfig,
    SchedulingState,
    Service,
)

# 2030-01-07 - понедельник
MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 13)
NOW = datetime(2030, 1, 1, 9, 0)


def make_appointment(apt_id, start, duration=60, master_id=None, target_date=MONDAY, **kwargs):
    return Appointment(
        id=apt_id,
        date=target_date,
        time=start,
        total_duration=duration,
        master_id=master_id,
        **kwargs
    )


def make_state(masters=("m1", "m2"), appointments=(), buffer_time=0, slot_interval=30, **config):
    weekly = {
        "monday": DaySchedule(start="10:00", end="20:00"),
        "tuesday": DaySchedule(start="10:00", end="20:00"),
        "wednesday": DaySchedule(start="10:00", end="20:00"),
        "thursday": DaySchedule(start="10:00", end="20:00"),
        "friday": DaySchedule(start="10:00", end="20:00"),
        "saturday": DaySchedule(start="11:00", end="18:00"),
        "sunday": DaySchedule(),
    }
    return SchedulingState(
        config=SalonConfig(
            weekly_schedule=weekly,
            buffer_time=buffer_time,
            slot_interval=slot_interval,
            **config
        ),
        masters=[Master(id=master_id, name=master_id) for master_id in masters],
        services=[
            Service(id="haircut", name={"ru": "Мужская стрижка", "en": "Men's haircut"}, price=5000, duration=60),
            Service(id="beard", name="Стрижка бороды", price=3000, duration=30),
        ],
        appointments=list(appointments),
    )


@pytest.fixture
def state():
    return make_state()


@pytest.fixture
def db_session():
    """Чистая SQLite в памяти на каждый тест"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def seeded_db(db_session):
    """БД с расписанием по умолчанию, двумя услугами и двумя мастерами"""
    from barberbook.models.master import Master as MasterRow
    from barberbook.models.service import Service as ServiceRow
    from barberbook.services.scheduling import SchedulingService

    SchedulingService(db_session).init_default_schedule()
    db_session.add_all([
        ServiceRow(name={"ru": "Мужская стрижка", "en": "Men's haircut"}, duration_minutes=60, price=5000, is_active=True),
        ServiceRow(name="Стрижка бороды", duration_minutes=30, price=3000, is_active=True),
        MasterRow(name="Айдар", status="active"),
        MasterRow(name="Тимур", status="active"),
    ])
    db_session.commit()
    return db_session


@pytest.fixture
def client(seeded_db):
    from fastapi.testclient import TestClient
    from barberbook.main import app

    def override_get_db():
        yield seeded_db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
