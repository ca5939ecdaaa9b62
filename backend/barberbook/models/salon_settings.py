"""
Модель настроек салона
"""
from sqlalchemy import Column, Integer, String, Time, Boolean, JSON, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class SalonSettings(Base):
    """
    Настройки салона (одна строка на салон).
    Здесь же хранится курсор ротации мастеров.
    """

    __tablename__ = "salon_settings"

    id = Column(Integer, primary_key=True, index=True)
    schedule_mode = Column(String(10), default="weekly")  # weekly, shift
    slot_interval = Column(Integer, default=30)
    buffer_time = Column(Integer, default=10)
    booking_period_months = Column(Integer, default=1)
    allow_unassigned = Column(Boolean, default=True)

    # Сменный график
    shift_work_days = Column(Integer, default=2)
    shift_off_days = Column(Integer, default=2)
    shift_start_time = Column(Time, nullable=True)
    shift_end_time = Column(Time, nullable=True)
    shift_breaks = Column(JSON, nullable=False, default=list)

    last_assigned_master_index = Column(Integer, nullable=False, default=0)
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SalonSettings {self.schedule_mode} шаг {self.slot_interval} мин, буфер {self.buffer_time} мин>"
