"""
SQLAlchemy модели для базы данных
"""
from .master import Master
from .service import Service
from .appointment import Appointment
from .work_schedule import WorkSchedule
from .schedule_override import ScheduleOverride
from .salon_settings import SalonSettings
from .blocked_phone import BlockedPhone

__all__ = [
    "Master",
    "Service",
    "Appointment",
    "WorkSchedule",
    "ScheduleOverride",
    "SalonSettings",
    "BlockedPhone"
]
