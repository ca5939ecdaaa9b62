"""
Типы данных движка расписания
"""
import threading
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Dict, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from .timeofday import TimeOfDay

WEEKDAY_KEYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class ScheduleMode(str, Enum):
    """Режим расписания салона"""
    WEEKLY = "weekly"  # недельный график + исключения по датам
    SHIFT = "shift"    # только явные исключения (сменный график)


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MasterStatus(str, Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"


def _parse_time(value):
    return TimeOfDay.parse_or_none(value)


# Пустое или битое "HH:MM" превращается в None
OptionalTime = Annotated[Optional[TimeOfDay], BeforeValidator(_parse_time)]


class _TimeModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class BreakInterval(_TimeModel):
    """Перерыв внутри рабочего дня"""

    start: OptionalTime = None
    end: OptionalTime = None

    @property
    def is_valid(self) -> bool:
        return self.start is not None and self.end is not None and self.start < self.end


class WorkWindow(_TimeModel):
    """Рабочее окно на конкретную дату. Пустые start/end = выходной"""

    start: OptionalTime = None
    end: OptionalTime = None
    breaks: List[BreakInterval] = Field(default_factory=list)

    @classmethod
    def closed(cls) -> "WorkWindow":
        return cls()

    @property
    def is_closed(self) -> bool:
        # start >= end считаем закрытым днём, а не ошибкой
        return self.start is None or self.end is None or self.start >= self.end


class DaySchedule(_TimeModel):
    """День недельного графика"""

    start: OptionalTime = None
    end: OptionalTime = None
    breaks: List[BreakInterval] = Field(default_factory=list)


class WorkHours(_TimeModel):
    start: OptionalTime = TimeOfDay(10 * 60)
    end: OptionalTime = TimeOfDay(20 * 60)


class ShiftPattern(BaseModel):
    """Сменный график: N рабочих / M выходных"""

    work_days: int = Field(2, ge=1)
    off_days: int = Field(2, ge=0)
    work_hours: WorkHours = Field(default_factory=WorkHours)
    breaks: List[BreakInterval] = Field(default_factory=list)


class ScheduleOverride(_TimeModel):
    """Исключение из графика на конкретную дату (праздник, особая смена)"""

    is_working: bool = True
    start: OptionalTime = None
    end: OptionalTime = None
    breaks: List[BreakInterval] = Field(default_factory=list)


# Название услуги: {"ru": ..., "en": ...} или просто строка (старые данные)
ServiceName = Union[Dict[str, str], str]


class Service(BaseModel):
    id: str
    name: ServiceName = ""
    price: float = 0
    duration: int = Field(60, ge=0)  # минуты

    def display_name(self, language: str = "ru") -> str:
        if isinstance(self.name, str):
            return self.name
        return self.name.get(language) or self.name.get("ru") or next(iter(self.name.values()), "")


class Master(BaseModel):
    id: str
    name: str = ""
    status: MasterStatus = MasterStatus.ACTIVE


class Appointment(_TimeModel):
    """Запись клиента"""

    id: str
    date: date
    time: TimeOfDay
    service_ids: List[str] = Field(default_factory=list)
    total_duration: int = 60
    master_id: Optional[str] = None  # None = старые данные / "любой мастер"
    client_phone: str = ""
    client_name: str = ""
    status: AppointmentStatus = AppointmentStatus.PENDING
    completed_at: Optional[datetime] = None
    suspicious: bool = False
    created_at: Optional[datetime] = None

    @field_validator("time", mode="before")
    @classmethod
    def _parse_start(cls, value):
        return TimeOfDay.parse(value)

    @property
    def is_active(self) -> bool:
        return self.status not in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED)


def default_weekly_schedule() -> Dict[str, DaySchedule]:
    return {
        "monday": DaySchedule(start="10:00", end="20:00"),
        "tuesday": DaySchedule(start="10:00", end="20:00"),
        "wednesday": DaySchedule(start="10:00", end="20:00"),
        "thursday": DaySchedule(start="10:00", end="20:00"),
        "friday": DaySchedule(start="10:00", end="20:00"),
        "saturday": DaySchedule(start="11:00", end="18:00"),
        "sunday": DaySchedule(),
    }


class SalonConfig(BaseModel):
    """Настройки салона, которые читает движок"""

    schedule_mode: ScheduleMode = ScheduleMode.WEEKLY
    weekly_schedule: Dict[str, DaySchedule] = Field(default_factory=default_weekly_schedule)
    shift_pattern: ShiftPattern = Field(default_factory=ShiftPattern)
    slot_interval: int = 30
    buffer_time: int = Field(10, ge=0)
    booking_period_months: int = 1
    allow_unassigned: bool = True
    max_active_bookings: int = 3
    suspicious_active_bookings: int = 2


class SchedulingState(BaseModel):
    """
    Всё состояние салона, с которым работает движок.
    Передаётся явно в каждую функцию движка, глобальных данных нет.
    """

    config: SalonConfig = Field(default_factory=SalonConfig)
    overrides: Dict[date, ScheduleOverride] = Field(default_factory=dict)
    appointments: List[Appointment] = Field(default_factory=list)
    masters: List[Master] = Field(default_factory=list)
    services: List[Service] = Field(default_factory=list)
    blocked_phones: List[str] = Field(default_factory=list)
    last_assigned_master_index: int = 0

    _lock = PrivateAttr(default_factory=threading.RLock)

    @model_validator(mode="after")
    def _normalize_cursor(self):
        # Пул мог сократиться после увольнения мастера
        pool_size = len(self.active_masters())
        self.last_assigned_master_index = self.last_assigned_master_index % pool_size if pool_size else 0
        return self

    @property
    def lock(self):
        """Блокировка курсора ротации (в пределах салона)"""
        return self._lock

    def active_masters(self) -> List[Master]:
        return [m for m in self.masters if m.status == MasterStatus.ACTIVE]

    def find_appointment(self, appointment_id: str) -> Optional[Appointment]:
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        return None

    def find_service(self, service_id: str) -> Optional[Service]:
        for service in self.services:
            if service.id == service_id:
                return service
        return None
