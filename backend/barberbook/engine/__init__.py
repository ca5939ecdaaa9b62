"""
Движок расписания: свободные слоты, назначение мастера, проверка записи.
Чистые функции над SchedulingState, без БД и HTTP
"""
from .timeofday import TimeOfDay
from .types import (
    Appointment,
    AppointmentStatus,
    BreakInterval,
    DaySchedule,
    Master,
    MasterStatus,
    SalonConfig,
    ScheduleMode,
    ScheduleOverride,
    SchedulingState,
    Service,
    ShiftPattern,
    WorkHours,
    WorkWindow,
)
from .resolver import generate_shift_overrides, resolve_work_window, weekday_key
from .slots import (
    filter_slots,
    format_slots,
    generate_slots,
    get_available_dates,
    get_available_slots,
)
from .assignment import RoundRobinAssigner, select_next_master
from .guard import BookingDecision, BookingOutcome, validate_booking
from .booking import BookingRequest, book, reassign, reschedule, update_status

__all__ = [
    "TimeOfDay",
    "Appointment",
    "AppointmentStatus",
    "BreakInterval",
    "DaySchedule",
    "Master",
    "MasterStatus",
    "SalonConfig",
    "ScheduleMode",
    "ScheduleOverride",
    "SchedulingState",
    "Service",
    "ShiftPattern",
    "WorkHours",
    "WorkWindow",
    "generate_shift_overrides",
    "resolve_work_window",
    "weekday_key",
    "filter_slots",
    "format_slots",
    "generate_slots",
    "get_available_dates",
    "get_available_slots",
    "RoundRobinAssigner",
    "select_next_master",
    "BookingDecision",
    "BookingOutcome",
    "validate_booking",
    "BookingRequest",
    "book",
    "reassign",
    "reschedule",
    "update_status",
]
