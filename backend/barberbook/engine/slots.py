"""
Генерация и фильтрация временных слотов
"""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from .resolver import add_months, resolve_work_window
from .timeofday import TimeOfDay, overlaps
from .types import (
    Appointment,
    AppointmentStatus,
    Master,
    SchedulingState,
    WorkWindow,
)

logger = logging.getLogger(__name__)

DEFAULT_SLOT_INTERVAL = 30


def generate_slots(window: WorkWindow, interval_minutes: int = DEFAULT_SLOT_INTERVAL) -> List[TimeOfDay]:
    """
    Генерация всех стартов от window.start с шагом interval_minutes, строго до window.end.
    Длительность услуги, буфер и занятость здесь не учитываются
    """
    if window.is_closed:
        return []
    if interval_minutes <= 0:
        interval_minutes = DEFAULT_SLOT_INTERVAL

    return [
        TimeOfDay(minutes)
        for minutes in range(window.start.minutes, window.end.minutes, interval_minutes)
    ]


def format_slots(slots: Iterable[TimeOfDay]) -> List[str]:
    return [slot.format() for slot in slots]


def _naive(value: datetime) -> datetime:
    # Время салона хранится без таймзоны
    return value.replace(tzinfo=None)


def blocking_duration(appointment: Appointment) -> int:
    """
    Сколько минут запись занимает мастера.
    Завершённая раньше срока запись (completed_at в тот же день)
    освобождает остаток своего времени
    """
    duration = appointment.total_duration
    if appointment.status != AppointmentStatus.COMPLETED or appointment.completed_at is None:
        return duration

    completed_at = _naive(appointment.completed_at)
    if completed_at.date() != appointment.date:
        return duration

    started = datetime.combine(appointment.date, appointment.time.to_time())
    elapsed = int((completed_at - started).total_seconds() // 60)
    return min(duration, max(0, elapsed))


def day_bookings(
    appointments: Iterable[Appointment],
    target_date: date,
    exclude_id: Optional[str] = None
) -> List[Appointment]:
    """Неотменённые записи на дату"""
    return [
        apt for apt in appointments
        if apt.date == target_date
        and apt.status != AppointmentStatus.CANCELLED
        and apt.id != exclude_id
    ]


def booking_overlaps(appointment: Appointment, start: int, end: int, buffer_minutes: int = 0) -> bool:
    """
    Пересекает ли запись интервал [start, end).
    Запись занимает мастера на время услуги плюс буфер после неё,
    так что ответ для пары записей не зависит от того, какую проверяем
    """
    occupied = blocking_duration(appointment)
    if occupied <= 0:
        return False
    begin = appointment.time.minutes
    return overlaps(start, end, begin, begin + occupied + max(0, buffer_minutes))


def is_master_blocked(
    master_id: str,
    start: int,
    end: int,
    bookings: Iterable[Appointment],
    buffer_minutes: int = 0
) -> bool:
    """
    Занят ли мастер в интервале [start, end).
    Запись без мастера (данные времён одного мастера) блокирует всех мастеров
    """
    for apt in bookings:
        if apt.master_id is not None and apt.master_id != master_id:
            continue
        if booking_overlaps(apt, start, end, buffer_minutes):
            return True
    return False


def is_slot_blocked(
    start: int,
    end: int,
    bookings: Sequence[Appointment],
    master_id: Optional[str] = None,
    master_pool: Sequence[Master] = (),
    buffer_minutes: int = 0
) -> bool:
    if master_id is not None:
        return is_master_blocked(master_id, start, end, bookings, buffer_minutes)

    if not master_pool:
        # Режим одного мастера: мешает любая пересекающаяся запись
        return any(booking_overlaps(apt, start, end, buffer_minutes) for apt in bookings)

    # "Любой мастер": слот занят, только если заняты все
    return all(
        is_master_blocked(master.id, start, end, bookings, buffer_minutes)
        for master in master_pool
    )


def filter_slots(
    candidates: Iterable[TimeOfDay],
    window: WorkWindow,
    target_date: date,
    service_duration: int,
    buffer_minutes: int,
    appointments: Iterable[Appointment],
    now: Optional[datetime] = None,
    master_id: Optional[str] = None,
    master_pool: Sequence[Master] = ()
) -> List[TimeOfDay]:
    """
    Оставить только доступные слоты, в исходном порядке.

    Слот отбрасывается, если он в прошлом, если услуга с буфером
    не успевает до закрытия, если пересекает перерыв или если мастер
    (или все мастера пула) заняты. Исключений не бросает
    """
    if window.is_closed:
        return []

    now = _naive(now or datetime.now()).replace(second=0, microsecond=0)
    bookings = day_bookings(appointments, target_date)
    breaks = [b for b in window.breaks if b.is_valid]
    occupied = max(0, service_duration) + max(0, buffer_minutes)

    available = []
    for slot in candidates:
        if datetime.combine(target_date, slot.to_time()) <= now:
            continue

        start = slot.minutes
        end = start + occupied
        if start < window.start.minutes or end > window.end.minutes:
            continue

        if any(overlaps(start, end, b.start.minutes, b.end.minutes) for b in breaks):
            continue

        if is_slot_blocked(start, end, bookings, master_id, master_pool, buffer_minutes):
            continue

        available.append(slot)

    return available


def resolve_state_window(state: SchedulingState, target_date: date) -> WorkWindow:
    config = state.config
    return resolve_work_window(
        target_date,
        config.weekly_schedule,
        config.schedule_mode,
        state.overrides,
        config.shift_pattern
    )


def get_available_slots(
    state: SchedulingState,
    target_date: date,
    service_duration: int,
    now: Optional[datetime] = None,
    master_id: Optional[str] = None
) -> List[str]:
    """
    Получить все доступные слоты на дату ("HH:MM").
    Пустой список - выходной или всё занято
    """
    window = resolve_state_window(state, target_date)
    if window.is_closed:
        logger.debug(f"{target_date}: выходной")
        return []

    candidates = generate_slots(window, state.config.slot_interval)
    available = filter_slots(
        candidates,
        window,
        target_date,
        service_duration,
        state.config.buffer_time,
        state.appointments,
        now=now,
        master_id=master_id,
        master_pool=state.active_masters()
    )
    logger.debug(f"{target_date}: свободно {len(available)} из {len(candidates)} слотов")
    return format_slots(available)


def booking_horizon(today: date, period_months: int) -> date:
    """Последняя дата, на которую клиент может записаться"""
    return add_months(today, max(1, period_months))


def get_available_dates(
    state: SchedulingState,
    service_duration: int,
    now: Optional[datetime] = None,
    master_id: Optional[str] = None
) -> List[date]:
    """Получить список дат со свободными слотами в пределах горизонта записи"""
    now = now or datetime.now()
    today = now.date()
    last_day = booking_horizon(today, state.config.booking_period_months)

    available_dates = []
    current = today
    while current <= last_day:
        if get_available_slots(state, current, service_duration, now=now, master_id=master_id):
            available_dates.append(current)
        current += timedelta(days=1)

    return available_dates
