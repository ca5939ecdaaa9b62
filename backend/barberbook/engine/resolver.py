"""
Определение рабочего окна на дату и генератор сменного графика
"""
import calendar
import logging
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional

from .timeofday import TimeOfDay
from .types import (
    WEEKDAY_KEYS,
    BreakInterval,
    DaySchedule,
    ScheduleMode,
    ScheduleOverride,
    ShiftPattern,
    WorkWindow,
)

logger = logging.getLogger(__name__)


def weekday_key(target_date: date) -> str:
    """Ключ дня недели ("monday".."sunday") для даты"""
    # Python: понедельник = 0, воскресенье = 6
    return WEEKDAY_KEYS[target_date.weekday()]


def _valid_breaks(breaks: List[BreakInterval]) -> List[BreakInterval]:
    return [b for b in breaks if b.is_valid]


def _make_window(
    start: Optional[TimeOfDay],
    end: Optional[TimeOfDay],
    breaks: List[BreakInterval]
) -> WorkWindow:
    window = WorkWindow(start=start, end=end, breaks=_valid_breaks(breaks))
    if window.is_closed:
        if start is not None and end is not None:
            logger.warning(f"Некорректные часы работы {start}-{end}, день считается выходным")
        return WorkWindow.closed()
    return window


def resolve_work_window(
    target_date: date,
    weekly_schedule: Mapping[str, DaySchedule],
    schedule_mode: ScheduleMode,
    overrides: Mapping[date, ScheduleOverride],
    shift_pattern: Optional[ShiftPattern] = None
) -> WorkWindow:
    """
    Получить рабочее окно (начало, конец, перерывы) на конкретную дату.

    В режиме shift источник правды только исключения по датам:
    нет исключения или is_working=False -> выходной, недельный график не смотрим.
    В режиме weekly исключение полностью заменяет день, иначе берём
    день недели из недельного графика.
    """
    override = overrides.get(target_date)

    if ScheduleMode(schedule_mode) == ScheduleMode.SHIFT:
        if override is None or not override.is_working:
            return WorkWindow.closed()

        pattern = shift_pattern or ShiftPattern()
        start = override.start or pattern.work_hours.start
        end = override.end or pattern.work_hours.end
        return _make_window(start, end, override.breaks)

    day = weekly_schedule.get(weekday_key(target_date)) or DaySchedule()

    if override is not None:
        if not override.is_working:
            return WorkWindow.closed()
        start = override.start or day.start
        end = override.end or day.end
        return _make_window(start, end, override.breaks)

    return _make_window(day.start, day.end, day.breaks)


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    # 31 января + 1 месяц -> последний день февраля
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def generate_shift_overrides(
    start_date: date,
    period_months: int,
    pattern: ShiftPattern
) -> Dict[date, ScheduleOverride]:
    """
    Сгенерировать исключения по датам из цикла "N рабочих / M выходных".

    День с номером i от start_date рабочий, если i % (N + M) < N.
    Рабочие дни получают часы и перерывы шаблона, выходные закрыты.
    """
    end_date = add_months(start_date, period_months)
    cycle_length = pattern.work_days + pattern.off_days

    overrides = {}
    current = start_date
    day_counter = 0
    while current < end_date:
        is_working = day_counter % cycle_length < pattern.work_days
        if is_working:
            overrides[current] = ScheduleOverride(
                is_working=True,
                start=pattern.work_hours.start,
                end=pattern.work_hours.end,
                breaks=[b.model_copy() for b in pattern.breaks]
            )
        else:
            overrides[current] = ScheduleOverride(is_working=False)
        current += timedelta(days=1)
        day_counter += 1

    logger.info(
        f"Сгенерирован сменный график {pattern.work_days}/{pattern.off_days} "
        f"с {start_date} по {end_date}: {len(overrides)} дней"
    )
    return overrides
