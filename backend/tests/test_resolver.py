from datetime import date, timedelta

from barberbook.engine import (
    DaySchedule,
    ScheduleMode,
    ScheduleOverride,
    ShiftPattern,
    TimeOfDay,
    WorkHours,
    generate_shift_overrides,
    resolve_work_window,
    weekday_key,
)
from barberbook.engine.resolver import add_months
from barberbook.engine.types import default_weekly_schedule

from conftest import MONDAY, SUNDAY

WEEKLY = default_weekly_schedule()


def test_weekday_key():
    assert weekday_key(MONDAY) == "monday"
    assert weekday_key(SUNDAY) == "sunday"


def test_weekly_day_without_override():
    window = resolve_work_window(MONDAY, WEEKLY, ScheduleMode.WEEKLY, {})
    assert window.start == TimeOfDay.parse("10:00")
    assert window.end == TimeOfDay.parse("20:00")
    assert window.breaks == []


def test_weekly_day_off():
    assert resolve_work_window(SUNDAY, WEEKLY, ScheduleMode.WEEKLY, {}).is_closed


def test_weekly_override_closes_day():
    overrides = {MONDAY: ScheduleOverride(is_working=False)}
    assert resolve_work_window(MONDAY, WEEKLY, ScheduleMode.WEEKLY, overrides).is_closed


def test_weekly_override_replaces_hours_and_breaks():
    overrides = {MONDAY: ScheduleOverride(start="12:00", end="16:00", breaks=[{"start": "13:00", "end": "13:30"}])}
    window = resolve_work_window(MONDAY, WEEKLY, ScheduleMode.WEEKLY, overrides)
    assert window.start.format() == "12:00"
    assert window.end.format() == "16:00"
    assert [(b.start.format(), b.end.format()) for b in window.breaks] == [("13:00", "13:30")]


def test_weekly_override_without_hours_uses_weekday_hours():
    overrides = {MONDAY: ScheduleOverride(is_working=True)}
    window = resolve_work_window(MONDAY, WEEKLY, ScheduleMode.WEEKLY, overrides)
    assert (window.start.format(), window.end.format()) == ("10:00", "20:00")


def test_shift_mode_ignores_weekly_schedule():
    # Понедельник рабочий по неделе, но исключения нет
    assert resolve_work_window(MONDAY, WEEKLY, ScheduleMode.SHIFT, {}).is_closed


def test_shift_mode_override_falls_back_to_pattern_hours():
    pattern = ShiftPattern(work_hours=WorkHours(start="09:00", end="18:00"))
    overrides = {MONDAY: ScheduleOverride(is_working=True, end="15:00")}
    window = resolve_work_window(MONDAY, WEEKLY, "shift", overrides, pattern)
    assert (window.start.format(), window.end.format()) == ("09:00", "15:00")


def test_shift_mode_day_off():
    overrides = {MONDAY: ScheduleOverride(is_working=False)}
    assert resolve_work_window(MONDAY, WEEKLY, ScheduleMode.SHIFT, overrides).is_closed


def test_malformed_hours_mean_closed_day():
    weekly = dict(WEEKLY, monday=DaySchedule(start="20:00", end="10:00"))
    assert resolve_work_window(MONDAY, weekly, ScheduleMode.WEEKLY, {}).is_closed

    weekly = dict(WEEKLY, monday=DaySchedule(start="10:00", end="oops"))
    assert resolve_work_window(MONDAY, weekly, ScheduleMode.WEEKLY, {}).is_closed


def test_invalid_breaks_are_dropped():
    weekly = dict(WEEKLY, monday=DaySchedule(
        start="10:00",
        end="20:00",
        breaks=[{"start": "14:00", "end": "13:00"}, {"start": "15:00", "end": "15:30"}]
    ))
    window = resolve_work_window(MONDAY, weekly, ScheduleMode.WEEKLY, {})
    assert [b.start.format() for b in window.breaks] == ["15:00"]


def test_add_months_clamps_to_month_end():
    assert add_months(date(2030, 1, 31), 1) == date(2030, 2, 28)
    assert add_months(date(2030, 11, 15), 3) == date(2031, 2, 15)


def test_generate_two_on_two_off():
    pattern = ShiftPattern(
        work_days=2,
        off_days=2,
        work_hours=WorkHours(start="09:00", end="21:00"),
        breaks=[{"start": "14:00", "end": "15:00"}]
    )
    overrides = generate_shift_overrides(MONDAY, 1, pattern)

    assert len(overrides) == (date(2030, 2, 7) - MONDAY).days
    flags = [overrides[MONDAY + timedelta(days=i)].is_working for i in range(8)]
    assert flags == [True, True, False, False, True, True, False, False]

    first = overrides[MONDAY]
    assert (first.start.format(), first.end.format()) == ("09:00", "21:00")
    assert first.breaks[0].start.format() == "14:00"
    assert overrides[MONDAY + timedelta(days=2)].start is None


def test_generated_overrides_drive_shift_mode():
    overrides = generate_shift_overrides(MONDAY, 1, ShiftPattern(work_days=1, off_days=1))
    assert not resolve_work_window(MONDAY, WEEKLY, ScheduleMode.SHIFT, overrides).is_closed
    assert resolve_work_window(MONDAY + timedelta(days=1), WEEKLY, ScheduleMode.SHIFT, overrides).is_closed
    # Воскресенье выходное по неделе, но по сменам рабочее
    assert not resolve_work_window(SUNDAY, WEEKLY, ScheduleMode.SHIFT, overrides).is_closed
