"""
Время суток как целое число минут от полуночи
"""
from datetime import datetime, time
from functools import total_ordering
from typing import Optional, Union

MINUTES_IN_DAY = 24 * 60


@total_ordering
class TimeOfDay:
    """
    Время суток в минутах (0..1439).
    Строки "HH:MM" превращаются в TimeOfDay только на границе (parse/format),
    вся арифметика интервалов идёт по целым минутам.
    """

    __slots__ = ("minutes",)

    def __init__(self, minutes: int):
        if not 0 <= minutes < MINUTES_IN_DAY:
            raise ValueError(f"Время вне суток: {minutes} мин")
        self.minutes = minutes

    @classmethod
    def parse(cls, value: Union[str, time, "TimeOfDay"]) -> "TimeOfDay":
        """Разобрать "HH:MM" (или datetime.time). ValueError на мусоре"""
        if isinstance(value, TimeOfDay):
            return value
        if isinstance(value, time):
            return cls(value.hour * 60 + value.minute)
        if not isinstance(value, str):
            raise ValueError(f"Неверный формат времени: {value!r}")

        parts = value.strip().split(":")
        if len(parts) < 2 or not parts[0].isdigit() or not parts[1].isdigit():
            raise ValueError(f"Неверный формат времени: {value!r}")
        hours, minutes = int(parts[0]), int(parts[1])
        if hours > 23 or minutes > 59:
            raise ValueError(f"Неверный формат времени: {value!r}")
        return cls(hours * 60 + minutes)

    @classmethod
    def parse_or_none(cls, value) -> Optional["TimeOfDay"]:
        """Как parse, но пустое/битое значение -> None (закрытый день)"""
        if value is None or value == "":
            return None
        try:
            return cls.parse(value)
        except ValueError:
            return None

    @classmethod
    def from_datetime(cls, value: datetime) -> "TimeOfDay":
        return cls(value.hour * 60 + value.minute)

    def format(self) -> str:
        return f"{self.minutes // 60:02d}:{self.minutes % 60:02d}"

    def to_time(self) -> time:
        return time(self.minutes // 60, self.minutes % 60)

    def __str__(self):
        return self.format()

    def __repr__(self):
        return f"<TimeOfDay {self.format()}>"

    def __eq__(self, other):
        if not isinstance(other, TimeOfDay):
            return NotImplemented
        return self.minutes == other.minutes

    def __lt__(self, other):
        if not isinstance(other, TimeOfDay):
            return NotImplemented
        return self.minutes < other.minutes

    def __hash__(self):
        return hash(self.minutes)


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Пересечение полуоткрытых интервалов [a) и [b) в минутах"""
    return start_a < end_b and end_a > start_b
