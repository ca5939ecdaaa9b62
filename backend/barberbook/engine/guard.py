"""
Проверка записи перед сохранением: пересечения и антифрод
"""
import logging
import re
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from .slots import booking_overlaps, day_bookings, is_master_blocked
from .types import Appointment, Master

logger = logging.getLogger(__name__)


class BookingOutcome(str, Enum):
    """Результат попытки записи"""
    ACCEPTED = "accepted"
    SLOT_TAKEN = "slot_taken"
    NO_MASTER_AVAILABLE = "no_master_available"
    CLIENT_BOOKING_LIMIT_EXCEEDED = "client_booking_limit_exceeded"
    CLIENT_BLOCKED = "client_blocked"
    CLOSED_DAY = "closed_day"
    SLOT_UNAVAILABLE = "slot_unavailable"
    UNKNOWN_SERVICE = "unknown_service"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


REJECTION_MESSAGES = {
    BookingOutcome.SLOT_TAKEN: "Это время уже занято. Выберите другой слот",
    BookingOutcome.NO_MASTER_AVAILABLE: "Нет свободного мастера",
    BookingOutcome.CLIENT_BOOKING_LIMIT_EXCEEDED: "У вас уже слишком много активных записей",
    BookingOutcome.CLIENT_BLOCKED: "Запись с этого номера недоступна",
    BookingOutcome.CLOSED_DAY: "В этот день салон не работает",
    BookingOutcome.SLOT_UNAVAILABLE: "Выбранное время недоступно",
    BookingOutcome.UNKNOWN_SERVICE: "Услуга не найдена",
    BookingOutcome.NOT_FOUND: "Запись не найдена",
    BookingOutcome.INVALID_TRANSITION: "Эту запись нельзя изменить",
}


class BookingDecision(BaseModel):
    """Решение по записи: принята или отклонена с причиной"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    outcome: BookingOutcome
    reason: str = ""
    suspicious: bool = False
    appointment: Optional[Appointment] = None
    master: Optional[Master] = None

    @property
    def accepted(self) -> bool:
        return self.outcome == BookingOutcome.ACCEPTED

    @classmethod
    def accept(cls, appointment: Optional[Appointment] = None, **kwargs) -> "BookingDecision":
        return cls(outcome=BookingOutcome.ACCEPTED, appointment=appointment, **kwargs)

    @classmethod
    def reject(cls, outcome: BookingOutcome, reason: Optional[str] = None) -> "BookingDecision":
        return cls(outcome=outcome, reason=reason or REJECTION_MESSAGES.get(outcome, ""))


def normalize_phone(phone: Optional[str]) -> str:
    """Только цифры: "+7 (777) 000-00-00" -> "77770000000" """
    return re.sub(r"\D", "", phone or "")


def active_client_bookings(phone: str, appointments: Iterable[Appointment]) -> List[Appointment]:
    """Активные (не отменённые и не завершённые) записи клиента"""
    digits = normalize_phone(phone)
    if not digits:
        return []
    return [
        apt for apt in appointments
        if apt.is_active and normalize_phone(apt.client_phone) == digits
    ]


def check_client_limits(
    phone: str,
    appointments: Iterable[Appointment],
    blocked_phones: Iterable[str] = (),
    max_active: int = 3,
    suspicious_from: int = 2
) -> BookingDecision:
    """
    Антифрод: заблокированный номер или max_active+ активных записей -> отказ,
    suspicious_from+ активных записей -> запись принимается с пометкой
    """
    digits = normalize_phone(phone)
    if digits and digits in {normalize_phone(p) for p in blocked_phones}:
        logger.info(f"Номер {phone} в чёрном списке")
        return BookingDecision.reject(BookingOutcome.CLIENT_BLOCKED)

    active_count = len(active_client_bookings(phone, appointments))
    if active_count >= max_active:
        logger.info(f"Клиент {phone}: {active_count} активных записей, лимит {max_active}")
        return BookingDecision.reject(
            BookingOutcome.CLIENT_BOOKING_LIMIT_EXCEEDED,
            f"У вас уже {active_count} активных записей. "
            f"Отмените одну из них, чтобы записаться снова"
        )

    return BookingDecision.accept(suspicious=active_count >= suspicious_from)


def check_slot_conflict(
    proposed: Appointment,
    appointments: Iterable[Appointment],
    buffer_minutes: int = 0
) -> BookingDecision:
    """
    Повторная проверка пересечений на момент сохранения.
    Проверяется только мастер, назначенный записи; запись без мастера
    конфликтует с любой пересекающейся записью.
    Буфер добавляется и к проверяемой записи, и к уже существующим
    """
    bookings = day_bookings(appointments, proposed.date, exclude_id=proposed.id)
    start = proposed.time.minutes
    end = start + proposed.total_duration + max(0, buffer_minutes)

    if proposed.master_id is not None:
        blocked = is_master_blocked(proposed.master_id, start, end, bookings, buffer_minutes)
    else:
        blocked = any(booking_overlaps(apt, start, end, buffer_minutes) for apt in bookings)

    if blocked:
        logger.info(
            f"Слот {proposed.date} {proposed.time} уже занят "
            f"(мастер: {proposed.master_id or 'любой'})"
        )
        return BookingDecision.reject(BookingOutcome.SLOT_TAKEN)
    return BookingDecision.accept(proposed)


def validate_booking(
    proposed: Appointment,
    appointments: List[Appointment],
    buffer_minutes: int = 0,
    blocked_phones: Iterable[str] = (),
    max_active: int = 3,
    suspicious_from: int = 2,
    check_client: bool = True
) -> BookingDecision:
    """Полная проверка новой записи: сначала антифрод, потом пересечения"""
    suspicious = False
    if check_client:
        limits = check_client_limits(
            proposed.client_phone,
            [apt for apt in appointments if apt.id != proposed.id],
            blocked_phones,
            max_active,
            suspicious_from
        )
        if not limits.accepted:
            return limits
        suspicious = limits.suspicious

    conflict = check_slot_conflict(proposed, appointments, buffer_minutes)
    if not conflict.accepted:
        return conflict

    return BookingDecision.accept(proposed, suspicious=suspicious)
