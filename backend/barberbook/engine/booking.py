"""
Создание и изменение записей поверх SchedulingState
"""
import logging
import uuid
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .assignment import RoundRobinAssigner
from .guard import (
    BookingDecision,
    BookingOutcome,
    check_client_limits,
    check_slot_conflict,
    validate_booking,
)
from .slots import filter_slots, resolve_state_window
from .timeofday import TimeOfDay
from .types import Appointment, AppointmentStatus, Master, SchedulingState

logger = logging.getLogger(__name__)


class BookingRequest(BaseModel):
    """Запрос на запись от клиента или мастера"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    date: date
    time: TimeOfDay
    service_ids: List[str] = Field(default_factory=list)
    master_id: Optional[str] = None  # None = "любой мастер"
    client_phone: str = ""
    client_name: str = ""
    booked_by_master: bool = False

    @field_validator("time", mode="before")
    @classmethod
    def _parse_start(cls, value):
        return TimeOfDay.parse(value)


def resolve_total_duration(state: SchedulingState, service_ids: Sequence[str]) -> Optional[int]:
    """Суммарная длительность услуг; None, если услуга не найдена или список пуст"""
    if not service_ids:
        return None
    total = 0
    for service_id in service_ids:
        service = state.find_service(service_id)
        if service is None:
            return None
        total += service.duration
    return total


def _slot_fits_window(
    state: SchedulingState,
    target_date: date,
    slot_time: TimeOfDay,
    duration: int,
    now: datetime
) -> Optional[BookingOutcome]:
    """Проверка слота без учёта записей: выходной, прошлое, закрытие, перерывы"""
    window = resolve_state_window(state, target_date)
    if window.is_closed:
        return BookingOutcome.CLOSED_DAY
    if not filter_slots([slot_time], window, target_date, duration, state.config.buffer_time, [], now=now):
        return BookingOutcome.SLOT_UNAVAILABLE
    return None


def _pick_master(
    state: SchedulingState,
    assigner: RoundRobinAssigner,
    proposal: Appointment
) -> Tuple[Optional[int], Master]:
    """
    Round-robin с повторной проверкой пересечений.
    Если выбранный по кругу мастер занят по длительности, пробуем
    следующего по кругу; курсор при этом не сдвигается
    """
    cursor = state.last_assigned_master_index
    tried = set()
    first = None
    for _ in range(len(state.active_masters())):
        index, master = assigner.select(proposal.date, proposal.time, cursor)
        if index in tried:
            break
        tried.add(index)
        if first is None:
            first = (index, master)

        candidate = proposal.model_copy(update={"master_id": master.id})
        if check_slot_conflict(candidate, state.appointments, state.config.buffer_time).accepted:
            return index, master
        cursor = index

    return first


def book(state: SchedulingState, request: BookingRequest, now: Optional[datetime] = None) -> BookingDecision:
    """
    Создать запись.

    Порядок: услуги -> антифрод -> рабочее окно -> мастер (конкретный
    или по кругу) -> финальная проверка пересечений -> сохранение
    в state и сдвиг курсора ротации
    """
    now = now or datetime.now()
    config = state.config

    duration = resolve_total_duration(state, request.service_ids)
    if duration is None:
        return BookingDecision.reject(BookingOutcome.UNKNOWN_SERVICE)

    with state.lock:
        limits = check_client_limits(
            request.client_phone,
            state.appointments,
            state.blocked_phones,
            config.max_active_bookings,
            config.suspicious_active_bookings
        )
        if not limits.accepted:
            return limits

        problem = _slot_fits_window(state, request.date, request.time, duration, now)
        if problem is not None:
            return BookingDecision.reject(problem)

        proposal = Appointment(
            id=uuid.uuid4().hex,
            date=request.date,
            time=request.time,
            service_ids=list(request.service_ids),
            total_duration=duration,
            client_phone=request.client_phone,
            client_name=request.client_name,
            status=AppointmentStatus.CONFIRMED if request.booked_by_master else AppointmentStatus.PENDING,
            created_at=now
        )

        pool = state.active_masters()
        assigner = RoundRobinAssigner(state)
        master = None
        index = None
        if request.master_id is not None:
            master = next((m for m in pool if m.id == request.master_id), None)
            if master is None:
                return BookingDecision.reject(BookingOutcome.NO_MASTER_AVAILABLE, "Мастер недоступен")
        elif pool:
            index, master = _pick_master(state, assigner, proposal)
        elif not config.allow_unassigned:
            return BookingDecision.reject(BookingOutcome.NO_MASTER_AVAILABLE)

        proposal.master_id = master.id if master else None

        decision = validate_booking(
            proposal,
            state.appointments,
            config.buffer_time,
            state.blocked_phones,
            config.max_active_bookings,
            config.suspicious_active_bookings
        )
        if not decision.accepted:
            return decision

        proposal.suspicious = decision.suspicious
        state.appointments.append(proposal)
        if index is not None:
            assigner.commit(index)

    if proposal.suspicious:
        logger.warning(f"Подозрительная запись {proposal.id}: у клиента {proposal.client_phone} уже есть активные записи")
    logger.info(
        f"Запись {proposal.id} на {proposal.date} {proposal.time} "
        f"({duration} мин), мастер: {proposal.master_id or 'не назначен'}"
    )
    return BookingDecision.accept(proposal, suspicious=proposal.suspicious, master=master)


def update_status(
    state: SchedulingState,
    appointment_id: str,
    status: Union[AppointmentStatus, str],
    now: Optional[datetime] = None
) -> BookingDecision:
    """
    Сменить статус записи (подтвердить, начать, завершить, отменить).
    При завершении фиксируется фактическое время окончания
    """
    now = now or datetime.now()
    status = AppointmentStatus(status)

    with state.lock:
        appointment = state.find_appointment(appointment_id)
        if appointment is None:
            return BookingDecision.reject(BookingOutcome.NOT_FOUND)

        if not appointment.is_active and status != appointment.status:
            return BookingDecision.reject(BookingOutcome.INVALID_TRANSITION)

        if status in (AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS):
            conflict = check_slot_conflict(appointment, state.appointments, state.config.buffer_time)
            if not conflict.accepted:
                return conflict

        if status == AppointmentStatus.COMPLETED and appointment.completed_at is None:
            appointment.completed_at = now
        appointment.status = status

    logger.info(f"Запись {appointment_id}: статус {status.value}")
    return BookingDecision.accept(appointment)


def reschedule(
    state: SchedulingState,
    appointment_id: str,
    new_date: date,
    new_time: Union[TimeOfDay, str],
    now: Optional[datetime] = None
) -> BookingDecision:
    """Перенести запись; после переноса она снова ждёт подтверждения"""
    now = now or datetime.now()
    new_time = TimeOfDay.parse(new_time)

    with state.lock:
        appointment = state.find_appointment(appointment_id)
        if appointment is None:
            return BookingDecision.reject(BookingOutcome.NOT_FOUND)
        if not appointment.is_active:
            return BookingDecision.reject(BookingOutcome.INVALID_TRANSITION)

        problem = _slot_fits_window(state, new_date, new_time, appointment.total_duration, now)
        if problem is not None:
            return BookingDecision.reject(problem)

        proposed = appointment.model_copy(update={"date": new_date, "time": new_time})
        conflict = check_slot_conflict(proposed, state.appointments, state.config.buffer_time)
        if not conflict.accepted:
            return conflict

        appointment.date = new_date
        appointment.time = new_time
        appointment.status = AppointmentStatus.PENDING

    logger.info(f"Запись {appointment_id} перенесена на {new_date} {new_time}")
    return BookingDecision.accept(appointment)


def reassign(state: SchedulingState, appointment_id: str, master_id: str) -> BookingDecision:
    """Передать запись другому мастеру"""
    with state.lock:
        appointment = state.find_appointment(appointment_id)
        if appointment is None:
            return BookingDecision.reject(BookingOutcome.NOT_FOUND)
        if not appointment.is_active:
            return BookingDecision.reject(BookingOutcome.INVALID_TRANSITION)

        master = next((m for m in state.active_masters() if m.id == master_id), None)
        if master is None:
            return BookingDecision.reject(BookingOutcome.NO_MASTER_AVAILABLE, "Мастер недоступен")

        proposed = appointment.model_copy(update={"master_id": master.id})
        conflict = check_slot_conflict(proposed, state.appointments, state.config.buffer_time)
        if not conflict.accepted:
            return conflict

        appointment.master_id = master.id

    logger.info(f"Запись {appointment_id} передана мастеру {master_id}")
    return BookingDecision.accept(appointment, master=master)
