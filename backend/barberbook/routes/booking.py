"""
API роутер для слотов и записей
"""
import logging
from datetime import date, datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from ..database import get_db
from ..engine import BookingDecision, BookingOutcome, BookingRequest
from ..engine.slots import booking_horizon
from ..models.service import Service
from ..services.scheduling import SchedulingService

router = APIRouter(prefix="/api", tags=["booking"])
logger = logging.getLogger(__name__)


# ==================== Pydantic Schemas ====================

class ServiceResponse(BaseModel):
    id: int
    name: str
    duration_minutes: int
    price: float


class ScheduleResponse(BaseModel):
    date: str  # "YYYY-MM-DD"
    is_working_day: bool
    working_hours: Optional[dict] = None  # {"start": "10:00", "end": "20:00"}
    breaks: List[dict] = []
    slots: List[str]  # ["10:00", "10:30", ...]


class AppointmentCreate(BaseModel):
    service_ids: List[int] = Field(..., min_length=1)
    appointment_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")  # YYYY-MM-DD
    appointment_time: str = Field(..., pattern=r"^\d{2}:\d{2}$")  # HH:MM
    master_id: Optional[int] = None  # None = любой мастер
    client_name: str = Field(..., min_length=2, max_length=100)
    client_phone: str = Field(..., min_length=10, max_length=20)
    booked_by_master: bool = False


class AppointmentResponse(BaseModel):
    id: int
    appointment_date: str
    appointment_time: str
    service_ids: List[int]
    duration_minutes: int
    master_id: Optional[int]
    status: str
    suspicious: bool


class StatusUpdate(BaseModel):
    status: str = Field(..., pattern=r"^(pending|confirmed|in_progress|completed|cancelled)$")


class AppointmentReschedule(BaseModel):
    new_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    new_time: str = Field(..., pattern=r"^\d{2}:\d{2}$")


class MasterReassign(BaseModel):
    master_id: int


# ==================== Helpers ====================

def parse_date(date_str: str) -> date:
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(status_code=400, detail="Неверный формат даты. Используйте YYYY-MM-DD")


def parse_service_ids(service_ids: Optional[str]) -> List[int]:
    """"1,3" -> [1, 3]"""
    if not service_ids:
        return []
    try:
        return [int(part) for part in service_ids.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail="Неверный список услуг")


def resolve_duration(schedule_service: SchedulingService, service_ids: List[int]) -> int:
    if not service_ids:
        return schedule_service.get_salon_settings().slot_interval
    duration = schedule_service.service_duration(service_ids)
    if duration is None:
        raise HTTPException(status_code=404, detail="Услуга не найдена")
    return duration


def check_horizon(schedule_service: SchedulingService, target_date: date):
    """Дата не в прошлом и не дальше горизонта записи"""
    today = date.today()
    if target_date < today:
        raise HTTPException(status_code=400, detail="Нельзя записаться на прошедшую дату")

    months = schedule_service.get_salon_settings().booking_period_months
    if target_date > booking_horizon(today, months):
        raise HTTPException(
            status_code=400,
            detail=f"Запись возможна максимум на {months} мес. вперёд"
        )


OUTCOME_STATUS_CODES = {
    BookingOutcome.NOT_FOUND: 404,
    BookingOutcome.UNKNOWN_SERVICE: 404,
    BookingOutcome.SLOT_TAKEN: 409,
}


def raise_for_decision(decision: BookingDecision):
    if decision.accepted:
        return
    status_code = OUTCOME_STATUS_CODES.get(decision.outcome, 400)
    raise HTTPException(
        status_code=status_code,
        detail={"code": decision.outcome.value, "message": decision.reason}
    )


def to_response(decision: BookingDecision) -> AppointmentResponse:
    apt = decision.appointment
    return AppointmentResponse(
        id=int(apt.id),
        appointment_date=apt.date.strftime("%Y-%m-%d"),
        appointment_time=apt.time.format(),
        service_ids=[int(service_id) for service_id in apt.service_ids],
        duration_minutes=apt.total_duration,
        master_id=int(apt.master_id) if apt.master_id is not None else None,
        status=apt.status.value,
        suspicious=apt.suspicious
    )


# ==================== API Endpoints ====================

@router.get("/services", response_model=List[ServiceResponse])
async def get_services(lang: str = Query("ru"), db: Session = Depends(get_db)):
    """Получить список активных услуг"""
    services = db.query(Service).filter(Service.is_active == True).all()  # noqa: E712
    result = []
    for service in services:
        name = service.name
        if isinstance(name, dict):
            name = name.get(lang) or name.get("ru") or next(iter(name.values()), "")
        result.append(ServiceResponse(
            id=service.id,
            name=name,
            duration_minutes=service.duration_minutes,
            price=float(service.price)
        ))
    return result


@router.get("/schedule/{date_str}", response_model=ScheduleResponse)
async def get_schedule(
    date_str: str,
    service_ids: Optional[str] = Query(None, description="ID услуг через запятую"),
    master_id: Optional[int] = Query(None, description="ID мастера, пусто = любой"),
    db: Session = Depends(get_db)
):
    """Получить расписание на дату с доступными слотами"""
    target_date = parse_date(date_str)
    schedule_service = SchedulingService(db)
    check_horizon(schedule_service, target_date)

    duration = resolve_duration(schedule_service, parse_service_ids(service_ids))
    window = schedule_service.get_working_window(target_date)

    if window.is_closed:
        return ScheduleResponse(
            date=date_str,
            is_working_day=False,
            working_hours=None,
            slots=[]
        )

    slots = schedule_service.get_available_slots(target_date, duration, master_id=master_id)

    return ScheduleResponse(
        date=date_str,
        is_working_day=True,
        working_hours={"start": window.start.format(), "end": window.end.format()},
        breaks=[{"start": b.start.format(), "end": b.end.format()} for b in window.breaks],
        slots=slots
    )


@router.get("/schedule/dates/available", response_model=List[str])
async def get_available_dates(
    service_ids: Optional[str] = Query(None),
    master_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    """Получить список дат с доступными слотами"""
    schedule_service = SchedulingService(db)
    duration = resolve_duration(schedule_service, parse_service_ids(service_ids))
    dates = schedule_service.get_available_dates(duration, master_id=master_id)
    return [d.strftime("%Y-%m-%d") for d in dates]


@router.post("/appointments", response_model=AppointmentResponse)
async def create_appointment(data: AppointmentCreate, db: Session = Depends(get_db)):
    """Создать новую запись на прием"""
    apt_date = parse_date(data.appointment_date)
    schedule_service = SchedulingService(db)
    check_horizon(schedule_service, apt_date)

    try:
        request = BookingRequest(
            date=apt_date,
            time=data.appointment_time,
            service_ids=[str(service_id) for service_id in data.service_ids],
            master_id=str(data.master_id) if data.master_id is not None else None,
            client_phone=data.client_phone,
            client_name=data.client_name,
            booked_by_master=data.booked_by_master
        )
    except ValueError:
        raise HTTPException(status_code=400, detail="Неверный формат времени")

    decision = schedule_service.create_appointment(request)
    raise_for_decision(decision)
    return to_response(decision)


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    data: StatusUpdate,
    db: Session = Depends(get_db)
):
    """Подтвердить, начать, завершить или отменить запись"""
    decision = SchedulingService(db).update_status(appointment_id, data.status)
    raise_for_decision(decision)
    return to_response(decision)


@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: int,
    data: AppointmentReschedule,
    db: Session = Depends(get_db)
):
    """Перенести запись"""
    new_date = parse_date(data.new_date)
    schedule_service = SchedulingService(db)
    check_horizon(schedule_service, new_date)

    try:
        decision = schedule_service.reschedule(appointment_id, new_date, data.new_time)
    except ValueError:
        raise HTTPException(status_code=400, detail="Неверный формат времени")
    raise_for_decision(decision)
    return to_response(decision)


@router.patch("/appointments/{appointment_id}/master", response_model=AppointmentResponse)
async def reassign_appointment(
    appointment_id: int,
    data: MasterReassign,
    db: Session = Depends(get_db)
):
    """Передать запись другому мастеру"""
    decision = SchedulingService(db).reassign(appointment_id, data.master_id)
    raise_for_decision(decision)
    return to_response(decision)
