"""
API роутер для настроек расписания салона
"""
import logging
from datetime import date, datetime, time
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from ..database import get_db
from ..engine import ShiftPattern, WorkHours
from ..services.scheduling import SchedulingService
from .booking import parse_date

router = APIRouter(prefix="/api/settings", tags=["settings"])
logger = logging.getLogger(__name__)

TIME_PATTERN = r"^\d{2}:\d{2}$"


# ==================== Pydantic Schemas ====================

class BreakSchema(BaseModel):
    start: str = Field(..., pattern=TIME_PATTERN)
    end: str = Field(..., pattern=TIME_PATTERN)


class SalonSettingsUpdate(BaseModel):
    schedule_mode: Optional[str] = Field(None, pattern=r"^(weekly|shift)$")
    slot_interval: Optional[int] = Field(None, ge=5, le=240)
    buffer_time: Optional[int] = Field(None, ge=0, le=120)
    booking_period_months: Optional[int] = Field(None, ge=1, le=12)
    allow_unassigned: Optional[bool] = None


class SalonSettingsResponse(BaseModel):
    schedule_mode: str
    slot_interval: int
    buffer_time: int
    booking_period_months: int
    allow_unassigned: bool
    shift_pattern: dict


class WeeklyDayUpdate(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)  # 0=Пн, 6=Вс
    is_working_day: bool = True
    start: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end: Optional[str] = Field(None, pattern=TIME_PATTERN)
    breaks: List[BreakSchema] = []


class OverrideUpdate(BaseModel):
    is_working: bool = True
    start: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end: Optional[str] = Field(None, pattern=TIME_PATTERN)
    breaks: List[BreakSchema] = []


class ShiftPatternCreate(BaseModel):
    work_days: int = Field(2, ge=1, le=7)
    off_days: int = Field(2, ge=1, le=7)
    start: str = Field("10:00", pattern=TIME_PATTERN)
    end: str = Field("20:00", pattern=TIME_PATTERN)
    breaks: List[BreakSchema] = []
    start_date: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    period_months: int = Field(3, ge=1, le=12)


class MasterCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)


class BlockedPhoneCreate(BaseModel):
    phone: str = Field(..., min_length=10, max_length=20)
    reason: Optional[str] = None


# ==================== Helpers ====================

def parse_time(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%H:%M").time()
    except ValueError:
        raise HTTPException(status_code=400, detail="Неверный формат времени. Используйте HH:MM")


def settings_response(schedule_service: SchedulingService) -> SalonSettingsResponse:
    row = schedule_service.get_salon_settings()
    return SalonSettingsResponse(
        schedule_mode=row.schedule_mode,
        slot_interval=row.slot_interval,
        buffer_time=row.buffer_time,
        booking_period_months=row.booking_period_months,
        allow_unassigned=row.allow_unassigned,
        shift_pattern={
            "work_days": row.shift_work_days,
            "off_days": row.shift_off_days,
            "start": row.shift_start_time.strftime("%H:%M") if row.shift_start_time else None,
            "end": row.shift_end_time.strftime("%H:%M") if row.shift_end_time else None,
            "breaks": row.shift_breaks or []
        }
    )


# ==================== API Endpoints ====================

@router.get("", response_model=SalonSettingsResponse)
async def get_salon_settings(db: Session = Depends(get_db)):
    """Текущие настройки расписания"""
    return settings_response(SchedulingService(db))


@router.patch("", response_model=SalonSettingsResponse)
async def update_salon_settings(data: SalonSettingsUpdate, db: Session = Depends(get_db)):
    """Изменить режим, шаг слотов, буфер и горизонт записи"""
    schedule_service = SchedulingService(db)
    schedule_service.update_salon_settings(**data.model_dump(exclude_none=True))
    return settings_response(schedule_service)


@router.put("/weekly")
async def set_weekly_day(data: WeeklyDayUpdate, db: Session = Depends(get_db)):
    """Задать часы работы на день недели"""
    row = SchedulingService(db).set_weekly_day(
        data.day_of_week,
        parse_time(data.start),
        parse_time(data.end),
        data.is_working_day,
        [b.model_dump() for b in data.breaks]
    )
    return {"success": True, "day_of_week": row.day_of_week}


@router.put("/overrides/{date_str}")
async def set_override(date_str: str, data: OverrideUpdate, db: Session = Depends(get_db)):
    """Задать особый день (праздник, выходной, другие часы)"""
    override_date = parse_date(date_str)
    SchedulingService(db).set_override(
        override_date,
        data.is_working,
        parse_time(data.start),
        parse_time(data.end),
        [b.model_dump() for b in data.breaks]
    )
    return {"success": True, "date": date_str}


@router.delete("/overrides")
async def clear_overrides(db: Session = Depends(get_db)):
    """Удалить все особые дни"""
    deleted = SchedulingService(db).clear_overrides()
    return {"success": True, "deleted": deleted}


@router.post("/shift-pattern")
async def apply_shift_pattern(data: ShiftPatternCreate, db: Session = Depends(get_db)):
    """Сгенерировать сменный график (N через M) и включить режим shift"""
    start_date = parse_date(data.start_date) if data.start_date else date.today()
    pattern = ShiftPattern(
        work_days=data.work_days,
        off_days=data.off_days,
        work_hours=WorkHours(start=data.start, end=data.end),
        breaks=[b.model_dump() for b in data.breaks]
    )
    generated = SchedulingService(db).apply_shift_pattern(pattern, start_date, data.period_months)
    logger.info(f"Сменный график {data.work_days}/{data.off_days} с {start_date}: {generated} дней")
    return {"success": True, "days": generated}


@router.post("/masters")
async def add_master(data: MasterCreate, db: Session = Depends(get_db)):
    """Добавить мастера"""
    master = SchedulingService(db).add_master(data.name)
    return {"id": master.id, "name": master.name, "status": master.status}


@router.delete("/masters/{master_id}")
async def terminate_master(master_id: int, db: Session = Depends(get_db)):
    """Уволить мастера (исключается из ротации)"""
    master = SchedulingService(db).terminate_master(master_id)
    if master is None:
        raise HTTPException(status_code=404, detail="Мастер не найден")
    return {"id": master.id, "status": master.status}


@router.post("/blocked-phones")
async def block_phone(data: BlockedPhoneCreate, db: Session = Depends(get_db)):
    """Добавить номер в чёрный список"""
    blocked = SchedulingService(db).block_phone(data.phone, data.reason)
    return {"success": True, "phone": blocked.phone}


@router.delete("/blocked-phones/{phone}")
async def unblock_phone(phone: str, db: Session = Depends(get_db)):
    """Убрать номер из чёрного списка"""
    if not SchedulingService(db).unblock_phone(phone):
        raise HTTPException(status_code=404, detail="Номер не найден")
    return {"success": True}
