"""
Сервис для работы с расписанием и записями.
Загружает состояние салона из БД, вызывает движок и сохраняет результат
"""
import logging
import threading
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import engine
from ..config import get_settings
from ..engine.resolver import generate_shift_overrides
from ..engine.slots import booking_horizon
from ..engine.guard import normalize_phone
from ..engine.types import WEEKDAY_KEYS
from ..models.appointment import Appointment
from ..models.blocked_phone import BlockedPhone
from ..models.master import Master
from ..models.salon_settings import SalonSettings
from ..models.schedule_override import ScheduleOverride
from ..models.service import Service
from ..models.work_schedule import WorkSchedule, DEFAULT_SCHEDULE

settings = get_settings()
logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ["pending", "confirmed", "in_progress"]

# Запись и смена статуса идут по одной; между процессами дополнительно
# блокируется строка настроек салона (SELECT ... FOR UPDATE)
_write_lock = threading.Lock()


def _parse_clock(value) -> Optional[time]:
    """"HH:MM" / time / None -> time или None"""
    parsed = engine.TimeOfDay.parse_or_none(value)
    return parsed.to_time() if parsed else None


def _breaks_to_json(breaks: Sequence[engine.BreakInterval]) -> List[dict]:
    return [
        {"start": b.start.format(), "end": b.end.format()}
        for b in breaks
        if b.is_valid
    ]


class SchedulingService:
    """Сервис управления расписанием"""

    def __init__(self, db: Session):
        self.db = db

    # ==================== Настройки салона ====================

    def get_salon_settings(self, for_update: bool = False) -> SalonSettings:
        """Строка настроек салона; создаётся из .env при первом обращении"""
        query = self.db.query(SalonSettings).filter(SalonSettings.id == settings.SALON_ID)
        if for_update:
            query = query.with_for_update()
        row = query.first()

        if row is None:
            row = SalonSettings(
                id=settings.SALON_ID,
                schedule_mode=settings.SCHEDULE_MODE,
                slot_interval=settings.SLOT_INTERVAL_MINUTES,
                buffer_time=settings.BUFFER_TIME_MINUTES,
                booking_period_months=settings.BOOKING_PERIOD_MONTHS,
                allow_unassigned=settings.ALLOW_UNASSIGNED_BOOKINGS,
                shift_work_days=2,
                shift_off_days=2,
                shift_start_time=time(10, 0),
                shift_end_time=time(20, 0),
                shift_breaks=[],
                last_assigned_master_index=0
            )
            self.db.add(row)
            self.db.flush()
        return row

    def update_salon_settings(self, **fields) -> SalonSettings:
        """Обновить настройки (schedule_mode, slot_interval, buffer_time, ...)"""
        row = self.get_salon_settings()
        for name, value in fields.items():
            if value is not None and hasattr(row, name):
                setattr(row, name, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def get_weekly_schedule(self) -> Dict[str, engine.DaySchedule]:
        """
        Недельный график салона.
        Если день не найден в БД - используем дефолтный
        """
        rows = {row.day_of_week: row for row in self.db.query(WorkSchedule).all()}

        schedule = {}
        for default in DEFAULT_SCHEDULE:
            day_of_week = default["day_of_week"]
            row = rows.get(day_of_week)
            if row:
                is_working = row.is_working_day
                start, end, breaks = row.start_time, row.end_time, row.breaks or []
            else:
                is_working = default["is_working_day"]
                start, end, breaks = default["start_time"], default["end_time"], []

            key = WEEKDAY_KEYS[day_of_week]
            schedule[key] = engine.DaySchedule(start=start, end=end, breaks=breaks) if is_working else engine.DaySchedule()

        return schedule

    def set_weekly_day(
        self,
        day_of_week: int,
        start_time: Optional[time],
        end_time: Optional[time],
        is_working_day: bool = True,
        breaks: Optional[List[dict]] = None
    ) -> WorkSchedule:
        """Установить часы работы на день недели"""
        row = self.db.query(WorkSchedule).filter(WorkSchedule.day_of_week == day_of_week).first()
        if row is None:
            row = WorkSchedule(day_of_week=day_of_week)
            self.db.add(row)

        row.start_time = start_time
        row.end_time = end_time
        row.is_working_day = is_working_day
        row.breaks = breaks or []

        self.db.commit()
        self.db.refresh(row)
        return row

    def init_default_schedule(self):
        """
        Инициализировать расписание по умолчанию
        """
        existing = self.db.query(WorkSchedule).count()
        if existing > 0:
            return  # Расписание уже есть

        for day_data in DEFAULT_SCHEDULE:
            schedule = WorkSchedule(
                day_of_week=day_data["day_of_week"],
                start_time=_parse_clock(day_data["start_time"]),
                end_time=_parse_clock(day_data["end_time"]),
                is_working_day=day_data["is_working_day"],
                breaks=[]
            )
            self.db.add(schedule)

        self.db.commit()

    # ==================== Исключения и сменный график ====================

    def set_override(
        self,
        override_date: date,
        is_working: bool,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        breaks: Optional[List[dict]] = None
    ) -> ScheduleOverride:
        """Задать особый день"""
        row = self.db.query(ScheduleOverride).filter(ScheduleOverride.override_date == override_date).first()
        if row is None:
            row = ScheduleOverride(override_date=override_date)
            self.db.add(row)

        row.is_working = is_working
        row.start_time = start_time if is_working else None
        row.end_time = end_time if is_working else None
        row.breaks = (breaks or []) if is_working else []

        self.db.commit()
        self.db.refresh(row)
        return row

    def clear_overrides(self) -> int:
        """Удалить все исключения (например, при смене режима)"""
        deleted = self.db.query(ScheduleOverride).delete()
        self.db.commit()
        logger.info(f"Удалено исключений из графика: {deleted}")
        return deleted

    def apply_shift_pattern(
        self,
        pattern: engine.ShiftPattern,
        start_date: date,
        period_months: int
    ) -> int:
        """
        Сгенерировать сменный график и переключить салон в режим shift.
        Существующие исключения в периоде перезаписываются
        """
        overrides = generate_shift_overrides(start_date, period_months, pattern)

        existing = {
            row.override_date: row
            for row in self.db.query(ScheduleOverride).filter(
                ScheduleOverride.override_date.in_(list(overrides.keys()))
            ).all()
        }

        for override_date, override in overrides.items():
            row = existing.get(override_date)
            if row is None:
                row = ScheduleOverride(override_date=override_date)
                self.db.add(row)
            row.is_working = override.is_working
            row.start_time = override.start.to_time() if override.start else None
            row.end_time = override.end.to_time() if override.end else None
            row.breaks = _breaks_to_json(override.breaks)

        salon = self.get_salon_settings()
        salon.schedule_mode = engine.ScheduleMode.SHIFT.value
        salon.shift_work_days = pattern.work_days
        salon.shift_off_days = pattern.off_days
        salon.shift_start_time = pattern.work_hours.start.to_time() if pattern.work_hours.start else None
        salon.shift_end_time = pattern.work_hours.end.to_time() if pattern.work_hours.end else None
        salon.shift_breaks = _breaks_to_json(pattern.breaks)

        self.db.commit()
        return len(overrides)

    # ==================== Мастера и чёрный список ====================

    def add_master(self, name: str) -> Master:
        master = Master(name=name, status="active")
        self.db.add(master)
        self.db.commit()
        self.db.refresh(master)
        return master

    def terminate_master(self, master_id: int) -> Optional[Master]:
        master = self.db.query(Master).filter(Master.id == master_id).first()
        if master:
            master.status = engine.MasterStatus.TERMINATED.value
            self.db.flush()

            # Курсор должен оставаться индексом в сократившемся пуле
            pool_size = self.db.query(Master).filter(
                Master.status == engine.MasterStatus.ACTIVE.value
            ).count()
            salon = self.get_salon_settings()
            cursor = salon.last_assigned_master_index or 0
            salon.last_assigned_master_index = cursor % pool_size if pool_size else 0

            self.db.commit()
            logger.info(f"Мастер {master_id} уволен, в ротации {pool_size}")
        return master

    def block_phone(self, phone: str, reason: str = None) -> BlockedPhone:
        """
        Добавить номер в чёрный список
        """
        digits = normalize_phone(phone)
        blocked = self.db.query(BlockedPhone).filter(BlockedPhone.phone == digits).first()
        if blocked:
            return blocked

        blocked = BlockedPhone(phone=digits, reason=reason)
        self.db.add(blocked)
        self.db.commit()
        self.db.refresh(blocked)
        return blocked

    def unblock_phone(self, phone: str) -> bool:
        """
        Убрать номер из чёрного списка
        """
        blocked = self.db.query(BlockedPhone).filter(
            BlockedPhone.phone == normalize_phone(phone)
        ).first()

        if blocked:
            self.db.delete(blocked)
            self.db.commit()
            return True
        return False

    # ==================== Состояние для движка ====================

    def _salon_config(self, row: SalonSettings) -> engine.SalonConfig:
        return engine.SalonConfig(
            schedule_mode=row.schedule_mode,
            weekly_schedule=self.get_weekly_schedule(),
            shift_pattern=engine.ShiftPattern(
                work_days=row.shift_work_days or 1,
                off_days=row.shift_off_days or 0,
                work_hours=engine.WorkHours(
                    start=row.shift_start_time or "10:00",
                    end=row.shift_end_time or "20:00"
                ),
                breaks=row.shift_breaks or []
            ),
            slot_interval=row.slot_interval,
            buffer_time=row.buffer_time,
            booking_period_months=row.booking_period_months,
            allow_unassigned=row.allow_unassigned,
            max_active_bookings=settings.MAX_ACTIVE_BOOKINGS,
            suspicious_active_bookings=settings.SUSPICIOUS_ACTIVE_BOOKINGS
        )

    @staticmethod
    def _to_engine_appointment(row: Appointment) -> engine.Appointment:
        return engine.Appointment(
            id=str(row.id),
            date=row.appointment_date,
            time=row.appointment_time,
            service_ids=[str(service_id) for service_id in (row.service_ids or [])],
            total_duration=row.duration_minutes,
            master_id=str(row.master_id) if row.master_id is not None else None,
            client_phone=row.client_phone or "",
            client_name=row.client_name or "",
            status=row.status,
            completed_at=row.completed_at,
            suspicious=bool(row.suspicious),
            created_at=row.created_at
        )

    def load_state(self, dates: Sequence[date]) -> engine.SchedulingState:
        """
        Снимок состояния салона для движка.
        Записи: все на указанные даты плюс все активные (для антифрода)
        """
        salon = self.get_salon_settings()
        dates = list(dates)

        overrides = {
            row.override_date: engine.ScheduleOverride(
                is_working=row.is_working,
                start=row.start_time,
                end=row.end_time,
                breaks=row.breaks or []
            )
            for row in self.db.query(ScheduleOverride).filter(
                ScheduleOverride.override_date.in_(dates)
            ).all()
        }

        appointments = self.db.query(Appointment).filter(
            or_(
                Appointment.appointment_date.in_(dates),
                Appointment.status.in_(ACTIVE_STATUSES)
            )
        ).all()

        # Порядок мастеров стабилен (по id): от него зависит курсор ротации
        masters = self.db.query(Master).order_by(Master.id).all()
        services = self.db.query(Service).filter(Service.is_active == True).all()  # noqa: E712
        blocked = self.db.query(BlockedPhone).all()

        return engine.SchedulingState(
            config=self._salon_config(salon),
            overrides=overrides,
            appointments=[self._to_engine_appointment(row) for row in appointments],
            masters=[
                engine.Master(id=str(m.id), name=m.name, status=m.status)
                for m in masters
            ],
            services=[
                engine.Service(
                    id=str(s.id),
                    name=s.name,
                    price=float(s.price),
                    duration=s.duration_minutes
                )
                for s in services
            ],
            blocked_phones=[b.phone for b in blocked],
            last_assigned_master_index=salon.last_assigned_master_index or 0
        )

    # ==================== Слоты ====================

    def service_duration(self, service_ids: Sequence[int]) -> Optional[int]:
        """Суммарная длительность услуг; None если услуга не найдена"""
        if not service_ids:
            return None
        rows = {
            s.id: s for s in self.db.query(Service).filter(
                Service.id.in_(list(service_ids)),
                Service.is_active == True  # noqa: E712
            ).all()
        }
        if any(service_id not in rows for service_id in service_ids):
            return None
        return sum(rows[service_id].duration_minutes for service_id in service_ids)

    def get_working_window(self, target_date: date) -> engine.WorkWindow:
        state = self.load_state([target_date])
        config = state.config
        return engine.resolve_work_window(
            target_date,
            config.weekly_schedule,
            config.schedule_mode,
            state.overrides,
            config.shift_pattern
        )

    def get_available_slots(
        self,
        target_date: date,
        service_duration: int,
        master_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[str]:
        """
        Получить все доступные слоты на дату
        Учитывает длительность услуг, буфер, перерывы и занятость мастеров
        """
        state = self.load_state([target_date])
        return engine.get_available_slots(
            state,
            target_date,
            service_duration,
            now=now,
            master_id=str(master_id) if master_id is not None else None
        )

    def get_available_dates(
        self,
        service_duration: int,
        master_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[date]:
        """
        Получить список дат с доступными слотами
        """
        now = now or datetime.now()
        salon = self.get_salon_settings()
        today = now.date()
        last_day = booking_horizon(today, salon.booking_period_months)
        dates = [today + timedelta(days=i) for i in range((last_day - today).days + 1)]

        state = self.load_state(dates)
        return engine.get_available_dates(
            state,
            service_duration,
            now=now,
            master_id=str(master_id) if master_id is not None else None
        )

    # ==================== Записи ====================

    def create_appointment(
        self,
        request: engine.BookingRequest,
        now: Optional[datetime] = None
    ) -> engine.BookingDecision:
        """
        Создать запись. Повторная проверка пересечений выполняется
        на свежих данных под блокировкой, курсор ротации сохраняется
        только при успехе
        """
        with _write_lock:
            salon = self.get_salon_settings(for_update=True)
            state = self.load_state([request.date])

            decision = engine.book(state, request, now=now)
            if not decision.accepted:
                self.db.rollback()
                return decision

            booked = decision.appointment
            total_price = sum(
                state.find_service(service_id).price for service_id in booked.service_ids
            )
            row = Appointment(
                master_id=int(booked.master_id) if booked.master_id is not None else None,
                service_ids=[int(service_id) for service_id in booked.service_ids],
                appointment_date=booked.date,
                appointment_time=booked.time.to_time(),
                duration_minutes=booked.total_duration,
                total_price=total_price,
                client_name=booked.client_name,
                client_phone=booked.client_phone,
                status=booked.status.value,
                suspicious=booked.suspicious
            )
            self.db.add(row)
            salon.last_assigned_master_index = state.last_assigned_master_index
            self.db.commit()
            self.db.refresh(row)

        booked.id = str(row.id)
        booked.created_at = row.created_at
        return decision

    def _find_row(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def _save(self, row: Appointment, booked: engine.Appointment):
        row.appointment_date = booked.date
        row.appointment_time = booked.time.to_time()
        row.master_id = int(booked.master_id) if booked.master_id is not None else None
        row.status = booked.status.value
        row.completed_at = booked.completed_at
        self.db.commit()
        self.db.refresh(row)

    def update_status(
        self,
        appointment_id: int,
        status: str,
        now: Optional[datetime] = None
    ) -> engine.BookingDecision:
        """Подтвердить / начать / завершить / отменить запись"""
        with _write_lock:
            row = self._find_row(appointment_id)
            if row is None:
                return engine.BookingDecision.reject(engine.BookingOutcome.NOT_FOUND)

            state = self.load_state([row.appointment_date])
            decision = engine.update_status(state, str(appointment_id), status, now=now)
            if decision.accepted:
                self._save(row, decision.appointment)
            return decision

    def reschedule(
        self,
        appointment_id: int,
        new_date: date,
        new_time: str,
        now: Optional[datetime] = None
    ) -> engine.BookingDecision:
        """Перенести запись на другое время"""
        with _write_lock:
            row = self._find_row(appointment_id)
            if row is None:
                return engine.BookingDecision.reject(engine.BookingOutcome.NOT_FOUND)

            state = self.load_state({row.appointment_date, new_date})
            decision = engine.reschedule(state, str(appointment_id), new_date, new_time, now=now)
            if decision.accepted:
                self._save(row, decision.appointment)
            return decision

    def reassign(self, appointment_id: int, master_id: int) -> engine.BookingDecision:
        """Передать запись другому мастеру"""
        with _write_lock:
            row = self._find_row(appointment_id)
            if row is None:
                return engine.BookingDecision.reject(engine.BookingOutcome.NOT_FOUND)

            state = self.load_state([row.appointment_date])
            decision = engine.reassign(state, str(appointment_id), str(master_id))
            if decision.accepted:
                self._save(row, decision.appointment)
            return decision
