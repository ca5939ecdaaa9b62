"""
Модель исключений из графика по датам
"""
from sqlalchemy import Column, Integer, Date, Time, Boolean, JSON, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class ScheduleOverride(Base):
    """Особый день: праздник, выходной или смена из сменного графика"""

    __tablename__ = "schedule_overrides"

    id = Column(Integer, primary_key=True, index=True)
    override_date = Column(Date, nullable=False, unique=True, index=True)
    is_working = Column(Boolean, default=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    breaks = Column(JSON, nullable=False, default=list)  # [{"start": "13:00", "end": "14:00"}]
    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        state = f"{self.start_time}-{self.end_time}" if self.is_working else "выходной"
        return f"<ScheduleOverride {self.override_date} {state}>"
