"""
Модель записи на прием
"""
from sqlalchemy import Column, Integer, ForeignKey, Date, Time, String, Numeric, Boolean, JSON, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class Appointment(Base):
    """Запись на прием"""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    master_id = Column(Integer, ForeignKey("masters.id"), nullable=True, index=True)  # NULL = старые данные без мастера
    service_ids = Column(JSON, nullable=False, default=list)
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)  # сумма длительностей услуг
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    client_name = Column(String(100), nullable=True)
    client_phone = Column(String(20), nullable=False, index=True)
    status = Column(String(20), default="pending")  # pending, confirmed, in_progress, completed, cancelled
    suspicious = Column(Boolean, default=False)
    completed_at = Column(TIMESTAMP, nullable=True)  # фактическое время завершения
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Appointment {self.appointment_date} {self.appointment_time} (Status: {self.status})>"
