"""
Модель услуги
"""
from sqlalchemy import Column, Integer, Text, Boolean, Numeric, JSON, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class Service(Base):
    """Услуга барбершопа"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(JSON, nullable=False)  # {"ru": ..., "en": ..., "kz": ...} или строка
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return f"<Service {self.name} ({self.price}₸)>"
