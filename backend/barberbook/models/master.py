"""
Модель мастера
"""
from sqlalchemy import Column, Integer, String, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class Master(Base):
    """Мастер салона"""

    __tablename__ = "masters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    status = Column(String(20), default="active")  # active, terminated
    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return f"<Master {self.name} ({self.status})>"
