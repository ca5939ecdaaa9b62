"""
Модель чёрного списка телефонов
"""
from sqlalchemy import Column, Integer, String, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class BlockedPhone(Base):
    """Номер, с которого запрещена запись (антифрод)"""

    __tablename__ = "blocked_phones"

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String(20), unique=True, nullable=False, index=True)  # только цифры
    reason = Column(String(200), nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return f"<BlockedPhone {self.phone}>"
