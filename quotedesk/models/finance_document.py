"""FinanceDocument model - documents required for vehicle financing."""
from sqlalchemy import Column, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class FinanceDocument(Base):
    """Finance document definition (e.g. 'PAN Card')."""

    __tablename__ = 'finance_document'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False, unique=True)
    is_required = Column(Boolean, nullable=False, default=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<FinanceDocument(id={self.id}, name='{self.name}', required={self.is_required})>"
