"""TermsCondition model."""
from sqlalchemy import Column, String, Text, Boolean, Integer, DateTime
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class TermsCondition(Base):
    """Terms and conditions clause printed on quotations."""

    __tablename__ = 'terms_condition'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=True)
    content = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<TermsCondition(id={self.id}, title='{self.title}', order={self.order})>"
