"""Header model - price line item definitions (Ex-Showroom, RTO Tax, ...)."""
import enum
from sqlalchemy import Column, String, Integer, DateTime, JSON, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class VehicleType(enum.Enum):
    """Powertrain category shared by headers and models."""
    EV = "EV"
    ICE = "ICE"


class Header(Base):
    """
    Price line item definition.

    A header cannot be redefined at a different priority or duplicated
    under the same key within one (type, category_key).
    """

    __tablename__ = 'header'
    __table_args__ = (
        UniqueConstraint('type', 'category_key', 'priority', name='uq_header_type_category_priority'),
        UniqueConstraint('type', 'category_key', 'header_key', name='uq_header_type_category_key'),
        CheckConstraint('priority >= 1', name='ck_header_priority_positive'),
    )

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    category_key = Column(String(100), nullable=False)
    type = Column(String(10), nullable=False, default=VehicleType.ICE.value)
    header_key = Column(String(100), nullable=False)
    priority = Column(Integer, nullable=False)
    # "metadata" is reserved on declarative classes
    meta = Column('metadata', JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Header(id={self.id}, key='{self.header_key}', category='{self.category_key}', priority={self.priority})>"
