"""Branch model."""
from sqlalchemy import Column, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class Branch(Base):
    """Dealership branch. Prices are scoped per branch."""

    __tablename__ = 'branch'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    address = Column(Text, nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    pincode = Column(String(6), nullable=False)
    phone = Column(String(10), nullable=False)
    email = Column(String(255), nullable=True)
    gst_number = Column(String(15), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Branch(id={self.id}, name='{self.name}', city='{self.city}')>"
