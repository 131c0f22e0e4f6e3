"""Customer model."""
from sqlalchemy import Column, BigInteger, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class Customer(Base):
    """Customer (prospective buyer)."""

    __tablename__ = 'customer'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    address = Column(Text, nullable=False)
    taluka = Column(String(100), nullable=False)
    district = Column(String(100), nullable=False)
    mobile1 = Column(String(10), nullable=False)
    mobile2 = Column(String(10), nullable=True)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}', mobile1='{self.mobile1}')>"
