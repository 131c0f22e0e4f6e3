"""Offer model - promotions attached to some or all models."""
from sqlalchemy import Column, BigInteger, String, Text, Boolean, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


offer_model = Table(
    'offer_model',
    Base.metadata,
    Column('offer_id', BigInteger, ForeignKey('offer.id', ondelete='CASCADE'), primary_key=True),
    Column('model_id', BigInteger, ForeignKey('vehicle_model.id', ondelete='CASCADE'), primary_key=True),
)


class Offer(Base):
    """Offer. Applies to every model or to an explicit model list."""

    __tablename__ = 'offer'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String(255), nullable=True)
    url = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    apply_to_all_models = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    applicable_models = relationship('VehicleModel', secondary=offer_model, order_by='VehicleModel.id')

    def __repr__(self):
        return f"<Offer(id={self.id}, title='{self.title}', all_models={self.apply_to_all_models})>"
