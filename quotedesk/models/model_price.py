"""ModelPrice model for branch-scoped price entries."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from quotedesk.database import Base, BigIdType


class ModelPrice(Base):
    """
    Price entry of a model for one header at one branch.

    header_id is nulled when the header is deleted; the value is kept.
    """

    __tablename__ = 'model_price'
    __table_args__ = (
        CheckConstraint('value >= 0', name='ck_model_price_value_positive'),
    )

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    model_id = Column(BigInteger, ForeignKey('vehicle_model.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    value = Column(Numeric(14, 2), nullable=False)
    header_id = Column(BigInteger, ForeignKey('header.id', ondelete='SET NULL'), nullable=True)
    branch_id = Column(BigInteger, ForeignKey('branch.id'), nullable=False)

    # Relationships
    model = relationship('VehicleModel', back_populates='prices')

    def __repr__(self):
        return f"<ModelPrice(model_id={self.model_id}, header_id={self.header_id}, branch_id={self.branch_id}, value={self.value})>"
