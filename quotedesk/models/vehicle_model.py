"""VehicleModel model - catalog entry with branch-scoped prices."""
import enum
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class ModelStatus(enum.Enum):
    """Catalog status enum."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class VehicleModel(Base):
    """Vehicle model (e.g. 'Activa 125 Disc')."""

    __tablename__ = 'vehicle_model'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    model_name = Column(String(150), nullable=False, unique=True)
    type = Column(String(10), nullable=False, default='ICE')
    status = Column(String(20), nullable=False, default=ModelStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships - stored order matters for duplicate (header, branch) resolution
    prices = relationship(
        'ModelPrice',
        back_populates='model',
        order_by='ModelPrice.position',
        cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f"<VehicleModel(id={self.id}, name='{self.model_name}', status='{self.status}')>"

    @validates('model_name')
    def validate_model_name(self, key, value):
        """Reject blank names and names containing commas."""
        if not value or not value.strip():
            raise ValueError('Model name is required')
        if ',' in value:
            raise ValueError('Model name cannot contain commas')
        return value.strip()

    def add_price(self, value, header_id, branch_id):
        """Append a price entry keeping the stored order explicit."""
        from quotedesk.models.model_price import ModelPrice
        entry = ModelPrice(
            value=value,
            header_id=header_id,
            branch_id=branch_id,
            position=len(self.prices)
        )
        self.prices.append(entry)
        return entry
