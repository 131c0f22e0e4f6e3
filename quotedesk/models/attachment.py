"""Attachment model - brochures, videos and notes shared with customers."""
import enum
from sqlalchemy import Column, BigInteger, String, Text, Boolean, Integer, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class AttachmentItemType(enum.Enum):
    """Attachment item type enum."""
    IMAGE = "image"
    VIDEO = "video"
    YOUTUBE = "youtube"
    DOCUMENT = "document"
    TEXT = "text"


attachment_model = Table(
    'attachment_model',
    Base.metadata,
    Column('attachment_id', BigInteger, ForeignKey('attachment.id', ondelete='CASCADE'), primary_key=True),
    Column('model_id', BigInteger, ForeignKey('vehicle_model.id', ondelete='CASCADE'), primary_key=True),
)


class Attachment(Base):
    """Group of attachment items applicable to every model or to a list."""

    __tablename__ = 'attachment'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    is_for_all_models = Column(Boolean, nullable=False, default=True)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    items = relationship(
        'AttachmentItem',
        back_populates='attachment',
        order_by='AttachmentItem.position',
        cascade='all, delete-orphan'
    )
    applicable_models = relationship('VehicleModel', secondary=attachment_model, order_by='VehicleModel.id')
    creator = relationship('AppUser', foreign_keys=[created_by])

    def __repr__(self):
        return f"<Attachment(id={self.id}, title='{self.title}', items={len(self.items)})>"


class AttachmentItem(Base):
    """Single attachment item (image, video, youtube link, document or text)."""

    __tablename__ = 'attachment_item'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    attachment_id = Column(BigInteger, ForeignKey('attachment.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    type = Column(String(20), nullable=False)
    url = Column(String(500), nullable=True)
    content = Column(Text, nullable=True)
    thumbnail = Column(String(500), nullable=True)

    # Relationships
    attachment = relationship('Attachment', back_populates='items')

    def __repr__(self):
        return f"<AttachmentItem(id={self.id}, type='{self.type}')>"

    @validates('type')
    def validate_type(self, key, value):
        if value not in {t.value for t in AttachmentItemType}:
            raise ValueError(f"Unknown attachment item type '{value}'")
        return value
