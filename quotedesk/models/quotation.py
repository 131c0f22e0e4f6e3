"""Quotation model - permanent, denormalized snapshot of a priced offer."""
import enum
from sqlalchemy import Column, BigInteger, String, Boolean, Date, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class QuotationStatus(enum.Enum):
    """Quotation status enum."""
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CONVERTED = "converted"


# Allowed status moves; anything else is rejected
STATUS_TRANSITIONS = {
    QuotationStatus.DRAFT.value: {QuotationStatus.SENT.value, QuotationStatus.REJECTED.value},
    QuotationStatus.SENT.value: {QuotationStatus.ACCEPTED.value, QuotationStatus.REJECTED.value},
    QuotationStatus.ACCEPTED.value: {QuotationStatus.CONVERTED.value},
    QuotationStatus.REJECTED.value: set(),
    QuotationStatus.CONVERTED.value: set(),
}


class Quotation(Base):
    """
    Quotation.

    Every catalog-derived field is a JSON copy taken at creation time, so
    later edits to models, headers, branches or offers never change it.
    Only pdf_url, document_error, status, delivery_status and sent_at are
    written after creation.
    """

    __tablename__ = 'quotation'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    quotation_number = Column(String(64), nullable=False, unique=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=False)
    customer_details = Column(JSON, nullable=False)
    models = Column(JSON, nullable=False, default=list)
    base_model = Column(JSON, nullable=True)
    all_models = Column(JSON, nullable=False, default=list)
    finance_documents = Column(JSON, nullable=False, default=list)
    terms_conditions = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)
    model_specific_offers = Column(JSON, nullable=False, default=list)
    all_unique_offers = Column(JSON, nullable=False, default=list)
    user_details = Column(JSON, nullable=False)
    branch_id = Column(BigInteger, ForeignKey('branch.id'), nullable=False)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    status = Column(String(20), nullable=False, default=QuotationStatus.DRAFT.value)
    finance_needed = Column(Boolean, nullable=False, default=False)
    expected_delivery_date = Column(Date, nullable=True)
    valid_until = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    pdf_url = Column(String(500), nullable=True)
    document_error = Column(Text, nullable=True)
    delivery_status = Column(JSON, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    customer = relationship('Customer')
    creator = relationship('AppUser', foreign_keys=[created_by])

    def __repr__(self):
        return f"<Quotation(id={self.id}, number='{self.quotation_number}', status='{self.status}')>"

    @property
    def has_document(self):
        """True once the rendered PDF has been published."""
        return bool(self.pdf_url)

    def can_transition_to(self, status):
        """Check whether the status move is allowed."""
        return status in STATUS_TRANSITIONS.get(self.status, set())
