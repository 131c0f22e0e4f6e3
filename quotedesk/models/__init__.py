"""Models package - exports all SQLAlchemy models."""
# Users and branches
from quotedesk.models.branch import Branch
from quotedesk.models.app_user import AppUser, UserRole

# Catalog
from quotedesk.models.header import Header, VehicleType
from quotedesk.models.vehicle_model import VehicleModel, ModelStatus
from quotedesk.models.model_price import ModelPrice
from quotedesk.models.offer import Offer, offer_model
from quotedesk.models.attachment import Attachment, AttachmentItem, AttachmentItemType, attachment_model
from quotedesk.models.finance_document import FinanceDocument
from quotedesk.models.terms_condition import TermsCondition

# Quotations
from quotedesk.models.customer import Customer
from quotedesk.models.quotation import Quotation, QuotationStatus, STATUS_TRANSITIONS

__all__ = [
    'Branch', 'AppUser', 'UserRole',
    'Header', 'VehicleType', 'VehicleModel', 'ModelStatus', 'ModelPrice',
    'Offer', 'offer_model', 'Attachment', 'AttachmentItem', 'AttachmentItemType', 'attachment_model',
    'FinanceDocument', 'TermsCondition',
    'Customer', 'Quotation', 'QuotationStatus', 'STATUS_TRANSITIONS',
]
