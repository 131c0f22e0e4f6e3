"""Custom exceptions for the quotation backend."""
import logging

logger = logging.getLogger(__name__)


class QuotedeskError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(QuotedeskError):
    """Invalid or unresolvable request data. Always raised before any write."""
    def __init__(self, message, errors=None):
        super().__init__(message, 400, {'errors': errors} if errors else None)
        self.errors = errors or {}


class NotFoundError(QuotedeskError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class UnauthorizedError(QuotedeskError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)


class ConflictError(QuotedeskError):
    """Raised when a unique quotation number could not be allocated."""
    def __init__(self, message="Could not allocate a unique quotation number"):
        super().__init__(message, 409)


class DownstreamRenderError(QuotedeskError):
    """Rendering or publishing the PDF failed after the quotation was stored."""
    def __init__(self, message, quotation_id=None):
        super().__init__(message, 502, {'quotation_id': quotation_id} if quotation_id else None)
        self.quotation_id = quotation_id


class DeliveryError(QuotedeskError):
    """Every WhatsApp delivery attempt for a quotation failed."""
    def __init__(self, message, results=None):
        super().__init__(message, 502, {'results': results} if results else None)
        self.results = results or []


class ReferenceHeaderMissing(QuotedeskError):
    """No header in the catalog matches the base-model reference price line."""
    def __init__(self, matcher):
        super().__init__(f"No header matches '{matcher}'", 500)
        self.matcher = matcher


class DataIntegrityWarning(UserWarning):
    """Non-fatal catalog data problem. Logged, never raised to callers."""


def report_integrity_issue(message):
    """Log a DataIntegrityWarning and return it so callers can collect it."""
    warning = DataIntegrityWarning(message)
    logger.warning(f"[INTEGRITY] {message}")
    return warning
