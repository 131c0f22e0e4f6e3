"""WhatsApp delivery of quotation documents through an HTTP gateway."""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from flask import current_app
from sqlalchemy.orm import Session

from quotedesk.exceptions import DeliveryError, ValidationError
from quotedesk.models import QuotationStatus
from quotedesk.services.quotation_service import build_snapshot_view, load_quotation
from quotedesk.utils.formatters import date_in, rupees

logger = logging.getLogger(__name__)


class WhatsAppClient:
    """Client for a HappySMS-compatible WhatsApp gateway (GET /wapp/v2/api/send)."""

    SEND_PATH = "/wapp/v2/api/send"

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, timeout: Optional[int] = None):
        """
        Initialize the client.

        Args:
            base_url: Gateway base URL. Defaults to WHATSAPP_API_BASE_URL
            api_key: Gateway API key. Defaults to WHATSAPP_API_KEY
            timeout: Request timeout in seconds. Defaults to WHATSAPP_TIMEOUT
        """
        self.base_url = (base_url or current_app.config.get('WHATSAPP_API_BASE_URL') or '').rstrip('/')
        self.api_key = api_key or current_app.config.get('WHATSAPP_API_KEY')
        self.timeout = timeout or current_app.config.get('WHATSAPP_TIMEOUT', 30)
        if not self.base_url or not self.api_key:
            raise ValueError("WHATSAPP_API_BASE_URL and WHATSAPP_API_KEY are required")

    def send(self, mobile: str, message: str, pdf_url: str) -> Dict[str, Any]:
        """
        Send a message with the PDF link to one number.

        Returns:
            Gateway response body

        Raises:
            requests.RequestException: Transport or HTTP error
            RuntimeError: The gateway answered with an error status
        """
        params = {'apikey': self.api_key, 'mobile': mobile, 'msg': message, 'pdf': pdf_url}
        logger.debug(f"[WHATSAPP] Sending to {mobile}")

        response = requests.get(f"{self.base_url}{self.SEND_PATH}", params=params, timeout=self.timeout)
        response.raise_for_status()
        data = response.json() if response.content else None

        if not data:
            raise RuntimeError('Empty response from WhatsApp API')
        if data.get('status') == 'error':
            raise RuntimeError(data.get('msg') or 'WhatsApp API error')
        return data


def format_whatsapp_message(snapshot: Dict[str, Any]) -> str:
    """Plain-text summary sent along with the PDF link."""
    customer = snapshot.get('customer_details') or {}
    lines = [
        "*Quotation Details*",
        "",
        f"*Quotation Number:* {snapshot['quotation_number']}",
        f"*Customer Name:* {customer.get('name', '-')}",
        f"*Date:* {date_in(snapshot.get('created_at'))}",
        "",
        "*Vehicle Details*",
    ]
    for model in snapshot.get('models') or []:
        lines.append(f"- *Model:* {model['model_name']}")
        if model.get('ex_showroom_price') is not None:
            lines.append(f"  *Ex-Showroom Price:* {rupees(model['ex_showroom_price'])}")
        lines.append(f"  *On-Road Price:* {rupees(model.get('total_price'))}")
    lines.append("")
    lines.append("Please find attached quotation PDF for complete details.")
    return "\n".join(lines)


def _customer_numbers(snapshot: Dict[str, Any]) -> List[str]:
    customer = snapshot.get('customer_details') or {}
    numbers = []
    for key in ('mobile1', 'mobile2'):
        if customer.get(key):
            numbers.append(re.sub(r'\D', '', customer[key]))
    return numbers


def send_quotation_whatsapp(session: Session, quotation_id: int, client: Optional[WhatsAppClient] = None,
                            user=None) -> Dict[str, Any]:
    """
    Send the quotation's PDF to every customer mobile number.

    Per-number results are stored in delivery_status. A draft quotation
    becomes 'sent' once at least one number received it.

    Raises:
        ValidationError: No published document, or no usable mobile number
        DeliveryError: Every number failed
    """
    quotation = load_quotation(session, quotation_id, user)
    snapshot = build_snapshot_view(quotation)

    if not quotation.has_document:
        raise ValidationError(
            'Quotation document has not been generated yet',
            {'pdf_url': 'Generate the quotation document first'}
        )

    numbers = _customer_numbers(snapshot)
    if not numbers:
        raise ValidationError('No mobile numbers found for this customer', {'mobile1': 'Missing'})

    client = client or WhatsAppClient()
    message = format_whatsapp_message(snapshot)

    results = []
    for number in numbers:
        if len(number) < 10:
            results.append({'number': number, 'status': 'failed', 'error': 'Invalid phone number'})
            continue
        try:
            response = client.send(number, message, snapshot['pdf_url'])
            results.append({'number': number, 'status': 'success', 'response': response})
            logger.info(f"[WHATSAPP] {snapshot['quotation_number']} sent to {number}")
        except (requests.RequestException, RuntimeError, ValueError) as e:
            logger.error(f"[WHATSAPP] Sending {snapshot['quotation_number']} to {number} failed: {e}")
            results.append({'number': number, 'status': 'failed', 'error': str(e)})

    delivered = any(r['status'] == 'success' for r in results)
    try:
        quotation.delivery_status = {
            'channel': 'whatsapp',
            'attempted_at': datetime.now().isoformat(),
            'results': results,
        }
        if delivered:
            if quotation.status == QuotationStatus.DRAFT.value:
                quotation.status = QuotationStatus.SENT.value
            if quotation.sent_at is None:
                quotation.sent_at = datetime.now()
        session.commit()
    except Exception:
        session.rollback()
        raise

    if not delivered:
        raise DeliveryError('Failed to send WhatsApp message to all numbers', results)

    return build_snapshot_view(quotation)
