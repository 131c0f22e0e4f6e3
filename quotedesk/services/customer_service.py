"""Customer service - boundary validation and find-or-create."""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from quotedesk.exceptions import ValidationError
from quotedesk.models import Customer

logger = logging.getLogger(__name__)

MOBILE_PATTERN = re.compile(r'^\d{10}$')
REQUIRED_FIELDS = ('name', 'address', 'taluka', 'district', 'mobile1')


@dataclass(frozen=True)
class CustomerInput:
    """New-customer fields, validated."""
    name: str
    address: str
    taluka: str
    district: str
    mobile1: str
    mobile2: Optional[str] = None


def parse_customer_input(data: Any) -> CustomerInput:
    """
    Validate raw customer fields.

    Raises:
        ValidationError: Missing required field or malformed mobile number
    """
    if not isinstance(data, dict):
        raise ValidationError('Customer details must be an object', {'customer': 'Expected an object'})

    errors = {}
    values = {}
    for field in REQUIRED_FIELDS:
        value = data.get(field)
        value = str(value).strip() if value is not None else ''
        if not value:
            errors[field] = 'This field is required'
        values[field] = value

    if values['mobile1'] and not MOBILE_PATTERN.match(values['mobile1']):
        errors['mobile1'] = 'Mobile number must be 10 digits'

    mobile2 = data.get('mobile2')
    mobile2 = str(mobile2).strip() if mobile2 is not None else ''
    if mobile2 and not MOBILE_PATTERN.match(mobile2):
        errors['mobile2'] = 'Mobile number must be 10 digits'

    if errors:
        raise ValidationError('Invalid customer details', errors)

    return CustomerInput(mobile2=mobile2 or None, **values)


def _apply_details(customer: Customer, customer_input: CustomerInput) -> List[str]:
    """Copy changed contact fields onto an existing customer; returns their names."""
    updates = {
        'address': customer_input.address,
        'taluka': customer_input.taluka,
        'district': customer_input.district,
    }
    if customer_input.mobile2:
        updates['mobile2'] = customer_input.mobile2

    changed = []
    for field, value in updates.items():
        if getattr(customer, field) != value:
            setattr(customer, field, value)
            changed.append(field)
    return changed


def find_or_create_customer(session: Session, customer_input: CustomerInput, created_by: int) -> Customer:
    """
    Reuse a customer with the same primary mobile and name, else create one.

    A reused row takes the submitted address, taluka and district, and
    mobile2 when one is given, so the quotation snapshot carries the
    details the customer just gave. Rows are flushed, not committed; the
    caller owns the transaction.
    """
    existing = session.query(Customer).filter(
        Customer.mobile1 == customer_input.mobile1,
        func.lower(Customer.name) == customer_input.name.lower()
    ).order_by(Customer.id).first()

    if existing:
        changed = _apply_details(existing, customer_input)
        if changed:
            session.flush()
            logger.info(f"[CUSTOMER] Updated {', '.join(changed)} of customer {existing.id}")
        logger.info(f"[CUSTOMER] Reusing customer {existing.id} for mobile {customer_input.mobile1}")
        return existing

    customer = Customer(
        name=customer_input.name,
        address=customer_input.address,
        taluka=customer_input.taluka,
        district=customer_input.district,
        mobile1=customer_input.mobile1,
        mobile2=customer_input.mobile2,
        created_by=created_by
    )
    session.add(customer)
    session.flush()  # Get ID without committing
    logger.info(f"[CUSTOMER] Created customer {customer.id}")
    return customer


def get_customer(session: Session, customer_id: int) -> Customer:
    """
    Existing customer by id.

    Raises:
        ValidationError: Unknown customer id (a bad reference in the request)
    """
    customer = session.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise ValidationError(f'Customer {customer_id} not found', {'customer_id': 'Unknown customer'})
    return customer


def customer_snapshot(customer: Customer) -> Dict[str, Any]:
    return {
        'id': customer.id,
        'name': customer.name,
        'address': customer.address,
        'taluka': customer.taluka,
        'district': customer.district,
        'mobile1': customer.mobile1,
        'mobile2': customer.mobile2,
    }
