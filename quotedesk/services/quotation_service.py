"""
Quotation service - assembles, stores and reads quotation snapshots.

A quotation is built once from live catalog data and stored as a
denormalized snapshot. Both the create path and the fetch path return
build_snapshot_view(), so the two always produce the same shape.
"""
import copy
import logging
import secrets
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from itertools import chain
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quotedesk.exceptions import (
    ConflictError, NotFoundError, ReferenceHeaderMissing, UnauthorizedError,
    ValidationError, report_integrity_issue
)
from quotedesk.models import AppUser, Quotation, QuotationStatus
from quotedesk.services.catalog_store import (
    CatalogStore, find_active_terms, find_all_headers, find_attachments_matching,
    find_branch_by_id, find_finance_documents, find_models_by_ids, find_offers_matching
)
from quotedesk.services.customer_service import (
    CustomerInput, customer_snapshot, find_or_create_customer, get_customer, parse_customer_input
)
from quotedesk.services.offer_service import match_attachments, match_offers, offers_for_model
from quotedesk.services.pricing_service import (
    branch_reference_value, money_value, reference_value, resolve_prices, snapshot_prices, total_value
)
from quotedesk.services.series_service import (
    UNKNOWN_SERIES, base_models_by_series, find_reference_headers, series_of
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotationRequest:
    """Validated input for assemble_quotation(). Exactly one of customer_id / customer is set."""
    model_ids: Tuple[int, ...]
    customer_id: Optional[int] = None
    customer: Optional[CustomerInput] = None
    finance_needed: bool = False
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None


def _parse_id(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 and str(parsed) == str(value).strip() else None


def parse_quotation_request(data: Any) -> QuotationRequest:
    """
    Validate a raw request body.

    Expected keys: model_ids (non-empty list of ids), customer_id or
    customer (object with name, address, taluka, district, mobile1 and
    optional mobile2), and optional finance_needed, expected_delivery_date
    (YYYY-MM-DD) and notes. Repeated model ids keep their first position.

    Raises:
        ValidationError: Any missing or malformed field
    """
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    raw_ids = data.get('model_ids')
    if not isinstance(raw_ids, list) or not raw_ids:
        raise ValidationError('Select at least one model', {'model_ids': 'Expected a non-empty list of model ids'})

    model_ids = []
    for raw in raw_ids:
        model_id = _parse_id(raw)
        if model_id is None:
            raise ValidationError('Invalid model id', {'model_ids': f'Invalid model id: {raw!r}'})
        if model_id not in model_ids:
            model_ids.append(model_id)

    has_id = data.get('customer_id') not in (None, '')
    has_details = data.get('customer') is not None
    if has_id == has_details:
        raise ValidationError(
            'Provide either an existing customer or new customer details',
            {'customer': 'Expected exactly one of customer_id or customer'}
        )

    customer_id = None
    customer = None
    if has_id:
        customer_id = _parse_id(data['customer_id'])
        if customer_id is None:
            raise ValidationError('Invalid customer id', {'customer_id': 'Invalid customer id'})
    else:
        customer = parse_customer_input(data['customer'])

    expected_delivery_date = None
    if data.get('expected_delivery_date'):
        try:
            expected_delivery_date = date.fromisoformat(str(data['expected_delivery_date']))
        except ValueError:
            raise ValidationError(
                'Invalid expected delivery date',
                {'expected_delivery_date': 'Expected YYYY-MM-DD'}
            )

    finance_needed = data.get('finance_needed', False)
    if isinstance(finance_needed, str):
        finance_needed = finance_needed.strip().lower() in ('1', 'true', 'yes', 'on')

    notes = (data.get('notes') or '').strip() or None

    return QuotationRequest(
        model_ids=tuple(model_ids),
        customer_id=customer_id,
        customer=customer,
        finance_needed=bool(finance_needed),
        expected_delivery_date=expected_delivery_date,
        notes=notes
    )


def generate_quotation_number(prefix: str = 'QT') -> str:
    """QT-YYYYMMDD-HHMMSS-XXXXXX, the suffix being random hex."""
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    return f"{prefix}-{timestamp}-{secrets.token_hex(3).upper()}"


# ---------------------------------------------------------------------------
# Snapshot pieces
# ---------------------------------------------------------------------------

def _user_snapshot(user: AppUser, branch: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': user.id,
        'username': user.username,
        'full_name': user.full_name,
        'email': user.email,
        'mobile': user.mobile,
        'role': user.role,
        'branch': branch,
    }


def _offer_snapshot(offer: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': offer['id'],
        'title': offer['title'],
        'description': offer['description'],
        'image': offer['image'],
        'url': offer['url'],
        'apply_to_all_models': offer['apply_to_all_models'],
        'applicable_models': offer['applicable_models'],
        'created_at': offer['created_at'],
    }


def determine_base_model(model_entries: List[Dict[str, Any]],
                         bases: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    The one base model to show next to the selection, if there is one.

    None when every selected model is its own series' base. Otherwise the
    bases of the series holding a non-base selected model are collected,
    leaving out any that is itself selected; a single one is returned, and
    several (selection spanning series) mean there is no unified base model.
    """
    if all(entry['is_base_model'] for entry in model_entries):
        return None

    selected_ids = {entry['model_id'] for entry in model_entries}
    found = []
    for entry in model_entries:
        if entry['is_base_model']:
            continue
        base = bases.get(entry['series'])
        if base is None or base['model']['id'] in selected_ids:
            continue
        if all(b['model']['id'] != base['model']['id'] for b in found):
            found.append(base)

    if len(found) > 1:
        logger.info(
            f"[QUOTATION] No unified base model: {len(found)} series bases "
            f"({', '.join(b['model']['model_name'] for b in found)})"
        )
        return None
    return found[0] if found else None


def _rank_models(catalog: CatalogStore, selected: List[Dict[str, Any]], model_ids: List[int],
                 branch_id: int, reference_ids: Dict[str, int]):
    """Series candidates and their bases; empty when no reference header exists."""
    if not reference_ids:
        return {}, {}

    involved = [series_of(m['model_name']) for m in selected]
    involved = [s for s in involved if s != UNKNOWN_SERIES]
    if not involved:
        return {}, {}

    candidates_by_series = catalog.models_by_series(involved, include_ids=model_ids)
    bases = base_models_by_series(
        chain.from_iterable(candidates_by_series.values()), branch_id, reference_ids
    )
    return candidates_by_series, bases


def assemble_quotation(session: Session, request: QuotationRequest, user: AppUser,
                       catalog: Optional[CatalogStore] = None) -> Dict[str, Any]:
    """
    Build, price and store a new draft quotation.

    Catalog reads run concurrently through the catalog store. Nothing is
    written until every model id, the branch and the customer reference
    have been resolved; the customer (if new) and the quotation are then
    committed together.

    Args:
        session: SQLAlchemy session used for the writes
        request: Parsed request (see parse_quotation_request)
        user: Creating user; their branch prices the quotation
        catalog: Catalog store, defaults to one sized by CATALOG_FANOUT_WORKERS

    Returns:
        Snapshot view of the stored quotation

    Raises:
        ValidationError: Bad input or unresolvable reference, nothing stored
        ConflictError: No unique quotation number after the configured retries
    """
    config = current_app.config

    if not user.branch_id:
        raise ValidationError('User is not assigned to a branch', {'branch_id': 'User has no branch'})
    branch_id = user.branch_id
    model_ids = list(request.model_ids)
    if not model_ids:
        raise ValidationError('Select at least one model', {'model_ids': 'Expected a non-empty list of model ids'})

    catalog = catalog or CatalogStore(max_workers=config.get('CATALOG_FANOUT_WORKERS', 4))

    data = catalog.gather(
        models=(find_models_by_ids, model_ids),
        headers=(find_all_headers,),
        branch=(find_branch_by_id, branch_id),
        offers=(find_offers_matching, model_ids),
        attachments=(find_attachments_matching, model_ids),
        finance_documents=(find_finance_documents,),
        terms=(find_active_terms,),
    )

    selected = data['models']
    found_ids = {m['id'] for m in selected}
    missing = [mid for mid in model_ids if mid not in found_ids]
    if missing:
        raise ValidationError(
            'One or more models were not found',
            {'model_ids': f"Unknown model ids: {', '.join(str(m) for m in missing)}"}
        )

    branch = data['branch']
    if branch is None:
        raise ValidationError(f'Branch {branch_id} not found', {'branch_id': 'Unknown branch'})
    if not branch['is_active']:
        raise ValidationError(f'Branch {branch_id} is inactive', {'branch_id': 'Branch is inactive'})

    if request.customer_id is not None:
        customer = get_customer(session, request.customer_id)
    elif request.customer is None:
        raise ValidationError('Customer details are required', {'customer': 'This field is required'})
    else:
        customer = None

    # Pricing
    headers = data['headers']
    headers_by_id = {h['id']: h for h in headers}
    matcher = config.get('BASE_MODEL_HEADER_MATCH', 'ex-showroom')
    try:
        reference_ids = {t: h['id'] for t, h in find_reference_headers(headers, matcher).items()}
    except ReferenceHeaderMissing as e:
        report_integrity_issue(f"No header matches '{e.matcher}'; base-model detection is disabled")
        reference_ids = {}
    else:
        for model_type in sorted({m['type'] for m in selected} - set(reference_ids), key=str):
            report_integrity_issue(
                f"No header matches '{matcher}' for type '{model_type}'; its models cannot be ranked"
            )

    candidates_by_series, bases = _rank_models(catalog, selected, model_ids, branch_id, reference_ids)

    offers = match_offers(data['offers'], model_ids)
    attachments = match_attachments(data['attachments'], model_ids)

    model_entries = []
    for model in selected:
        series = series_of(model['model_name'])
        prices = resolve_prices(model, branch_id, headers_by_id)
        base = bases.get(series)
        model_entries.append({
            'model_id': model['id'],
            'model_name': model['model_name'],
            'type': model['type'],
            'series': series,
            'ex_showroom_price': money_value(reference_value(prices, reference_ids.get(model['type']))),
            'total_price': money_value(total_value(prices)),
            'is_base_model': base is not None and base['model']['id'] == model['id'],
            'prices': snapshot_prices(prices),
            'offers': [_offer_snapshot(o) for o in offers_for_model(offers, model['id'])],
        })

    base = determine_base_model(model_entries, bases)
    base_model = None
    if base is not None:
        base_model = {
            'model_id': base['model']['id'],
            'model_name': base['model']['model_name'],
            'series': series_of(base['model']['model_name']),
            'price': money_value(base['price']),
            'prices': snapshot_prices(resolve_prices(base['model'], branch_id, headers_by_id)),
        }

    if candidates_by_series:
        all_models = [
            {
                'model_id': m['id'],
                'model_name': m['model_name'],
                'series': series,
                'ex_showroom_price': money_value(branch_reference_value(m, branch_id, reference_ids)),
                'is_base_model': series in bases and bases[series]['model']['id'] == m['id'],
            }
            for series, members in candidates_by_series.items()
            for m in members
        ]
    else:
        all_models = [
            {
                'model_id': e['model_id'],
                'model_name': e['model_name'],
                'series': e['series'],
                'ex_showroom_price': e['ex_showroom_price'],
                'is_base_model': e['is_base_model'],
            }
            for e in model_entries
        ]

    try:
        if customer is None:
            customer = find_or_create_customer(session, request.customer, created_by=user.id)

        quotation = Quotation(
            customer_id=customer.id,
            customer_details=customer_snapshot(customer),
            models=model_entries,
            base_model=base_model,
            all_models=all_models,
            finance_documents=data['finance_documents'],
            terms_conditions=data['terms'],
            attachments=attachments,
            model_specific_offers=[
                {'model_id': e['model_id'], 'model_name': e['model_name'], 'offers': e['offers']}
                for e in model_entries
            ],
            all_unique_offers=[_offer_snapshot(o) for o in offers],
            user_details=_user_snapshot(user, branch),
            branch_id=branch_id,
            created_by=user.id,
            status=QuotationStatus.DRAFT.value,
            finance_needed=request.finance_needed,
            expected_delivery_date=request.expected_delivery_date,
            valid_until=date.today() + timedelta(days=config.get('QUOTATION_VALID_DAYS', 30)),
            notes=request.notes
        )
        insert_quotation(
            session, quotation,
            prefix=config.get('QUOTATION_NUMBER_PREFIX', 'QT'),
            max_retries=config.get('QUOTATION_NUMBER_MAX_RETRIES', 5)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        f"[QUOTATION] Created {quotation.quotation_number} (id={quotation.id}) for customer "
        f"{quotation.customer_id} with {len(model_entries)} model(s) at branch {branch_id}"
    )
    return build_snapshot_view(quotation)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

def insert_quotation(session: Session, quotation: Quotation, prefix: str = 'QT', max_retries: int = 5) -> Quotation:
    """
    Add the quotation under a fresh number, retrying on number collisions.

    Each attempt runs in a savepoint, so a collision only discards the
    quotation row and not the rest of the transaction. Does not commit.

    Raises:
        ConflictError: Every attempt collided
    """
    for attempt in range(1, max_retries + 1):
        quotation.quotation_number = generate_quotation_number(prefix)
        try:
            with session.begin_nested():
                session.add(quotation)
            return quotation
        except IntegrityError:
            logger.warning(
                f"[QUOTATION] Number {quotation.quotation_number} already taken "
                f"(attempt {attempt}/{max_retries})"
            )

    logger.error(f"[QUOTATION] Could not allocate a quotation number after {max_retries} attempts")
    raise ConflictError()


def _iso(value):
    return value.isoformat() if value is not None else None


def build_snapshot_view(quotation: Quotation) -> Dict[str, Any]:
    """
    JSON-ready view of a stored quotation.

    Snapshot subtrees are deep-copied so callers cannot mutate the
    instance's loaded state.
    """
    return {
        'id': quotation.id,
        'quotation_number': quotation.quotation_number,
        'status': quotation.status,
        'customer_id': quotation.customer_id,
        'customer_details': copy.deepcopy(quotation.customer_details),
        'models': copy.deepcopy(quotation.models),
        'base_model': copy.deepcopy(quotation.base_model),
        'all_models': copy.deepcopy(quotation.all_models),
        'finance_documents': copy.deepcopy(quotation.finance_documents),
        'terms_conditions': copy.deepcopy(quotation.terms_conditions),
        'attachments': copy.deepcopy(quotation.attachments),
        'model_specific_offers': copy.deepcopy(quotation.model_specific_offers),
        'all_unique_offers': copy.deepcopy(quotation.all_unique_offers),
        'user_details': copy.deepcopy(quotation.user_details),
        'branch_id': quotation.branch_id,
        'created_by': quotation.created_by,
        'finance_needed': quotation.finance_needed,
        'expected_delivery_date': _iso(quotation.expected_delivery_date),
        'notes': quotation.notes,
        'valid_until': _iso(quotation.valid_until),
        'pdf_url': quotation.pdf_url,
        'document_error': quotation.document_error,
        'delivery_status': copy.deepcopy(quotation.delivery_status),
        'sent_at': _iso(quotation.sent_at),
        'created_at': _iso(quotation.created_at),
        'updated_at': _iso(quotation.updated_at),
    }


def load_quotation(session: Session, quotation_id: int, user: Optional[AppUser] = None) -> Quotation:
    """
    Quotation row by id, checked against the user's visibility.

    Raises:
        NotFoundError: Unknown id
        UnauthorizedError: Sales user asking for someone else's quotation
    """
    quotation = session.query(Quotation).filter(Quotation.id == quotation_id).first()
    if not quotation:
        raise NotFoundError(f'Quotation {quotation_id} not found')
    if user is not None and not user.is_admin and quotation.created_by != user.id:
        raise UnauthorizedError('You can only access your own quotations')
    return quotation


def get_quotation(session: Session, quotation_id: int, user: Optional[AppUser] = None) -> Dict[str, Any]:
    """Snapshot view of a stored quotation."""
    return build_snapshot_view(load_quotation(session, quotation_id, user))


def update_document_url(session: Session, quotation_id: int, url: str) -> Dict[str, Any]:
    """Attach the published document URL and clear any previous render error."""
    quotation = load_quotation(session, quotation_id)
    try:
        quotation.pdf_url = url
        quotation.document_error = None
        session.commit()
    except Exception:
        session.rollback()
        raise
    return build_snapshot_view(quotation)


def record_document_error(session: Session, quotation_id: int, message: str) -> None:
    """Keep the quotation, note why its document is missing."""
    quotation = load_quotation(session, quotation_id)
    try:
        quotation.document_error = message
        session.commit()
    except Exception:
        session.rollback()
        raise


def update_quotation_status(session: Session, quotation_id: int, status: str,
                            user: Optional[AppUser] = None) -> Dict[str, Any]:
    """
    Move a quotation along its lifecycle.

    Raises:
        ValidationError: Unknown status or a move not allowed from the current one
    """
    valid = {s.value for s in QuotationStatus}
    if status not in valid:
        raise ValidationError(f"Invalid status '{status}'", {'status': f"Expected one of {sorted(valid)}"})

    quotation = load_quotation(session, quotation_id, user)
    if not quotation.can_transition_to(status):
        raise ValidationError(
            f"Cannot change status from '{quotation.status}' to '{status}'",
            {'status': 'Transition not allowed'}
        )

    try:
        previous = quotation.status
        quotation.status = status
        if status == QuotationStatus.SENT.value and quotation.sent_at is None:
            quotation.sent_at = datetime.now()
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[QUOTATION] {quotation.quotation_number}: {previous} -> {status}")
    return build_snapshot_view(quotation)


def list_quotations(session: Session, user: AppUser, branch_id: Optional[int] = None,
                    status: Optional[str] = None) -> List[Dict[str, Any]]:
    """Quotation summaries, newest first. Sales users only see their own."""
    query = session.query(Quotation)
    if not user.is_admin:
        query = query.filter(Quotation.created_by == user.id)
    if branch_id is not None:
        query = query.filter(Quotation.branch_id == branch_id)
    if status:
        query = query.filter(Quotation.status == status)

    return [
        {
            'id': q.id,
            'quotation_number': q.quotation_number,
            'status': q.status,
            'customer_name': (q.customer_details or {}).get('name'),
            'customer_mobile': (q.customer_details or {}).get('mobile1'),
            'models': [m['model_name'] for m in q.models or []],
            'branch_id': q.branch_id,
            'created_by': q.created_by,
            'pdf_url': q.pdf_url,
            'created_at': _iso(q.created_at),
        }
        for q in query.order_by(Quotation.created_at.desc(), Quotation.id.desc()).all()
    ]
