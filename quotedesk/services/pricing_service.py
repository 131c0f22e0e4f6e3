"""Price resolution - branch-scoped price line items for a model."""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Union

from quotedesk.exceptions import report_integrity_issue

logger = logging.getLogger(__name__)

DELETED_HEADER = 'deleted'
CENT = Decimal('0.01')

ReferenceHeaders = Union[int, Dict[str, int], None]


def _dangling_entry(price: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'value': price['value'],
        'header_id': None,
        'header_key': DELETED_HEADER,
        'category_key': DELETED_HEADER,
        'priority': 0,
        'metadata': {},
        'branch_id': price['branch_id'],
    }


def resolve_prices(model: Dict[str, Any], branch_id: int,
                   headers_by_id: Dict[int, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Resolve a model's price entries for one branch.

    Entries of other branches are dropped. Each surviving entry is joined
    to its header. An entry whose header no longer exists keeps its value
    and is labelled 'deleted' with priority 0.

    A second entry for the same (header, branch) is ignored in favour of
    the first one in stored order, and reported.

    Args:
        model: Model record (see catalog_store.model_record)
        branch_id: Branch the quotation is priced for
        headers_by_id: Header records keyed by id

    Returns:
        List of resolved prices, stored order
    """
    resolved = []
    seen_headers = set()

    for price in model.get('prices') or []:
        if price['branch_id'] != branch_id:
            continue

        header_id = price.get('header_id')
        header = headers_by_id.get(header_id) if header_id is not None else None

        if header is None:
            report_integrity_issue(
                f"Model {model['id']} ({model['model_name']}) has a price of {price['value']} "
                f"at branch {branch_id} referencing missing header {header_id}"
            )
            resolved.append(_dangling_entry(price))
            continue

        if header_id in seen_headers:
            report_integrity_issue(
                f"Model {model['id']} ({model['model_name']}) has more than one price for "
                f"header '{header['header_key']}' at branch {branch_id}; using the first"
            )
            continue
        seen_headers.add(header_id)

        resolved.append({
            'value': price['value'],
            'header_id': header_id,
            'header_key': header['header_key'],
            'category_key': header['category_key'],
            'priority': header['priority'],
            'metadata': dict(header.get('metadata') or {}),
            'branch_id': branch_id,
        })

    return resolved


def to_decimal(value) -> Decimal:
    """Amount as Decimal; None counts as zero."""
    if value is None:
        return Decimal('0.00')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money_value(value) -> Optional[float]:
    """Snapshot form of an amount: a JSON number rounded to paise."""
    if value is None:
        return None
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def snapshot_prices(resolved_prices: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Resolved prices with JSON-ready values."""
    return [dict(entry, value=money_value(entry['value'])) for entry in resolved_prices]


def reference_header_for(model: Dict[str, Any], reference_headers: ReferenceHeaders) -> Optional[int]:
    """
    Reference header id that applies to a model.

    reference_headers is either one header id, or a mapping of vehicle
    type to header id (EV and ICE each carry their own Ex-Showroom line).
    """
    if isinstance(reference_headers, dict):
        return reference_headers.get(model.get('type'))
    return reference_headers


def reference_value(resolved_prices: List[Dict[str, Any]],
                    reference_header_id: Optional[int]) -> Optional[Decimal]:
    """Value of the reference header line, or None when the model has none."""
    if reference_header_id is None:
        return None
    for entry in resolved_prices:
        if entry['header_id'] == reference_header_id:
            return entry['value']
    return None


def branch_reference_value(model: Dict[str, Any], branch_id: int,
                           reference_headers: ReferenceHeaders) -> Optional[Decimal]:
    """
    Reference value straight from a model record, first match in stored order.

    Used to rank series candidates without building their full price list.
    """
    reference_header_id = reference_header_for(model, reference_headers)
    if reference_header_id is None:
        return None
    for price in model.get('prices') or []:
        if price['branch_id'] == branch_id and price.get('header_id') == reference_header_id:
            return price['value']
    return None


def sort_for_display(resolved_prices: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Order by header priority; 'deleted' lines go last. Stable."""
    return sorted(resolved_prices, key=lambda p: (p['priority'] == 0, p['priority']))


def total_value(resolved_prices: List[Dict[str, Any]]) -> Decimal:
    """Sum of every resolved line (on-road total), to the paisa."""
    total = Decimal('0.00')
    for entry in resolved_prices:
        total += to_decimal(entry['value'])
    return total.quantize(CENT, rounding=ROUND_HALF_UP)
