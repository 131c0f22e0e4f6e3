"""
Series classification and base-model selection.

A model's series is the leading alphanumeric token of its name
('Activa 125 Disc' -> 'Activa'). The base model of a series is the
model with the lowest reference price (ex-showroom by default) at the
quotation's branch.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from quotedesk.exceptions import ReferenceHeaderMissing
from quotedesk.services.pricing_service import ReferenceHeaders, branch_reference_value

logger = logging.getLogger(__name__)

UNKNOWN_SERIES = 'Unknown'

_LEADING_TOKEN = re.compile(r'[A-Za-z0-9]+')
_NON_ALNUM = re.compile(r'[^a-z0-9]')


def series_of(model_name: Optional[str]) -> str:
    """Longest leading run of ASCII letters/digits, or 'Unknown'."""
    if not model_name:
        return UNKNOWN_SERIES
    match = _LEADING_TOKEN.match(model_name)
    return match.group(0) if match else UNKNOWN_SERIES


def _normalize(text: Optional[str]) -> str:
    # 'Ex-Showroom', 'ex showroom' and 'EX_SHOWROOM' compare equal
    return _NON_ALNUM.sub('', (text or '').lower())


def find_reference_header(headers: Iterable[Dict[str, Any]], matcher: str = 'ex-showroom') -> Dict[str, Any]:
    """
    First header whose header_key or category_key contains the matcher.

    Headers are scanned in the order given (catalog order: priority, id).
    Comparison ignores case and punctuation.

    Raises:
        ReferenceHeaderMissing: No header matches
    """
    needle = _normalize(matcher)
    if needle:
        for header in headers:
            if needle in _normalize(header.get('header_key')) or needle in _normalize(header.get('category_key')):
                return header
    raise ReferenceHeaderMissing(matcher)


def find_reference_headers(headers: Iterable[Dict[str, Any]], matcher: str = 'ex-showroom') -> Dict[str, Dict[str, Any]]:
    """
    Reference header per vehicle type.

    Headers are scoped to a type, so EV and ICE each define their own
    Ex-Showroom line. Within every type the first match in catalog order
    is used. Types without a match are left out.

    Raises:
        ReferenceHeaderMissing: No header of any type matches
    """
    by_type: Dict[str, List[Dict[str, Any]]] = {}
    for header in headers:
        by_type.setdefault(header.get('type'), []).append(header)

    found = {}
    for header_type, group in by_type.items():
        try:
            found[header_type] = find_reference_header(group, matcher)
        except ReferenceHeaderMissing:
            continue

    if not found:
        raise ReferenceHeaderMissing(matcher)
    return found


def select_base_model(candidates: List[Dict[str, Any]], branch_id: int,
                      reference_headers: ReferenceHeaders) -> Optional[Dict[str, Any]]:
    """
    Cheapest candidate by reference value.

    reference_headers is a header id, or a mapping of vehicle type to
    header id so each model is ranked on its own type's line.

    Candidates without a reference value at the branch cannot be ranked and
    are skipped. Only a strictly lower value replaces the current minimum,
    so on a tie the candidate appearing first in `candidates` wins.

    Returns:
        {'model': record, 'price': value} or None when nothing is rankable
    """
    best = None
    for model in candidates:
        value = branch_reference_value(model, branch_id, reference_headers)
        if value is None:
            continue
        if best is None or value < best['price']:
            best = {'model': model, 'price': value}
    return best


def group_by_series(models: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Group model records by series, keeping first-seen order for groups and members."""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for model in models:
        groups.setdefault(series_of(model['model_name']), []).append(model)
    return groups


def base_models_by_series(candidates: Iterable[Dict[str, Any]], branch_id: int,
                          reference_headers: ReferenceHeaders) -> Dict[str, Dict[str, Any]]:
    """
    Base model per series over the full candidate set.

    The 'Unknown' series is not a product family and never gets a base model.
    """
    bases = {}
    for series, members in group_by_series(candidates).items():
        if series == UNKNOWN_SERIES:
            continue
        base = select_base_model(members, branch_id, reference_headers)
        if base is not None:
            bases[series] = base
        else:
            logger.info(f"[PRICING] Series '{series}' has no reference price at branch {branch_id}")
    return bases
