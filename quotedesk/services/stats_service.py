"""
Quotation statistics - counts and amounts over stored quotations.

Amounts come from the snapshots (the sum of models[].total_price of each
quotation), never from live catalog prices.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from quotedesk.models import AppUser, Branch, Quotation
from quotedesk.services.pricing_service import money_value, to_decimal

logger = logging.getLogger(__name__)


def get_today_datetime_range() -> Tuple[datetime, datetime]:
    """
    Datetime range for today, in UTC (the timezone quotations are stamped in).

    Returns:
        tuple: (start_dt, end_dt), start inclusive and end exclusive
    """
    today = datetime.now(timezone.utc).date()
    start_dt = datetime.combine(today, time.min, tzinfo=timezone.utc)
    return start_dt, start_dt + timedelta(days=1)


def get_month_datetime_range() -> Tuple[datetime, datetime]:
    """Datetime range for the current calendar month, in UTC."""
    today = datetime.now(timezone.utc).date()
    first = date(today.year, today.month, 1)
    next_first = date(today.year + 1, 1, 1) if today.month == 12 else date(today.year, today.month + 1, 1)
    return (
        datetime.combine(first, time.min, tzinfo=timezone.utc),
        datetime.combine(next_first, time.min, tzinfo=timezone.utc)
    )


def _visible(query, user: Optional[AppUser]):
    if user is not None and not user.is_admin:
        query = query.filter(Quotation.created_by == user.id)
    return query


def quotation_amount(quotation: Quotation) -> Decimal:
    """Sum of the on-road totals of every model in the quotation."""
    total = Decimal('0.00')
    for model in quotation.models or []:
        total += to_decimal(model.get('total_price'))
    return total


def count_quotations(session: Session, user: Optional[AppUser], start_dt: datetime, end_dt: datetime) -> int:
    """Quotations created in [start_dt, end_dt) that the user can see."""
    query = _visible(session.query(func.count(Quotation.id)), user).filter(
        Quotation.created_at >= start_dt,
        Quotation.created_at < end_dt
    )
    return query.scalar() or 0


def get_quotation_stats(session: Session, user: Optional[AppUser] = None,
                        branch_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Monthly and per-branch quotation counts and amounts.

    Args:
        session: SQLAlchemy session
        user: Restricts a sales user to their own quotations; None means all
        branch_id: Optional branch filter

    Returns:
        dict with keys:
            - monthly_stats: [{year, month, count, total_amount}], oldest first
            - branch_stats: [{branch_id, branch_name, branch_city, count, total_amount}]
    """
    query = _visible(session.query(Quotation), user)
    if branch_id is not None:
        query = query.filter(Quotation.branch_id == branch_id)

    monthly: Dict[Tuple[int, int], Dict[str, Any]] = {}
    by_branch: Dict[int, Dict[str, Any]] = {}

    for quotation in query.order_by(Quotation.created_at, Quotation.id).all():
        amount = quotation_amount(quotation)

        month = monthly.setdefault(
            (quotation.created_at.year, quotation.created_at.month),
            {'count': 0, 'total': Decimal('0.00')}
        )
        month['count'] += 1
        month['total'] += amount

        branch = by_branch.setdefault(quotation.branch_id, {'count': 0, 'total': Decimal('0.00')})
        branch['count'] += 1
        branch['total'] += amount

    branches = {}
    if by_branch:
        branches = {
            b.id: b for b in session.query(Branch).filter(Branch.id.in_(list(by_branch))).all()
        }

    monthly_stats = [
        {'year': year, 'month': month, 'count': data['count'], 'total_amount': money_value(data['total'])}
        for (year, month), data in sorted(monthly.items())
    ]
    branch_stats = [
        {
            'branch_id': bid,
            'branch_name': branches[bid].name if bid in branches else None,
            'branch_city': branches[bid].city if bid in branches else None,
            'count': data['count'],
            'total_amount': money_value(data['total']),
        }
        for bid, data in sorted(by_branch.items())
    ]

    logger.info(f"[STATS] {sum(m['count'] for m in monthly_stats)} quotation(s) over {len(monthly_stats)} month(s)")
    return {'monthly_stats': monthly_stats, 'branch_stats': branch_stats}
