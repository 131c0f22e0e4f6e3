"""
Integration tests for quotation counts and monthly/branch statistics.
"""
from datetime import datetime, timezone

import pytest

from quotedesk.models import AppUser, Quotation
from quotedesk.services.stats_service import (
    count_quotations, get_month_datetime_range, get_quotation_stats, get_today_datetime_range
)


@pytest.fixture
def colleague(session, branch):
    colleague = AppUser(username='sales2', full_name='Sales Two', branch_id=branch.id)
    session.add(colleague)
    session.commit()
    return colleague


def backdate(session, quotation_id, when):
    session.query(Quotation).filter_by(id=quotation_id).one().created_at = when
    session.commit()


class TestDatetimeRanges:

    def test_today_is_one_utc_day(self):
        start_dt, end_dt = get_today_datetime_range()

        assert start_dt.tzinfo == timezone.utc
        assert (end_dt - start_dt).days == 1
        assert start_dt <= datetime.now(timezone.utc) < end_dt

    def test_month_starts_on_the_first(self):
        start_dt, end_dt = get_month_datetime_range()

        assert start_dt.day == 1 and end_dt.day == 1
        assert start_dt <= datetime.now(timezone.utc) < end_dt


class TestCounts:

    def test_today_and_month(self, session, user, series_x, create_quotation):
        create_quotation([series_x['x1'].id])
        old = create_quotation([series_x['x2'].id])
        backdate(session, old['id'], datetime(2024, 1, 15, 10, 0))

        assert count_quotations(session, user, *get_today_datetime_range()) == 1
        assert count_quotations(session, user, *get_month_datetime_range()) == 1
        assert count_quotations(session, None, datetime(2024, 1, 1), datetime(2024, 2, 1)) == 1

    def test_sales_user_counts_only_own(self, session, user, admin_user, colleague, series_x, create_quotation):
        create_quotation([series_x['x1'].id])
        create_quotation([series_x['x2'].id], by=colleague)
        today = get_today_datetime_range()

        assert count_quotations(session, user, *today) == 1
        assert count_quotations(session, colleague, *today) == 1
        assert count_quotations(session, admin_user, *today) == 2


class TestQuotationStats:

    def test_empty(self, session, user):
        assert get_quotation_stats(session) == {'monthly_stats': [], 'branch_stats': []}

    def test_monthly_and_branch_totals(self, session, user, branch, series_x, create_quotation):
        create_quotation([series_x['x1'].id])
        create_quotation([series_x['x2'].id])
        old = create_quotation([series_x['x1'].id, series_x['x2'].id])
        backdate(session, old['id'], datetime(2024, 1, 15, 10, 0))
        now = datetime.now(timezone.utc)

        stats = get_quotation_stats(session)

        assert stats['monthly_stats'] == [
            {'year': 2024, 'month': 1, 'count': 1, 'total_amount': 248100.0},
            {'year': now.year, 'month': now.month, 'count': 2, 'total_amount': 248100.0},
        ]
        assert stats['branch_stats'] == [{
            'branch_id': branch.id,
            'branch_name': 'B1',
            'branch_city': 'Pune',
            'count': 3,
            'total_amount': 496200.0,
        }]

    def test_branch_filter_and_visibility(self, session, user, colleague, other_branch, series_x, create_quotation):
        create_quotation([series_x['x1'].id])
        create_quotation([series_x['x2'].id], by=colleague)

        assert get_quotation_stats(session, user)['branch_stats'][0]['total_amount'] == 113000.0
        assert get_quotation_stats(session, colleague)['branch_stats'][0]['total_amount'] == 135100.0
        assert get_quotation_stats(session, branch_id=other_branch.id)['branch_stats'] == []
