"""
Unit tests for formatting helpers.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from quotedesk.utils.formatters import date_in, money_in, rupees


@pytest.mark.parametrize('value, expected', [
    (0, '0'),
    (999, '999'),
    (1500, '1,500'),
    (100000, '1,00,000'),
    (120000.0, '1,20,000'),
    (12345678.5, '1,23,45,678.5'),
    (Decimal('-250000.75'), '-2,50,000.75'),
    ('85000', '85,000'),
    (None, '-'),
    ('', '-'),
    ('abc', '-'),
])
def test_money_in(value, expected):
    assert money_in(value) == expected


def test_money_in_fixed_decimals():
    assert money_in(120000, decimals=2) == '1,20,000.00'
    assert money_in(Decimal('6400.5'), decimals=2) == '6,400.50'


def test_rupees():
    assert rupees(100000) == 'Rs. 1,00,000'
    assert rupees(None) == '-'


@pytest.mark.parametrize('value, expected', [
    (date(2024, 3, 5), '05/03/2024'),
    (datetime(2024, 12, 31, 18, 30), '31/12/2024'),
    ('2024-03-05', '05/03/2024'),
    ('2024-03-05T10:15:00', '05/03/2024'),
    (None, '-'),
])
def test_date_in(value, expected):
    assert date_in(value) == expected
