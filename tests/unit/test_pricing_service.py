"""
Unit tests for branch-scoped price resolution.
"""

import logging
from decimal import Decimal

from quotedesk.services.pricing_service import (
    branch_reference_value, money_value, reference_header_for, reference_value, resolve_prices,
    snapshot_prices, sort_for_display, total_value
)

HEADERS = {
    1: {'id': 1, 'header_key': 'Ex-Showroom', 'category_key': 'Price', 'priority': 1, 'metadata': {}},
    2: {'id': 2, 'header_key': 'RTO Tax', 'category_key': 'Price', 'priority': 2, 'metadata': {'rate': '8%'}},
    3: {'id': 3, 'header_key': 'Insurance', 'category_key': 'Price', 'priority': 3, 'metadata': {}},
}


def activa(prices):
    return {'id': 42, 'model_name': 'Activa 125', 'prices': prices}


class TestResolvePrices:
    """Tests for resolve_prices()."""

    def test_filters_to_branch_and_joins_headers(self):
        model = activa([
            {'value': 80000.0, 'header_id': 1, 'branch_id': 1},
            {'value': 81000.0, 'header_id': 1, 'branch_id': 2},
            {'value': 6400.0, 'header_id': 2, 'branch_id': 1},
        ])
        resolved = resolve_prices(model, 1, HEADERS)

        assert resolved == [
            {'value': 80000.0, 'header_id': 1, 'header_key': 'Ex-Showroom', 'category_key': 'Price',
             'priority': 1, 'metadata': {}, 'branch_id': 1},
            {'value': 6400.0, 'header_id': 2, 'header_key': 'RTO Tax', 'category_key': 'Price',
             'priority': 2, 'metadata': {'rate': '8%'}, 'branch_id': 1},
        ]

    def test_no_prices_for_branch_is_empty(self):
        model = activa([{'value': 81000.0, 'header_id': 1, 'branch_id': 2}])
        assert resolve_prices(model, 1, HEADERS) == []
        assert resolve_prices(activa([]), 1, HEADERS) == []

    def test_deleted_header_keeps_value(self, caplog):
        model = activa([
            {'value': 1500.0, 'header_id': None, 'branch_id': 1},
            {'value': 2500.0, 'header_id': 99, 'branch_id': 1},
        ])
        with caplog.at_level(logging.WARNING, logger='quotedesk.exceptions'):
            resolved = resolve_prices(model, 1, HEADERS)

        assert [p['value'] for p in resolved] == [1500.0, 2500.0]
        for entry in resolved:
            assert entry['header_key'] == 'deleted'
            assert entry['category_key'] == 'deleted'
            assert entry['priority'] == 0
            assert entry['metadata'] == {}
        assert '[INTEGRITY]' in caplog.text

    def test_duplicate_header_resolves_to_first(self, caplog):
        model = activa([
            {'value': 80000.0, 'header_id': 1, 'branch_id': 1},
            {'value': 1.0, 'header_id': 1, 'branch_id': 1},
        ])
        with caplog.at_level(logging.WARNING, logger='quotedesk.exceptions'):
            resolved = resolve_prices(model, 1, HEADERS)

        assert [p['value'] for p in resolved] == [80000.0]
        assert 'more than one price' in caplog.text

    def test_header_metadata_is_copied(self):
        model = activa([{'value': 6400.0, 'header_id': 2, 'branch_id': 1}])
        resolved = resolve_prices(model, 1, HEADERS)
        resolved[0]['metadata']['rate'] = 'changed'
        assert HEADERS[2]['metadata'] == {'rate': '8%'}


class TestHelpers:
    """Tests for reference_value(), sort_for_display() and total_value()."""

    def test_reference_value(self):
        resolved = resolve_prices(activa([
            {'value': 6400.0, 'header_id': 2, 'branch_id': 1},
            {'value': 80000.0, 'header_id': 1, 'branch_id': 1},
        ]), 1, HEADERS)
        assert reference_value(resolved, 1) == 80000.0
        assert reference_value(resolved, 3) is None
        assert reference_value(resolved, None) is None

    def test_sort_for_display_puts_deleted_last(self):
        resolved = [
            {'header_key': 'deleted', 'priority': 0, 'value': 10.0},
            {'header_key': 'Insurance', 'priority': 3, 'value': 3.0},
            {'header_key': 'Ex-Showroom', 'priority': 1, 'value': 1.0},
        ]
        assert [p['header_key'] for p in sort_for_display(resolved)] == ['Ex-Showroom', 'Insurance', 'deleted']

    def test_total_value(self):
        assert total_value([{'value': 80000.0}, {'value': 6400.0}, {'value': 4200.5}]) == 90600.5
        assert total_value([]) == 0.0

    def test_total_value_is_exact_to_the_paisa(self):
        decimals = [{'value': Decimal('100000.10')}, {'value': Decimal('8000.20')}, {'value': Decimal('5000.35')}]
        assert total_value(decimals) == Decimal('113000.65')

        floats = [{'value': 100000.1}, {'value': 8000.2}, {'value': 5000.35}]
        assert total_value(floats) == Decimal('113000.65')
        assert money_value(total_value(floats)) == 113000.65


class TestMoney:
    """Tests for money_value() and snapshot_prices()."""

    def test_money_value_rounds_half_up_to_paise(self):
        assert money_value(Decimal('5000.345')) == 5000.35
        assert money_value(Decimal('0.005')) == 0.01
        assert money_value(80000) == 80000.0
        assert money_value(None) is None

    def test_snapshot_prices_are_floats(self):
        resolved = [{'header_id': 1, 'header_key': 'Ex-Showroom', 'value': Decimal('100000.10')}]

        snapshot = snapshot_prices(resolved)

        assert snapshot == [{'header_id': 1, 'header_key': 'Ex-Showroom', 'value': 100000.1}]
        assert isinstance(snapshot[0]['value'], float)
        assert resolved[0]['value'] == Decimal('100000.10')


class TestReferenceHeaderPerType:
    """Tests for reference_header_for() and branch_reference_value()."""

    ev = {'id': 1, 'type': 'EV', 'prices': [
        {'value': Decimal('90000'), 'header_id': 20, 'branch_id': 1},
        {'value': Decimal('70000'), 'header_id': 1, 'branch_id': 1},
    ]}

    def test_single_id_applies_to_every_type(self):
        assert reference_header_for(self.ev, 1) == 1
        assert reference_header_for(self.ev, None) is None

    def test_mapping_is_looked_up_by_type(self):
        assert reference_header_for(self.ev, {'ICE': 1, 'EV': 20}) == 20
        assert reference_header_for(self.ev, {'ICE': 1}) is None

    def test_branch_reference_value_uses_the_models_type(self):
        assert branch_reference_value(self.ev, 1, {'ICE': 1, 'EV': 20}) == Decimal('90000')
        assert branch_reference_value(self.ev, 1, {'ICE': 1}) is None
        assert branch_reference_value(self.ev, 2, {'EV': 20}) is None
