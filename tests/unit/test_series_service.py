"""
Unit tests for series classification and base-model selection.
"""

import pytest
from quotedesk.exceptions import ReferenceHeaderMissing
from quotedesk.services.series_service import (
    UNKNOWN_SERIES, base_models_by_series, find_reference_header, find_reference_headers,
    group_by_series, select_base_model, series_of
)

BRANCH = 1
OTHER_BRANCH = 2
EX_SHOWROOM = 10
RTO = 11
EV_EX_SHOWROOM = 20


def model(model_id, name, ex_showroom=None, branch_id=BRANCH, extra_prices=()):
    prices = list(extra_prices)
    if ex_showroom is not None:
        prices.append({'value': ex_showroom, 'header_id': EX_SHOWROOM, 'branch_id': branch_id})
    return {'id': model_id, 'model_name': name, 'type': 'ICE', 'status': 'active', 'prices': prices}


def ev_model(model_id, name, ex_showroom):
    return {'id': model_id, 'model_name': name, 'type': 'EV', 'status': 'active',
            'prices': [{'value': ex_showroom, 'header_id': EV_EX_SHOWROOM, 'branch_id': BRANCH}]}


class TestSeriesOf:
    """Tests for series_of()."""

    @pytest.mark.parametrize('name, expected', [
        ('Activa 125 Disc', 'Activa'),
        ('X 1', 'X'),
        ('X1', 'X1'),
        ('X10', 'X10'),
        ('Splendor+ Xtec', 'Splendor'),
        ('CB350-RS', 'CB350'),
        ('  Activa', UNKNOWN_SERIES),
        ('-Shine', UNKNOWN_SERIES),
        ('', UNKNOWN_SERIES),
        (None, UNKNOWN_SERIES),
    ])
    def test_leading_alphanumeric_token(self, name, expected):
        assert series_of(name) == expected

    def test_deterministic(self):
        assert series_of('Pulsar N160') == series_of('Pulsar N160')

    def test_non_ascii_letters_end_the_token(self):
        assert series_of('Olaé S1') == 'Ola'

    def test_prefix_is_not_the_same_series(self):
        """'X1' and 'X10' share a prefix but are different series."""
        assert series_of('X1') != series_of('X10')


class TestFindReferenceHeader:
    """Tests for find_reference_header()."""

    def test_matches_header_key_case_insensitively(self):
        headers = [
            {'id': 1, 'header_key': 'RTO Tax', 'category_key': 'Price'},
            {'id': 2, 'header_key': 'EX-SHOWROOM', 'category_key': 'Price'},
        ]
        assert find_reference_header(headers)['id'] == 2

    def test_matches_category_key(self):
        headers = [{'id': 3, 'header_key': 'Base', 'category_key': 'Ex-Showroom Price'}]
        assert find_reference_header(headers)['id'] == 3

    def test_ignores_punctuation_and_spaces(self):
        headers = [{'id': 4, 'header_key': 'Ex Showroom', 'category_key': 'Price'}]
        assert find_reference_header(headers, 'ex-showroom')['id'] == 4

    def test_first_in_catalog_order_wins(self):
        headers = [
            {'id': 5, 'header_key': 'Ex-Showroom', 'category_key': 'EV'},
            {'id': 6, 'header_key': 'Ex-Showroom', 'category_key': 'ICE'},
        ]
        assert find_reference_header(headers)['id'] == 5

    def test_custom_matcher(self):
        headers = [{'id': 7, 'header_key': 'Dealer Price', 'category_key': 'Price'}]
        assert find_reference_header(headers, 'dealer price')['id'] == 7

    def test_missing_header_is_signalled(self):
        headers = [{'id': 1, 'header_key': 'RTO Tax', 'category_key': 'Price'}]
        with pytest.raises(ReferenceHeaderMissing) as exc_info:
            find_reference_header(headers)
        assert exc_info.value.matcher == 'ex-showroom'

    def test_empty_catalog_is_signalled(self):
        with pytest.raises(ReferenceHeaderMissing):
            find_reference_header([])


class TestFindReferenceHeaders:
    """Tests for find_reference_headers()."""

    def test_one_header_per_type(self):
        headers = [
            {'id': 1, 'type': 'ICE', 'header_key': 'Ex-Showroom', 'category_key': 'Price'},
            {'id': 2, 'type': 'EV', 'header_key': 'Ex-Showroom', 'category_key': 'Price'},
            {'id': 3, 'type': 'EV', 'header_key': 'Ex Showroom (old)', 'category_key': 'Price'},
        ]
        found = find_reference_headers(headers)
        assert {t: h['id'] for t, h in found.items()} == {'ICE': 1, 'EV': 2}

    def test_type_without_match_is_left_out(self):
        headers = [
            {'id': 1, 'type': 'ICE', 'header_key': 'Ex-Showroom', 'category_key': 'Price'},
            {'id': 2, 'type': 'EV', 'header_key': 'RTO Tax', 'category_key': 'Price'},
        ]
        assert list(find_reference_headers(headers)) == ['ICE']

    def test_no_type_matches(self):
        headers = [{'id': 2, 'type': 'EV', 'header_key': 'RTO Tax', 'category_key': 'Price'}]
        with pytest.raises(ReferenceHeaderMissing):
            find_reference_headers(headers)


class TestSelectBaseModel:
    """Tests for select_base_model()."""

    def test_strict_minimum_wins(self):
        candidates = [model(1, 'X 1', 120000), model(2, 'X 2', 95000), model(3, 'X 3', 110000)]
        base = select_base_model(candidates, BRANCH, EX_SHOWROOM)
        assert base['model']['id'] == 2
        assert base['price'] == 95000

    def test_tie_goes_to_first_in_input_order(self):
        candidates = [model(7, 'X 7', 100000), model(3, 'X 3', 100000), model(9, 'X 9', 150000)]
        assert select_base_model(candidates, BRANCH, EX_SHOWROOM)['model']['id'] == 7

        reversed_candidates = list(reversed(candidates))
        assert select_base_model(reversed_candidates, BRANCH, EX_SHOWROOM)['model']['id'] == 3

    def test_unrankable_candidates_are_skipped(self):
        candidates = [
            model(1, 'X 1'),  # no price at all
            model(2, 'X 2', 90000, branch_id=OTHER_BRANCH),  # priced elsewhere only
            model(3, 'X 3', 130000),
        ]
        base = select_base_model(candidates, BRANCH, EX_SHOWROOM)
        assert base['model']['id'] == 3

    def test_only_reference_header_is_compared(self):
        candidates = [
            model(1, 'X 1', 120000, extra_prices=[{'value': 1000, 'header_id': RTO, 'branch_id': BRANCH}]),
            model(2, 'X 2', 110000, extra_prices=[{'value': 9000, 'header_id': RTO, 'branch_id': BRANCH}]),
        ]
        assert select_base_model(candidates, BRANCH, EX_SHOWROOM)['model']['id'] == 2

    def test_duplicate_entries_use_first_value(self):
        duplicated = model(1, 'X 1', 80000)
        duplicated['prices'].append({'value': 10, 'header_id': EX_SHOWROOM, 'branch_id': BRANCH})
        base = select_base_model([duplicated, model(2, 'X 2', 90000)], BRANCH, EX_SHOWROOM)
        assert base == {'model': duplicated, 'price': 80000}

    def test_nothing_rankable_returns_none(self):
        assert select_base_model([model(1, 'X 1'), model(2, 'X 2')], BRANCH, EX_SHOWROOM) is None
        assert select_base_model([], BRANCH, EX_SHOWROOM) is None

    def test_reference_header_per_type(self):
        candidates = [ev_model(1, 'E 1', 90000), ev_model(2, 'E 2', 110000)]
        reference_headers = {'ICE': EX_SHOWROOM, 'EV': EV_EX_SHOWROOM}
        base = select_base_model(candidates, BRANCH, reference_headers)
        assert base['model']['id'] == 1
        assert base['price'] == 90000

    def test_type_missing_from_mapping_is_unrankable(self):
        candidates = [ev_model(1, 'E 1', 90000), ev_model(2, 'E 2', 110000)]
        assert select_base_model(candidates, BRANCH, {'ICE': EX_SHOWROOM}) is None
        assert select_base_model(candidates, BRANCH, None) is None


class TestBaseModelsBySeries:
    """Tests for base_models_by_series()."""

    def test_one_base_per_series(self):
        candidates = [
            model(1, 'Activa 125', 85000),
            model(2, 'Activa 6G', 76000),
            model(3, 'Shine 100', 65000),
            model(4, 'Shine SP', 72000),
        ]
        bases = base_models_by_series(candidates, BRANCH, EX_SHOWROOM)
        assert {series: b['model']['id'] for series, b in bases.items()} == {'Activa': 2, 'Shine': 3}

    def test_unknown_series_never_has_a_base(self):
        candidates = [model(1, '-Promo', 1000), model(2, ' Spare', 500)]
        assert base_models_by_series(candidates, BRANCH, EX_SHOWROOM) == {}

    def test_series_without_prices_is_left_out(self):
        candidates = [model(1, 'Dio STD'), model(2, 'Shine 100', 65000)]
        assert list(base_models_by_series(candidates, BRANCH, EX_SHOWROOM)) == ['Shine']

    def test_group_order_follows_first_occurrence(self):
        groups = group_by_series([model(1, 'B 1'), model(2, 'A 1'), model(3, 'B 2')])
        assert list(groups) == ['B', 'A']
        assert [m['id'] for m in groups['B']] == [1, 3]
