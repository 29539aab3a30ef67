import logging
import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from enclosure_quote.engine import PriceEntry, SurchargeDefinition, SurchargeCatalog, effective_value
from enclosure_quote.engine.lookup import find_price, get_standard_length, round_currency, STANDARD_LENGTHS


@pytest.mark.parametrize("value,expected", [
    (2.5, 3),
    (-2.5, -3),
    (1292.52, 1293),
    (64626 * -0.05, -3231),
    (3554.45, 3554),
    (0, 0),
], ids=['half-up', 'half-away-negative', 'fraction', 'float-noise', 'below-half', 'zero'])
def test_round_currency(value, expected):
    assert round_currency(value) == expected


def test_standard_lengths():
    assert get_standard_length(2) == 4336
    assert get_standard_length(7) == 15176
    assert sorted(STANDARD_LENGTHS) == [2, 3, 4, 5, 6, 7]


def test_unknown_module_count_falls_back(caplog):
    with caplog.at_level(logging.WARNING):
        assert get_standard_length(9) == 4336
    assert "9 modules" in caplog.text


def test_find_price_matches_band_and_modules():
    table = [
        PriceEntry(2500, 3000, 2, 1000, 0.6),
        PriceEntry(2500, 3000, 3, 1500, 0.65),
        PriceEntry(3001, 3500, 2, 1200, 0.7),
    ]
    assert find_price(table, 3000, 3).price == 1500
    assert find_price(table, 3001, 2).price == 1200
    assert find_price(table, 3600, 2) is None
    assert find_price(table, 2800, 4) is None


def test_effective_value_rock_override():
    rail = SurchargeDefinition('rail_meter', 'Rail', 'RAILS', 'FIXED', 890, value_rock=1150)
    flap = SurchargeDefinition('vent_flap', 'Flap', 'DOORS', 'FIXED', 4200)

    assert effective_value(rail, 'HORIZONT') == 890
    assert effective_value(rail, 'ROCK') == 1150
    assert effective_value(flap, 'ROCK') == 4200


def test_catalog_first_definition_wins():
    catalog = SurchargeCatalog([
        SurchargeDefinition('segment_lock', 'Lock', 'CONSTRUCTION', 'FIXED', 750),
        SurchargeDefinition('segment_lock', 'Lock (old)', 'CONSTRUCTION', 'FIXED', 999),
        SurchargeDefinition('install_eu', 'EU', 'INSTALLATION', 'PERCENT', 0.1),
    ])

    assert catalog.get('segment_lock').value == 750
    assert catalog.get('missing') is None
    assert 'install_eu' in catalog
    assert len(catalog) == 3
    assert catalog.get('install_eu').is_percent
    assert catalog.effective_rate('install_eu', 'ROCK') == 0.1
    assert catalog.effective_rate('missing', 'ROCK') is None
    assert list(catalog.by_category()) == ['CONSTRUCTION', 'INSTALLATION']
    assert SurchargeCatalog.coerce(catalog) is catalog
