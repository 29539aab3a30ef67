"""
Golden test cases for pricing engine regression testing.
These tests capture the expected behavior of the pricing engine on the seed
reference data and should fail if pricing logic changes unexpectedly.
"""
import csv
import json
import os
import sys
import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from enclosure_quote.config.settings import PACKAGE_DIR
from enclosure_quote.data.reference_data import load_reference_data
from enclosure_quote.engine import PricingEngine, RoofConfiguration


@pytest.fixture(scope="module")
def engine():
    """Create a single engine instance for all tests."""
    return PricingEngine(reference_data=load_reference_data(PACKAGE_DIR / 'data' / 'reference'))


def load_golden_cases():
    """Load golden test cases from CSV."""
    cases_path = os.path.join(os.path.dirname(__file__), 'golden_cases.csv')

    with open(cases_path, 'r', newline='', encoding='utf-8') as f:
        return list(csv.DictReader(f))


@pytest.mark.parametrize("case", load_golden_cases(), ids=lambda c: c['case_id'])
def test_golden_case(engine, case):
    """Test that the breakdown totals match the expected golden case."""
    config = RoofConfiguration.from_dict({
        'roof_type_code': case['roof_type'],
        'width': int(case['width']),
        'modules': int(case['modules']),
        **json.loads(case['options']),
    })

    result = engine.calculate(config)

    assert result.base_price == int(case['expected_base'])
    assert result.surcharges_total == int(case['expected_surcharges']), \
        f"Surcharges mismatch: {[(i.name, i.price) for i in result.items]}"
    assert result.roof_price == int(case['expected_roof'])
    assert result.transport_price == int(case['expected_transport'])
    assert result.install_price == int(case['expected_install'])
    assert result.discount_amount == int(case['expected_discount'])
    assert result.final_price == int(case['expected_final'])


def test_golden_cases_are_additive(engine):
    """Roof price is always the base price plus the sum of the items."""
    for case in load_golden_cases():
        config = RoofConfiguration.from_dict({
            'roof_type_code': case['roof_type'],
            'width': int(case['width']),
            'modules': int(case['modules']),
            **json.loads(case['options']),
        })
        result = engine.calculate(config)
        assert result.roof_price == result.base_price + sum(item.price for item in result.items)
        assert result.final_price == (
            result.roof_price + result.transport_price + result.install_price - result.discount_amount
        )
