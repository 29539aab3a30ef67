"""
Configuration validation: errors block pricing, warnings pass through.
"""
import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from enclosure_quote.config.settings import PACKAGE_DIR
from enclosure_quote.data.reference_data import load_reference_data
from enclosure_quote.engine import RoofConfiguration
from enclosure_quote.services.validation import (
    InvalidConfiguration,
    ValidationResult,
    ensure_valid,
    validate_configuration,
)


@pytest.fixture(scope="module")
def data():
    return load_reference_data(PACKAGE_DIR / 'data' / 'reference')


def test_ensure_valid_raises_with_errors():
    with pytest.raises(InvalidConfiguration) as excinfo:
        ensure_valid(RoofConfiguration(width=9000))

    assert excinfo.value.errors == ["Width must be between 1500 and 7000 mm"]
    assert isinstance(excinfo.value, ValueError)


def test_ensure_valid_collects_every_error():
    with pytest.raises(InvalidConfiguration) as excinfo:
        ensure_valid(RoofConfiguration(modules=9, discount_percent=150, installation_type='moon'))

    errors = excinfo.value.errors
    assert len(errors) == 3
    assert "Discount must be between 0 and 100 %" in errors
    assert str(excinfo.value) == "; ".join(errors)


def test_ensure_valid_returns_warnings(data):
    result = ensure_valid(RoofConfiguration(surface_type='ral'), data.roof_type('HORIZONT'))

    assert isinstance(result, ValidationResult)
    assert result.valid
    assert result.warnings == ["RAL surface selected without a colour, no surcharge applied"]


def test_roof_type_limits(data):
    result = validate_configuration(RoofConfiguration(width=2000), data.roof_type('HORIZONT'))

    assert not result.valid
    assert result.errors == ["Horizont is available from 2500 to 4000 mm"]


def test_skirts_warning_for_roof_without_skirts(data):
    horizont = RoofConfiguration(solid_poly_skirts=True)
    rock = RoofConfiguration(roof_type_code='ROCK', width=3200, solid_poly_skirts=True)

    assert validate_configuration(horizont, data.roof_type('HORIZONT')).warnings
    assert validate_configuration(rock, data.roof_type('ROCK')).warnings == []


def test_solid_poly_modules_bounded_by_module_count():
    result = validate_configuration(RoofConfiguration(modules=3, solid_poly_modules=4))
    assert result.errors == ["Solid polycarbonate modules must be between 0 and the module count"]
