"""Engine subpackage - core pricing logic and lookups."""
from .pricing_engine import PricingEngine, calculate
from .models import (
    RoofType,
    PriceEntry,
    SurchargeDefinition,
    RoofConfiguration,
    CustomSurcharge,
    LineItem,
    CalculationResult,
)
from .errors import PricingError, PriceNotFound, UnknownRoofType
from .surcharges import SurchargeCatalog, effective_value

__all__ = [
    'PricingEngine', 'calculate',
    'RoofType', 'PriceEntry', 'SurchargeDefinition', 'RoofConfiguration',
    'CustomSurcharge', 'LineItem', 'CalculationResult',
    'PricingError', 'PriceNotFound', 'UnknownRoofType',
    'SurchargeCatalog', 'effective_value',
]
