"""
Shared API state - engine, quote store and reference data singletons.
"""
from fastapi import HTTPException

from ..config.settings import get_settings
from ..engine import PricingEngine, RoofConfiguration, CalculationResult, PriceNotFound, UnknownRoofType
from ..services.quote_service import QuoteService
from ..services.reference_service import ReferenceService
from ..services.validation import ensure_valid, InvalidConfiguration, ValidationResult

settings = get_settings()
engine = PricingEngine(settings=settings)
quote_service = QuoteService(settings.quotes_dir, prefix=settings.quote_prefix)
# Admin edits go to the CSV directory; a configured workbook takes precedence when loading
reference_service = ReferenceService(settings.data_dir)


def price_configuration(configuration: RoofConfiguration) -> tuple[CalculationResult, ValidationResult]:
    """Validate and calculate, mapping failures to HTTP errors."""
    roof_type = engine.reference_data.roof_type(configuration.roof_type_code)
    if roof_type is None:
        raise HTTPException(status_code=404, detail=f"Unknown roof type '{configuration.roof_type_code}'")

    try:
        validation = ensure_valid(configuration, roof_type)
    except InvalidConfiguration as e:
        raise HTTPException(status_code=422, detail={"errors": e.errors})

    try:
        result = engine.calculate(configuration)
    except (PriceNotFound, UnknownRoofType) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result, validation
