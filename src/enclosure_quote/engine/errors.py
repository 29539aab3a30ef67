"""
Exceptions raised by the pricing engine.
"""


class PricingError(Exception):
    """Base class for calculation failures."""


class PriceNotFound(PricingError):
    """No price-table entry matches the requested width and module count."""

    def __init__(self, roof_type_code: str, width: int, modules: int):
        self.roof_type_code = roof_type_code
        self.width = width
        self.modules = modules
        super().__init__(
            f"No price found for roof type {roof_type_code}, "
            f"width {width} mm and {modules} modules"
        )


class UnknownRoofType(PricingError):
    """The configuration names a roof type missing from the reference data."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Unknown roof type '{code}'")
