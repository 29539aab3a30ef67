"""
Configuration validation - rejects malformed input before the engine runs.
"""
from dataclasses import dataclass, field
from typing import Optional

from ..engine.models import (
    RoofConfiguration,
    RoofType,
    FRONT_TYPES,
    SURFACE_TYPES,
    INSTALLATION_TYPES,
)

MIN_WIDTH = 1500
MAX_WIDTH = 7000
MIN_MODULES = 2
MAX_MODULES = 7


class InvalidConfiguration(ValueError):
    """Raised when a configuration fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str):
        self.errors.append(message)
        self.valid = False


def validate_configuration(config: RoofConfiguration, roof_type: Optional[RoofType] = None) -> ValidationResult:
    """Validate a configuration, optionally against its roof type's limits."""
    result = ValidationResult(valid=True)

    if not MIN_WIDTH <= config.width <= MAX_WIDTH:
        result.add_error(f"Width must be between {MIN_WIDTH} and {MAX_WIDTH} mm")
    if not MIN_MODULES <= config.modules <= MAX_MODULES:
        result.add_error(f"Modules must be between {MIN_MODULES} and {MAX_MODULES}")

    if roof_type is not None:
        if roof_type.code != config.roof_type_code:
            result.add_error(f"Roof type {roof_type.code} does not match configuration {config.roof_type_code}")
        if not roof_type.min_width <= config.width <= roof_type.max_width:
            result.add_error(
                f"{roof_type.name} is available from {roof_type.min_width} to {roof_type.max_width} mm"
            )
        if not roof_type.min_modules <= config.modules <= roof_type.max_modules:
            result.add_error(
                f"{roof_type.name} is available with {roof_type.min_modules} to {roof_type.max_modules} modules"
            )
        if config.solid_poly_skirts and not roof_type.has_skirts:
            result.warnings.append(f"{roof_type.name} has no skirts, solid polycarbonate in skirts is ignored")

    if not config.use_standard_length and config.custom_length is not None and config.custom_length <= 0:
        result.add_error("Custom length must be positive")
    if not config.use_standard_height and config.custom_height is not None and config.custom_height <= 0:
        result.add_error("Custom height must be positive")

    if config.solid_poly_modules < 0 or config.solid_poly_modules > config.modules:
        result.add_error("Solid polycarbonate modules must be between 0 and the module count")
    if config.color_change_modules < 0 or config.color_change_modules > config.modules:
        result.add_error("Colour change modules must be between 0 and the module count")
    if config.rail_extension < 0:
        result.add_error("Rail extension cannot be negative")

    for label, front_type in (("Big front", config.big_front_type), ("Small front", config.small_front_type)):
        if front_type not in FRONT_TYPES:
            result.add_error(f"{label} type must be one of {', '.join(FRONT_TYPES)}")

    if config.surface_type not in SURFACE_TYPES:
        result.add_error(f"Surface type must be one of {', '.join(SURFACE_TYPES)}")
    elif config.surface_type == 'ral' and not config.ral_color:
        result.warnings.append("RAL surface selected without a colour, no surcharge applied")

    if config.installation_type not in INSTALLATION_TYPES:
        result.add_error(f"Installation type must be one of {', '.join(INSTALLATION_TYPES)}")

    if not 0 <= config.discount_percent <= 100:
        result.add_error("Discount must be between 0 and 100 %")
    if config.transport_km < 0 or config.transport_rate < 0:
        result.add_error("Transport distance and rate cannot be negative")

    return result


def ensure_valid(config: RoofConfiguration, roof_type: Optional[RoofType] = None) -> ValidationResult:
    """Validate and raise InvalidConfiguration on errors."""
    result = validate_configuration(config, roof_type)
    if not result.valid:
        raise InvalidConfiguration(result.errors)
    return result
