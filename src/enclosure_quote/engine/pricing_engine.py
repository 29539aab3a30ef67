"""
Pricing Engine - maps a roof configuration plus reference data to an
itemized, deterministic price breakdown.

Rule order (each rule adds zero or more line items):
1. Base price and standard dimensions
2. Height change
3. Length change
4. Solid polycarbonate
5. Polycarbonate colour change
6. Mountain reinforcement
7. Rails
8. Big front
9. Small front
10. Side doors
11. Segment locking
12. Surface finish
13. Ad-hoc surcharges

Then roof price, transport, installation, total, discount and final price.
A rule whose surcharge definition is missing from the catalog is skipped
without an item; only a missing base price fails the calculation.
"""
import logging
from typing import Iterable, Optional, Union

from .errors import PriceNotFound, UnknownRoofType
from .lookup import find_price, get_standard_length, round_currency
from .models import (
    CalculationResult,
    LineItem,
    PriceEntry,
    RoofConfiguration,
    RoofType,
    SurchargeDefinition,
    TraceStep,
)
from .surcharges import SurchargeCatalog, effective_value

logger = logging.getLogger(__name__)

# Flat discounts for a missing front, as a fraction of the base price
BIG_FRONT_MISSING_RATE = -0.05
SMALL_FRONT_MISSING_RATE = -0.03

# Front areas relative to the whole roof, for colour change pricing
BIG_FRONT_AREA_SHARE = 0.1
SMALL_FRONT_AREA_SHARE = 0.05

# Catalog codes consumed by the rules below
SURCHARGE_CODES = (
    'height_increase',
    'module_extend',
    'module_extend_meter',
    'module_shorten',
    'poly_solid',
    'poly_color_change',
    'mountain_reinforcement',
    'rail_meter',
    'doors_single_small',
    'doors_single_large',
    'doors_lock',
    'doors_side',
    'vent_flap',
    'segment_lock',
    'surface_bronze_elox',
    'surface_anthracite_elox',
    'surface_ral',
    'install_cz',
    'install_eu',
)

DEFAULT_DOORS_WIDTH = 900
DEFAULT_DOORS_HEIGHT = 1800
DEFAULT_FLAP_HEIGHT = 300

# Rail extension up to this length (m) is free; two rails are charged beyond it
FREE_RAIL_EXTENSION_M = 1
RAILS_PER_ROOF = 2


class _Breakdown:
    """Running item list, surcharge total and trace for one calculation."""

    def __init__(self, roof_type_code: str, catalog: SurchargeCatalog):
        self.roof_type_code = roof_type_code
        self.catalog = catalog
        self.items: list[LineItem] = []
        self.total = 0
        self.trace: list[TraceStep] = []

    def add_item(
        self,
        name: str,
        price: float,
        quantity: Optional[float] = None,
        unit: Optional[str] = None,
        description: Optional[str] = None,
    ):
        self.items.append(LineItem(name=name, price=price, quantity=quantity, unit=unit, description=description))
        self.total += price
        self.add_trace("Item", name, str(price))

    def add_trace(self, step: str, description: str, value: Optional[str] = None):
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def surcharge(self, code: str) -> Optional[SurchargeDefinition]:
        """Look up a definition; a miss is traced and the caller skips the rule."""
        definition = self.catalog.get(code)
        if definition is None:
            logger.debug("Surcharge '%s' not in catalog, rule skipped", code)
            self.add_trace("Rule Skipped", f"Surcharge '{code}' not in catalog")
        return definition

    def rate(self, definition: SurchargeDefinition) -> float:
        return effective_value(definition, self.roof_type_code)


def calculate(
    configuration: RoofConfiguration,
    roof_type: RoofType,
    price_table: Iterable[PriceEntry],
    surcharges: Union[SurchargeCatalog, Iterable[SurchargeDefinition]],
) -> CalculationResult:
    """
    Price one roof configuration.

    Args:
        configuration: Customer choices (never mutated)
        roof_type: Descriptor of the selected product line
        price_table: Price entries of that roof type
        surcharges: Surcharge catalog or iterable of definitions

    Returns:
        CalculationResult with items, totals and trace

    Raises:
        PriceNotFound: no entry matches (width, modules)
    """
    config = configuration
    catalog = SurchargeCatalog.coerce(surcharges)
    b = _Breakdown(config.roof_type_code, catalog)

    # 1. Base price
    price_entry = find_price(price_table, config.width, config.modules)
    if price_entry is None:
        raise PriceNotFound(roof_type.code, config.width, config.modules)

    base_price = price_entry.price
    standard_height = round_currency(price_entry.height * 1000)
    standard_length = get_standard_length(config.modules)
    b.add_trace(
        "Base Price",
        f"{roof_type.code} band {price_entry.width_min}-{price_entry.width_max} mm, {config.modules} modules",
        str(base_price),
    )
    b.add_trace("Standard Dimensions", "length / height (mm)", f"{standard_length} / {standard_height}")

    _apply_height(b, config, base_price, standard_height)
    _apply_length(b, config, standard_length)
    _apply_solid_poly(b, config, roof_type)
    _apply_color_change(b, config, base_price)
    _apply_mountain_reinforcement(b, config, base_price)
    _apply_rails(b, config)
    _apply_front(
        b, base_price, "big front",
        present=config.has_big_front,
        front_type=config.big_front_type,
        doors_width=config.big_front_doors_width,
        doors_height=config.big_front_doors_height,
        doors_large=config.big_front_doors_large,
        flap_height=config.big_front_flap_height,
        lock=config.big_front_lock,
        missing_rate=BIG_FRONT_MISSING_RATE,
    )
    _apply_front(
        b, base_price, "small front",
        present=config.has_small_front,
        front_type=config.small_front_type,
        doors_width=config.small_front_doors_width,
        doors_height=config.small_front_doors_height,
        doors_large=config.small_front_doors_large,
        flap_height=config.small_front_flap_height,
        lock=config.small_front_lock,
        missing_rate=SMALL_FRONT_MISSING_RATE,
    )
    _apply_side_doors(b, config)
    _apply_segment_locking(b, config)
    _apply_surface(b, config, base_price)

    # 13. Ad-hoc surcharges
    for custom in config.custom_surcharges:
        if custom.name and custom.price != 0:
            b.add_item(custom.name, custom.price)

    # Totals
    surcharges_total = b.total
    roof_price = base_price + surcharges_total

    transport_price = 0
    if config.include_transport and config.transport_km > 0:
        transport_price = round_currency(config.transport_km * config.transport_rate)

    install_price = _installation_price(b, config, roof_price)
    total_price = roof_price + transport_price + install_price

    discount_amount = 0
    if config.discount_percent > 0:
        discount_amount = round_currency(roof_price * config.discount_percent / 100)

    final_price = total_price - discount_amount

    b.add_trace("Roof Price", "base price + surcharges", str(roof_price))
    b.add_trace("Transport", f"{config.transport_km} km × {config.transport_rate}", str(transport_price))
    b.add_trace("Installation", config.installation_type, str(install_price))
    b.add_trace("Discount", f"{config.discount_percent}% of roof price", str(discount_amount))
    b.add_trace("Final Price", "total - discount", str(final_price))

    return CalculationResult(
        base_price=base_price,
        standard_length=standard_length,
        standard_height=standard_height,
        items=tuple(b.items),
        surcharges_total=surcharges_total,
        roof_price=roof_price,
        transport_price=transport_price,
        install_price=install_price,
        total_price=total_price,
        discount_amount=discount_amount,
        final_price=final_price,
        trace=tuple(b.trace),
    )


def _apply_height(b: _Breakdown, config: RoofConfiguration, base_price: int, standard_height: int):
    if config.use_standard_height or not config.custom_height:
        return

    diff = config.custom_height - standard_height
    if diff > 0:
        surcharge = b.surcharge('height_increase')
        if surcharge:
            # rate is per 100 mm of extra height
            price = round_currency(base_price * b.rate(surcharge) * (diff / 100))
            b.add_item("Height increase", price, diff, 'mm')
    elif diff < 0:
        b.add_item("Height reduction", 0, abs(diff), 'mm')


def _apply_length(b: _Breakdown, config: RoofConfiguration, standard_length: int):
    if config.use_standard_length or not config.custom_length:
        return

    diff = config.custom_length - standard_length
    if diff > 0:
        base = b.surcharge('module_extend')
        per_meter = b.surcharge('module_extend_meter')
        if base and per_meter:
            price = base.value + (diff / 1000) * per_meter.value
            b.add_item("Module extension", round_currency(price), diff, 'mm')
    elif diff < 0:
        surcharge = b.surcharge('module_shorten')
        if surcharge:
            b.add_item("Module shortening", surcharge.value, abs(diff), 'mm')


def _apply_solid_poly(b: _Breakdown, config: RoofConfiguration, roof_type: RoofType):
    wanted = (
        config.solid_poly_modules > 0
        or config.solid_poly_big_front
        or config.solid_poly_small_front
        or (config.solid_poly_skirts and roof_type.has_skirts)
    )
    if not wanted:
        return

    surcharge = b.surcharge('poly_solid')
    if not surcharge:
        return

    if config.solid_poly_modules > 0:
        b.add_item(
            "Solid polycarbonate in modules",
            surcharge.value * config.solid_poly_modules,
            config.solid_poly_modules,
            'pcs',
        )
    if config.solid_poly_big_front:
        b.add_item("Solid polycarbonate in big front", surcharge.value)
    if config.solid_poly_small_front:
        b.add_item("Solid polycarbonate in small front", surcharge.value)
    # Skirts only exist on some product lines
    if config.solid_poly_skirts and roof_type.has_skirts:
        b.add_item("Solid polycarbonate in skirts", surcharge.value)


def _apply_color_change(b: _Breakdown, config: RoofConfiguration, base_price: int):
    wanted = (
        config.color_change_modules > 0
        or config.color_change_big_front
        or config.color_change_small_front
    )
    if not wanted:
        return

    surcharge = b.surcharge('poly_color_change')
    if not surcharge:
        return

    if config.color_change_modules > 0:
        price = round_currency(base_price * surcharge.value * config.color_change_modules / config.modules)
        b.add_item("Polycarbonate colour change in modules", price, config.color_change_modules, 'pcs')
    if config.color_change_big_front:
        price = round_currency(base_price * surcharge.value * BIG_FRONT_AREA_SHARE)
        b.add_item("Polycarbonate colour change in big front", price)
    if config.color_change_small_front:
        price = round_currency(base_price * surcharge.value * SMALL_FRONT_AREA_SHARE)
        b.add_item("Polycarbonate colour change in small front", price)


def _apply_mountain_reinforcement(b: _Breakdown, config: RoofConfiguration, base_price: int):
    if not config.mountain_reinforcement:
        return
    surcharge = b.surcharge('mountain_reinforcement')
    if surcharge:
        b.add_item("Mountain area reinforcement", round_currency(base_price * surcharge.value))


def _apply_rails(b: _Breakdown, config: RoofConfiguration):
    # Walking and bidirectional rails are free
    if config.walking_rails:
        b.add_item("Walking rails", 0)
    if config.bidirectional_rails:
        b.add_item("Bidirectional rails", 0)

    if config.rail_extension > 0:
        surcharge = b.surcharge('rail_meter')
        if surcharge:
            extension_m = config.rail_extension / 1000
            if extension_m > FREE_RAIL_EXTENSION_M:
                price = round_currency((extension_m - FREE_RAIL_EXTENSION_M) * b.rate(surcharge) * RAILS_PER_ROOF)
                b.add_item("Rail extension", price, config.rail_extension, 'mm')
            else:
                b.add_item("Rail extension", 0, config.rail_extension, 'mm')


def _apply_front(
    b: _Breakdown,
    base_price: int,
    label: str,
    present: bool,
    front_type: str,
    doors_width: Optional[int],
    doors_height: Optional[int],
    doors_large: bool,
    flap_height: Optional[int],
    lock: bool,
    missing_rate: float,
):
    """Shared rule for the big and small front."""
    if not present:
        b.add_item(f"Without {label}", round_currency(base_price * missing_rate))
        return

    if front_type == 'doors':
        code = 'doors_single_large' if doors_large else 'doors_single_small'
        surcharge = b.surcharge(code)
        if surcharge:
            desc = f"w={doors_width or DEFAULT_DOORS_WIDTH} h={doors_height or DEFAULT_DOORS_HEIGHT} mm"
            b.add_item(f"Doors in {label}", surcharge.value, description=desc)
        if lock:
            lock_surcharge = b.surcharge('doors_lock')
            if lock_surcharge:
                b.add_item(f"Door lock ({label})", lock_surcharge.value)
    elif front_type == 'flap':
        surcharge = b.surcharge('vent_flap')
        if surcharge:
            desc = f"height {flap_height or DEFAULT_FLAP_HEIGHT} mm"
            b.add_item(f"Ventilation flap in {label}", surcharge.value, description=desc)


def _apply_side_doors(b: _Breakdown, config: RoofConfiguration):
    if not config.has_side_doors:
        return
    surcharge = b.surcharge('doors_side')
    if surcharge:
        b.add_item("Side entrance doors", surcharge.value)
    if config.side_door_lock:
        lock_surcharge = b.surcharge('doors_lock')
        if lock_surcharge:
            b.add_item("Side door lock", lock_surcharge.value)


def _apply_segment_locking(b: _Breakdown, config: RoofConfiguration):
    if not config.segment_locking:
        return
    surcharge = b.surcharge('segment_lock')
    if surcharge:
        joints = config.modules - 1
        b.add_item("Segment locking", surcharge.value * joints, joints, 'pcs')


def _apply_surface(b: _Breakdown, config: RoofConfiguration, base_price: int):
    if config.surface_type == 'bronze_elox':
        surcharge = b.surcharge('surface_bronze_elox')
        if surcharge:
            b.add_item("Bronze anodized frame", round_currency(base_price * surcharge.value))
    elif config.surface_type == 'anthracite_elox':
        surcharge = b.surcharge('surface_anthracite_elox')
        if surcharge:
            b.add_item("Anthracite anodized frame", round_currency(base_price * surcharge.value))
    elif config.surface_type == 'ral' and config.ral_color:
        surcharge = b.surcharge('surface_ral')
        if surcharge:
            b.add_item(
                "RAL frame coating",
                round_currency(base_price * surcharge.value),
                description=f"colour {config.ral_color}",
            )


def _installation_price(b: _Breakdown, config: RoofConfiguration, roof_price: float) -> float:
    """Installation is a share of the roof price; domestic has a minimum."""
    if config.installation_type == 'cz':
        surcharge = b.surcharge('install_cz')
        if not surcharge:
            return 0
        price = round_currency(roof_price * b.rate(surcharge))
        if surcharge.min_value and price < surcharge.min_value:
            b.add_trace("Installation Minimum", f"{price} raised to minimum", str(surcharge.min_value))
            price = surcharge.min_value
        return price

    if config.installation_type == 'eu':
        surcharge = b.surcharge('install_eu')
        if not surcharge:
            return 0
        return round_currency(roof_price * b.rate(surcharge))

    # none / free
    return 0


class PricingEngine:
    """
    Convenience wrapper that resolves reference data for a configuration.

    Holds one reference-data snapshot; each calculate() call is independent
    and never mutates it.
    """

    def __init__(self, reference_data=None, settings=None):
        """Use the given snapshot, or load one from settings."""
        self.settings = settings
        if reference_data is None:
            from ..data.reference_data import load_from_settings
            reference_data = load_from_settings(settings)
        self.reference_data = reference_data

    def reload_data(self):
        """Reload reference data from disk."""
        from ..data.reference_data import load_from_settings
        self.reference_data = load_from_settings(self.settings)
        logger.info("Reference data reloaded")

    def calculate(self, configuration: RoofConfiguration) -> CalculationResult:
        """Calculate a configuration against the current snapshot."""
        roof_type = self.reference_data.roof_type(configuration.roof_type_code)
        if roof_type is None:
            raise UnknownRoofType(configuration.roof_type_code)

        return calculate(
            configuration,
            roof_type,
            self.reference_data.price_table(roof_type.code),
            self.reference_data.surcharges,
        )
