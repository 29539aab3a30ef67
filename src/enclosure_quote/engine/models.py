"""
Data models for the pricing engine.

Reference data (roof types, price entries, surcharge definitions) and the
calculation result are frozen dataclasses: they are read-only snapshots for
the duration of a calculation. The configuration is a plain dataclass built
by the caller (form state or stored quote).
"""
from dataclasses import dataclass, field, asdict, fields
from typing import Optional


CATEGORIES = (
    'DOORS',
    'RAILS',
    'SURFACE',
    'POLYCARBONATE',
    'CONSTRUCTION',
    'INSTALLATION',
    'OTHER',
)

KIND_FIXED = 'FIXED'
KIND_PERCENT = 'PERCENT'
KINDS = (KIND_FIXED, KIND_PERCENT)

FRONT_TYPES = ('fixed', 'doors', 'flap')
SURFACE_TYPES = ('standard', 'bronze_elox', 'anthracite_elox', 'ral')
INSTALLATION_TYPES = ('none', 'cz', 'eu', 'free')


@dataclass(frozen=True)
class RoofType:
    """A product line (e.g. HORIZONT, ROCK)."""
    code: str
    name: str
    min_width: int
    max_width: int
    has_skirts: bool = False
    min_modules: int = 2
    max_modules: int = 7


@dataclass(frozen=True)
class PriceEntry:
    """One cell of a roof type's price matrix."""
    width_min: int
    width_max: int
    modules: int
    price: int
    height: float  # metres
    width_label: Optional[str] = None

    def contains(self, width: int, modules: int) -> bool:
        """Inclusive width band match for the given module count."""
        return self.width_min <= width <= self.width_max and self.modules == modules


@dataclass(frozen=True)
class SurchargeDefinition:
    """A named pricing rule from the surcharge catalog."""
    code: str
    name: str
    category: str
    kind: str  # "FIXED" or "PERCENT"
    value: float
    value_rock: Optional[float] = None
    min_value: Optional[float] = None
    description: Optional[str] = None

    @property
    def is_percent(self) -> bool:
        return self.kind == KIND_PERCENT


@dataclass
class CustomSurcharge:
    """An ad-hoc surcharge typed in by the dealer."""
    name: str
    price: float = 0


@dataclass
class RoofConfiguration:
    """All customer choices for one quote."""
    # Base parameters
    roof_type_code: str = 'HORIZONT'
    width: int = 3200           # mm
    modules: int = 2

    # Dimensions
    use_standard_length: bool = True
    custom_length: Optional[int] = None   # mm
    use_standard_height: bool = True
    custom_height: Optional[int] = None   # mm

    # Polycarbonate
    solid_poly_modules: int = 0
    solid_poly_big_front: bool = False
    solid_poly_small_front: bool = False
    solid_poly_skirts: bool = False
    color_change_modules: int = 0
    color_change_big_front: bool = False
    color_change_small_front: bool = False

    # Big front
    has_big_front: bool = True
    big_front_type: str = 'fixed'
    big_front_doors_width: Optional[int] = None
    big_front_doors_height: Optional[int] = None
    big_front_doors_large: bool = False  # doors over 1 m
    big_front_flap_height: Optional[int] = None
    big_front_lock: bool = False

    # Small front
    has_small_front: bool = True
    small_front_type: str = 'fixed'
    small_front_doors_width: Optional[int] = None
    small_front_doors_height: Optional[int] = None
    small_front_doors_large: bool = False
    small_front_flap_height: Optional[int] = None
    small_front_lock: bool = False

    # Side doors
    has_side_doors: bool = False
    side_door_lock: bool = False

    # Rails
    walking_rails: bool = False
    bidirectional_rails: bool = False
    rail_extension: int = 0  # mm

    # Construction
    mountain_reinforcement: bool = False
    segment_locking: bool = False

    # Surface
    surface_type: str = 'standard'
    ral_color: Optional[str] = None

    custom_surcharges: list[CustomSurcharge] = field(default_factory=list)

    # Transport
    include_transport: bool = True
    transport_km: float = 0
    transport_rate: float = 19  # CZK per km

    installation_type: str = 'none'
    discount_percent: float = 0

    def to_dict(self) -> dict:
        """Serialize to a plain dict (JSON-safe)."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'RoofConfiguration':
        """Build a configuration from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values['custom_surcharges'] = [
            s if isinstance(s, CustomSurcharge) else CustomSurcharge(name=s.get('name', ''), price=s.get('price', 0))
            for s in values.get('custom_surcharges') or []
        ]
        return cls(**values)


@dataclass(frozen=True)
class LineItem:
    """A single surcharge/discount line in the breakdown."""
    name: str
    price: float
    quantity: Optional[float] = None
    unit: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class TraceStep:
    """A single step in the calculation trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class CalculationResult:
    """Complete, itemized price breakdown of one configuration."""
    base_price: int
    standard_length: int
    standard_height: int
    items: tuple[LineItem, ...]
    surcharges_total: float
    roof_price: float
    transport_price: int
    install_price: float
    total_price: float
    discount_amount: int
    final_price: float
    trace: tuple[TraceStep, ...] = ()

    def get_trace_text(self) -> str:
        """Get human-readable calculation trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['items'] = [asdict(item) for item in self.items]
        data['trace'] = [asdict(t) for t in self.trace]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'CalculationResult':
        """Rebuild a stored result without recomputing anything."""
        values = dict(data)
        values['items'] = tuple(LineItem(**item) for item in data.get('items', []))
        values['trace'] = tuple(TraceStep(**t) for t in data.get('trace', []))
        return cls(**values)
