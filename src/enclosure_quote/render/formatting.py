"""
Display formatting for prices, dimensions and configuration summaries.

Only formats values already present in a result; nothing is recalculated.
"""
from datetime import datetime
from typing import Optional

from ..engine.models import RoofConfiguration

SURFACE_NAMES = {
    'bronze_elox': 'Bronze anodized',
    'anthracite_elox': 'Anthracite anodized',
}

INSTALLATION_LABELS = {
    'cz': 'Czech Republic',
    'eu': 'EU',
    'free': 'free of charge',
    'none': 'none',
}


def _group_thousands(value: float) -> str:
    return f"{value:,.0f}".replace(',', ' ')


def format_price(amount: float, symbol: str = 'Kč') -> str:
    """64626 -> '64 626 Kč'."""
    return f"{_group_thousands(amount)} {symbol}"


def format_mm(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{_group_thousands(value)} mm"


def format_date(value: str) -> str:
    """ISO timestamp -> d.m.yyyy."""
    moment = datetime.fromisoformat(value)
    return f"{moment.day}.{moment.month}.{moment.year}"


def configuration_highlights(config: RoofConfiguration) -> list[str]:
    """Notable options for the document's configuration section."""
    highlights = []
    if not config.has_big_front:
        highlights.append("Without big front")
    if not config.has_small_front:
        highlights.append("Without small front")
    if config.has_big_front and config.big_front_type == 'doors':
        highlights.append("Doors in big front")
    if config.has_small_front and config.small_front_type == 'doors':
        highlights.append("Doors in small front")
    if config.has_side_doors:
        highlights.append("Side doors")
    if config.walking_rails:
        highlights.append("Walking rails")
    if config.mountain_reinforcement:
        highlights.append("Mountain area reinforcement")
    if config.surface_type and config.surface_type != 'standard':
        if config.surface_type == 'ral':
            name = f"RAL {config.ral_color or ''}".strip()
        else:
            name = SURFACE_NAMES.get(config.surface_type, config.surface_type)
        highlights.append(f"Surface: {name}")
    return highlights
