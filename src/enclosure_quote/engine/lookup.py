"""
Lookup helpers - base price band, standard module-run length and rounding.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from .models import PriceEntry

logger = logging.getLogger(__name__)

# Standard module-run length (mm) per module count, from the legacy price sheet
STANDARD_LENGTHS = {
    2: 4336,
    3: 6504,
    4: 8672,
    5: 10840,
    6: 13008,
    7: 15176,
}
DEFAULT_STANDARD_LENGTH = STANDARD_LENGTHS[2]


def round_currency(value: float) -> int:
    """
    Round to the nearest whole currency unit, halves away from zero.

    The shortest float repr is rounded rather than the binary value, so
    64626 * -0.05 (-3231.3000000000002) and 2.5 behave as written.
    """
    return int(Decimal(repr(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def find_price(price_table: Iterable[PriceEntry], width: int, modules: int) -> Optional[PriceEntry]:
    """Return the first entry whose width band contains width for the module count."""
    for entry in price_table:
        if entry.contains(width, modules):
            return entry
    return None


def get_standard_length(modules: int) -> int:
    """Standard length in mm; unknown module counts fall back to the 2-module run."""
    length = STANDARD_LENGTHS.get(modules)
    if length is None:
        logger.warning(
            "No standard length for %s modules, using %s mm", modules, DEFAULT_STANDARD_LENGTH
        )
        return DEFAULT_STANDARD_LENGTH
    return length
