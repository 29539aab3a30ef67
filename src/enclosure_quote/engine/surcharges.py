"""
Surcharge Resolver - finds surcharge definitions by code and resolves the
effective rate for the active roof type.

Used by the pricing engine for every optional rule; a code missing from the
catalog means "rule inapplicable", never an error.
"""
from typing import Iterable, Iterator, Optional

from .models import SurchargeDefinition

ROCK_CODE = 'ROCK'


def effective_value(definition: SurchargeDefinition, roof_type_code: str) -> float:
    """ROCK uses value_rock when the definition carries one."""
    if roof_type_code == ROCK_CODE and definition.value_rock is not None:
        return definition.value_rock
    return definition.value


class SurchargeCatalog:
    """
    Read-only catalog of surcharge definitions keyed by code.

    Keeps the first definition for a code that appears more than once, which
    matches a linear "find first by code" scan over the source list.
    """

    def __init__(self, definitions: Iterable[SurchargeDefinition] = ()):
        self._definitions: tuple[SurchargeDefinition, ...] = tuple(definitions)
        self._by_code: dict[str, SurchargeDefinition] = {}
        for definition in self._definitions:
            self._by_code.setdefault(definition.code, definition)

    @classmethod
    def coerce(cls, surcharges) -> 'SurchargeCatalog':
        """Accept either a catalog or any iterable of definitions."""
        if isinstance(surcharges, cls):
            return surcharges
        return cls(surcharges)

    def get(self, code: str) -> Optional[SurchargeDefinition]:
        return self._by_code.get(code)

    def effective_rate(self, code: str, roof_type_code: str) -> Optional[float]:
        """Effective value for a code, or None when the code is not in the catalog."""
        definition = self.get(code)
        if definition is None:
            return None
        return effective_value(definition, roof_type_code)

    def by_category(self) -> dict[str, list[SurchargeDefinition]]:
        """Group definitions by category (presentation only)."""
        grouped: dict[str, list[SurchargeDefinition]] = {}
        for definition in self._definitions:
            grouped.setdefault(definition.category, []).append(definition)
        return grouped

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def __iter__(self) -> Iterator[SurchargeDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"SurchargeCatalog({len(self._definitions)} definitions)"
