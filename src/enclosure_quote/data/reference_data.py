"""
Reference Data - loads roof types, price matrices and the surcharge catalog.

Sources:
- a directory with roof_types.csv, prices.csv and surcharges.csv
- the legacy workbook with sheets "Roof Types", "Prices" and "Surcharges"

Either way the result is an immutable ReferenceData snapshot that is passed
whole into each calculation.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.settings import get_settings, Settings
from ..engine.models import RoofType, PriceEntry, SurchargeDefinition, CATEGORIES, KINDS
from ..engine.surcharges import SurchargeCatalog

logger = logging.getLogger(__name__)

ROOF_TYPES_FILE = 'roof_types.csv'
PRICES_FILE = 'prices.csv'
SURCHARGES_FILE = 'surcharges.csv'

SHEET_ROOF_TYPES = 'Roof Types'
SHEET_PRICES = 'Prices'
SHEET_SURCHARGES = 'Surcharges'


@dataclass(frozen=True)
class ReferenceData:
    """Read-only snapshot of all reference data."""
    roof_types: tuple[RoofType, ...] = ()
    prices: dict[str, tuple[PriceEntry, ...]] = field(default_factory=dict)
    surcharges: SurchargeCatalog = field(default_factory=SurchargeCatalog)

    def roof_type(self, code: str) -> Optional[RoofType]:
        for roof_type in self.roof_types:
            if roof_type.code == code:
                return roof_type
        return None

    def price_table(self, code: str) -> tuple[PriceEntry, ...]:
        return self.prices.get(code, ())

    def snapshot_for(self, code: str) -> tuple[Optional[RoofType], tuple[PriceEntry, ...], SurchargeCatalog]:
        """Everything a calculation needs for one roof type."""
        return self.roof_type(code), self.price_table(code), self.surcharges

    def price_count(self) -> int:
        return sum(len(entries) for entries in self.prices.values())


def _clean(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize headers, drop inactive rows and apply sort order."""
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    if 'active' in df.columns:
        df = df[df['active'].map(_parse_bool)]
    if 'sort_order' in df.columns:
        df = df.sort_values('sort_order', kind='stable')
    return df


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if pd.isna(value):
        return False
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value) or str(value).strip() == '':
        return None
    return float(value)


def _optional_str(value) -> Optional[str]:
    if value is None or pd.isna(value) or str(value).strip() == '':
        return None
    return str(value).strip()


def _number(value):
    """Keep whole numbers as int so currency amounts stay integral."""
    number = float(value)
    return int(number) if number.is_integer() else number


def parse_roof_types(df: pd.DataFrame) -> tuple[RoofType, ...]:
    roof_types = []
    for _, row in _clean(df).iterrows():
        roof_types.append(RoofType(
            code=str(row['code']).strip(),
            name=str(row['name']).strip(),
            min_width=int(row['min_width']),
            max_width=int(row['max_width']),
            has_skirts=_parse_bool(row.get('has_skirts', False)),
            min_modules=int(row['min_modules']) if pd.notna(row.get('min_modules')) else 2,
            max_modules=int(row['max_modules']) if pd.notna(row.get('max_modules')) else 7,
        ))
    return tuple(roof_types)


def parse_prices(df: pd.DataFrame) -> dict[str, tuple[PriceEntry, ...]]:
    """Group price rows by roof type in file (or sort_order) order; lookup is first match."""
    df = _clean(df)
    prices: dict[str, list[PriceEntry]] = {}
    for _, row in df.iterrows():
        code = str(row['roof_type']).strip()
        prices.setdefault(code, []).append(PriceEntry(
            width_min=int(row['width_min']),
            width_max=int(row['width_max']),
            modules=int(row['modules']),
            price=_number(row['price']),
            height=float(row['height']),
            width_label=_optional_str(row.get('width_label')),
        ))
    return {code: tuple(entries) for code, entries in prices.items()}


def parse_surcharges(df: pd.DataFrame) -> SurchargeCatalog:
    definitions = []
    for _, row in _clean(df).iterrows():
        category = str(row['category']).strip().upper()
        kind = str(row['type']).strip().upper()
        if category not in CATEGORIES:
            logger.warning("Surcharge %s has unknown category %s, using OTHER", row['code'], category)
            category = 'OTHER'
        if kind not in KINDS:
            raise ValueError(f"Surcharge {row['code']} has invalid type '{kind}'")

        min_value = _optional_float(row.get('min_value'))
        definitions.append(SurchargeDefinition(
            code=str(row['code']).strip(),
            name=str(row['name']).strip(),
            category=category,
            kind=kind,
            value=_number(row['value']),
            value_rock=_optional_float(row.get('value_rock')),
            min_value=_number(min_value) if min_value is not None else None,
            description=_optional_str(row.get('description')),
        ))
    return SurchargeCatalog(definitions)


def load_reference_data(data_dir: Path) -> ReferenceData:
    """Load reference data from a directory of CSV files."""
    for filename in (ROOF_TYPES_FILE, PRICES_FILE, SURCHARGES_FILE):
        if not (data_dir / filename).exists():
            raise FileNotFoundError(f"{filename} not found in {data_dir}")

    data = ReferenceData(
        roof_types=parse_roof_types(pd.read_csv(data_dir / ROOF_TYPES_FILE)),
        prices=parse_prices(pd.read_csv(data_dir / PRICES_FILE)),
        surcharges=parse_surcharges(pd.read_csv(data_dir / SURCHARGES_FILE)),
    )
    logger.info(
        "Loaded %d roof types, %d prices, %d surcharges from %s",
        len(data.roof_types), data.price_count(), len(data.surcharges), data_dir,
    )
    return data


def load_reference_workbook(path: Path) -> ReferenceData:
    """Load reference data from the legacy spreadsheet layout."""
    if not path.exists():
        raise FileNotFoundError(f"Reference workbook not found at {path}")

    sheets = pd.read_excel(path, sheet_name=[SHEET_ROOF_TYPES, SHEET_PRICES, SHEET_SURCHARGES])
    data = ReferenceData(
        roof_types=parse_roof_types(sheets[SHEET_ROOF_TYPES]),
        prices=parse_prices(sheets[SHEET_PRICES]),
        surcharges=parse_surcharges(sheets[SHEET_SURCHARGES]),
    )
    logger.info("Loaded reference workbook %s", path)
    return data


def load_from_settings(settings: Optional[Settings] = None) -> ReferenceData:
    """Workbook when configured, otherwise the CSV directory."""
    settings = settings or get_settings()
    if settings.reference_workbook:
        return load_reference_workbook(settings.reference_workbook)
    return load_reference_data(settings.data_dir)
