"""
Reference Service - maintenance of roof types, price matrices and surcharges.

Edits the reference CSVs in place (roof_types.csv, prices.csv,
surcharges.csv). Every write is checked against the price report first: a
change that introduces new matrix errors (gaps, overlaps, duplicates, lost
width coverage) is rejected and nothing is written.
"""
import json
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from ..data.price_report import build_price_report
from ..data.reference_data import (
    ReferenceData,
    PRICES_FILE,
    ROOF_TYPES_FILE,
    SURCHARGES_FILE,
    _parse_bool,
    parse_prices,
    parse_roof_types,
    parse_surcharges,
)
from ..engine.models import CATEGORIES, KINDS, KIND_PERCENT
from .validation import ValidationResult

logger = logging.getLogger(__name__)

ROOF_TYPE_COLUMNS = [
    'code', 'name', 'min_width', 'max_width', 'has_skirts',
    'min_modules', 'max_modules', 'sort_order', 'active',
]
PRICE_COLUMNS = ['roof_type', 'width_label', 'width_min', 'width_max', 'modules', 'price', 'height']
SURCHARGE_COLUMNS = [
    'code', 'name', 'category', 'type', 'value', 'value_rock',
    'min_value', 'description', 'sort_order', 'active',
]
BOOL_COLUMNS = ('has_skirts', 'active')

# Fields a caller may change; codes and band keys are identities
ROOF_TYPE_FIELDS = {'name', 'min_width', 'max_width', 'has_skirts', 'min_modules', 'max_modules', 'sort_order', 'active'}
SURCHARGE_FIELDS = set(SURCHARGE_COLUMNS) - {'code'}


class ReferenceDataError(ValueError):
    """A reference data change failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def _records(df: pd.DataFrame) -> list[dict]:
    """DataFrame rows as plain dicts, NaN as None."""
    return json.loads(df.to_json(orient='records'))


def _is_number(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return not pd.isna(float(value))
    except (TypeError, ValueError):
        return False


class ReferenceService:
    """Service for maintaining the reference CSVs."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    # ------------------------------------------------------------------
    # File access

    def _read(self, filename: str, columns: list[str]) -> pd.DataFrame:
        path = self.data_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"{filename} not found in {self.data_dir}")
        df = pd.read_csv(path)
        df.columns = [str(c).strip() for c in df.columns]
        for column in columns:
            if column not in df.columns:
                df[column] = None
        return df[columns]

    def _write(self, filename: str, df: pd.DataFrame):
        df = df.copy()
        for column in BOOL_COLUMNS:
            if column in df.columns:
                df[column] = df[column].map(lambda v: 'true' if _parse_bool(v) else 'false')
        path = self.data_dir / filename
        tmp_path = path.with_name(path.name + '.tmp')
        df.to_csv(tmp_path, index=False)
        tmp_path.replace(path)
        logger.info("Wrote %d rows to %s", len(df), path)

    def _frames(self) -> dict[str, pd.DataFrame]:
        return {
            ROOF_TYPES_FILE: self._read(ROOF_TYPES_FILE, ROOF_TYPE_COLUMNS),
            PRICES_FILE: self._read(PRICES_FILE, PRICE_COLUMNS),
            SURCHARGES_FILE: self._read(SURCHARGES_FILE, SURCHARGE_COLUMNS),
        }

    @staticmethod
    def _reference_data(frames: dict[str, pd.DataFrame]) -> ReferenceData:
        return ReferenceData(
            roof_types=parse_roof_types(frames[ROOF_TYPES_FILE]),
            prices=parse_prices(frames[PRICES_FILE]),
            surcharges=parse_surcharges(frames[SURCHARGES_FILE]),
        )

    def _commit(self, filename: str, df: pd.DataFrame) -> list[str]:
        """
        Write one file if the resulting data set adds no report errors.

        Returns:
            Report warnings of the new data set
        """
        frames = self._frames()
        before = build_price_report(self._reference_data(frames))
        frames[filename] = df
        try:
            candidate = self._reference_data(frames)
        except (TypeError, ValueError) as e:
            raise ReferenceDataError([str(e)])
        after = build_price_report(candidate)

        new_errors = [e for e in after["errors"] if e not in before["errors"]]
        if new_errors:
            raise ReferenceDataError(new_errors)

        self._write(filename, df)
        return after["warnings"]

    # ------------------------------------------------------------------
    # Roof types

    def list_roof_types(self, include_inactive: bool = True) -> list[dict]:
        df = self._read(ROOF_TYPES_FILE, ROOF_TYPE_COLUMNS)
        if not include_inactive:
            df = df[df['active'].map(_parse_bool)]
        prices = self._read(PRICES_FILE, PRICE_COLUMNS)
        records = _records(df)
        for record in records:
            record['has_skirts'] = _parse_bool(record['has_skirts'])
            record['active'] = _parse_bool(record['active'])
            record['price_count'] = int((prices['roof_type'] == record['code']).sum())
        return records

    def get_roof_type(self, code: str) -> Optional[dict]:
        for roof_type in self.list_roof_types():
            if roof_type['code'] == code:
                return roof_type
        return None

    def validate_roof_type(self, data: dict) -> ValidationResult:
        result = ValidationResult(valid=True)

        if not data.get('name'):
            result.add_error("Name is required")

        for key in ('min_width', 'max_width', 'min_modules', 'max_modules'):
            if not _is_number(data.get(key)):
                result.add_error(f"{key} must be a number")
        if not result.valid:
            return result

        if float(data['min_width']) > float(data['max_width']):
            result.add_error("Minimum width must not exceed maximum width")
        if not 2 <= int(data['min_modules']) <= int(data['max_modules']) <= 7:
            result.add_error("Module range must lie within 2 to 7")
        return result

    def update_roof_type(self, code: str, updates: dict) -> tuple[dict, list[str]]:
        """Update a roof type; returns the stored row and report warnings."""
        unknown = set(updates) - ROOF_TYPE_FIELDS
        if unknown:
            raise ReferenceDataError([f"Fields cannot be updated: {', '.join(sorted(unknown))}"])

        df = self._read(ROOF_TYPES_FILE, ROOF_TYPE_COLUMNS)
        mask = df['code'] == code
        if not mask.any():
            raise ValueError(f"Roof type '{code}' not found")

        row = _records(df[mask])[0]
        row.update(updates)
        validation = self.validate_roof_type(row)
        if not validation.valid:
            raise ReferenceDataError(validation.errors)

        df = df.astype(object)
        for key, value in updates.items():
            df.loc[mask, key] = value
        warnings = self._commit(ROOF_TYPES_FILE, df)
        logger.info("Updated roof type %s: %s", code, ', '.join(sorted(updates)))
        return self.get_roof_type(code), warnings

    # ------------------------------------------------------------------
    # Prices

    def list_prices(self, roof_type: Optional[str] = None) -> list[dict]:
        df = self._read(PRICES_FILE, PRICE_COLUMNS)
        if roof_type:
            df = df[df['roof_type'] == roof_type]
        return _records(df)

    def bulk_update_prices(self, roof_type: str, updates: list[dict]) -> tuple[int, list[str]]:
        """
        Change price and/or height of existing matrix cells.

        Each update names its cell by width_min, width_max and modules and
        carries price and/or height. All updates apply together or not at all.
        """
        df = self._read(PRICES_FILE, PRICE_COLUMNS).astype(object)
        errors = []

        for i, update in enumerate(updates):
            mask = (
                (df['roof_type'] == roof_type)
                & (df['width_min'] == update.get('width_min'))
                & (df['width_max'] == update.get('width_max'))
                & (df['modules'] == update.get('modules'))
            )
            if not mask.any():
                errors.append(
                    f"Update {i + 1}: no {roof_type} price for "
                    f"{update.get('width_min')}-{update.get('width_max')} mm, {update.get('modules')} modules"
                )
                continue
            for key in ('price', 'height'):
                if key not in update or update[key] is None:
                    continue
                if not _is_number(update[key]) or float(update[key]) < 0:
                    errors.append(f"Update {i + 1}: {key} must be a non-negative number")
                    continue
                df.loc[mask, key] = update[key]

        if errors:
            raise ReferenceDataError(errors)

        warnings = self._commit(PRICES_FILE, df)
        logger.info("Updated %d %s prices", len(updates), roof_type)
        return len(updates), warnings

    def replace_price_table(self, roof_type: str, rows: list[dict]) -> tuple[int, list[str]]:
        """Replace a roof type's whole matrix, e.g. to re-cut width bands."""
        if self.get_roof_type(roof_type) is None:
            raise ValueError(f"Roof type '{roof_type}' not found")

        errors = []
        for i, row in enumerate(rows):
            for key in ('width_min', 'width_max', 'modules', 'price', 'height'):
                if not _is_number(row.get(key)) or float(row[key]) < 0:
                    errors.append(f"Row {i + 1}: {key} must be a non-negative number")
        if errors:
            raise ReferenceDataError(errors)

        df = self._read(PRICES_FILE, PRICE_COLUMNS)
        new_rows = pd.DataFrame(
            [{**row, 'roof_type': roof_type} for row in rows],
            columns=PRICE_COLUMNS,
        )
        df = pd.concat([df[df['roof_type'] != roof_type], new_rows], ignore_index=True)

        warnings = self._commit(PRICES_FILE, df)
        logger.info("Replaced %s price table with %d rows", roof_type, len(rows))
        return len(rows), warnings

    # ------------------------------------------------------------------
    # Surcharges

    def list_surcharges(self, include_inactive: bool = True) -> list[dict]:
        df = self._read(SURCHARGES_FILE, SURCHARGE_COLUMNS)
        if not include_inactive:
            df = df[df['active'].map(_parse_bool)]
        records = _records(df)
        for record in records:
            record['active'] = _parse_bool(record['active'])
        return records

    def get_surcharge(self, code: str) -> Optional[dict]:
        for surcharge in self.list_surcharges():
            if surcharge['code'] == code:
                return surcharge
        return None

    def validate_surcharge(self, data: dict) -> ValidationResult:
        """Validate a surcharge definition before saving."""
        result = ValidationResult(valid=True)

        if not data.get('code'):
            result.add_error("Code is required")
        if not data.get('name'):
            result.add_error("Name is required")
        if data.get('category') not in CATEGORIES:
            result.add_error(f"Category must be one of {', '.join(CATEGORIES)}")
        if data.get('type') not in KINDS:
            result.add_error(f"Type must be one of {', '.join(KINDS)}")
        if not _is_number(data.get('value')):
            result.add_error("Value must be a number")
        for key in ('value_rock', 'min_value'):
            if data.get(key) is not None and not _is_number(data[key]):
                result.add_error(f"{key} must be a number")

        if result.valid and data['type'] == KIND_PERCENT:
            for key in ('value', 'value_rock'):
                if data.get(key) is not None and abs(float(data[key])) > 1:
                    result.warnings.append(f"{key} {data[key]} is a fraction; above 1 means over 100 %")
        return result

    def create_surcharge(self, data: dict) -> tuple[dict, list[str]]:
        """Create a surcharge; returns the stored row and validation warnings."""
        row = {column: data.get(column) for column in SURCHARGE_COLUMNS}
        if row['sort_order'] is None:
            row['sort_order'] = 0
        if row['active'] is None:
            row['active'] = True

        validation = self.validate_surcharge(row)
        if not validation.valid:
            raise ReferenceDataError(validation.errors)

        df = self._read(SURCHARGES_FILE, SURCHARGE_COLUMNS)
        if (df['code'] == row['code']).any():
            raise ValueError(f"Surcharge with code '{row['code']}' already exists")

        df = pd.concat([df, pd.DataFrame([row], columns=SURCHARGE_COLUMNS)], ignore_index=True)
        warnings = self._commit(SURCHARGES_FILE, df)
        logger.info("Created surcharge %s", row['code'])
        return self.get_surcharge(row['code']), validation.warnings + warnings

    def update_surcharge(self, code: str, updates: dict) -> tuple[dict, list[str]]:
        unknown = set(updates) - SURCHARGE_FIELDS
        if unknown:
            raise ReferenceDataError([f"Fields cannot be updated: {', '.join(sorted(unknown))}"])

        df = self._read(SURCHARGES_FILE, SURCHARGE_COLUMNS)
        mask = df['code'] == code
        if not mask.any():
            raise ValueError(f"Surcharge with code '{code}' not found")

        row = _records(df[mask])[0]
        row.update(updates)
        validation = self.validate_surcharge(row)
        if not validation.valid:
            raise ReferenceDataError(validation.errors)

        df = df.astype(object)
        for key, value in updates.items():
            df.loc[mask, key] = value
        warnings = self._commit(SURCHARGES_FILE, df)
        logger.info("Updated surcharge %s: %s", code, ', '.join(sorted(updates)))
        return self.get_surcharge(code), validation.warnings + warnings

    def delete_surcharge(self, code: str) -> list[str]:
        """Delete a surcharge; rules using it are skipped from then on."""
        df = self._read(SURCHARGES_FILE, SURCHARGE_COLUMNS)
        if not (df['code'] == code).any():
            raise ValueError(f"Surcharge with code '{code}' not found")

        warnings = self._commit(SURCHARGES_FILE, df[df['code'] != code])
        logger.info("Deleted surcharge %s", code)
        return warnings
