"""
Price Report - integrity check of the reference price matrices.

Checks per roof type:
- (width band, modules) keys are unique
- consecutive width bands neither gap nor overlap
- the bands cover the roof type's min/max width
- every supported module count has prices
Also lists catalog codes the engine uses but the catalog lacks (those rules
are skipped at calculation time).
"""
import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.settings import get_settings, Settings
from ..engine.pricing_engine import SURCHARGE_CODES
from .reference_data import ReferenceData, PRICES_FILE, ROOF_TYPES_FILE, SURCHARGES_FILE

logger = logging.getLogger(__name__)


def get_file_hash(path: Path) -> str:
    """Get SHA256 hash of a file."""
    if not path.exists():
        return ""
    with open(path, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()[:12]


def prices_frame(reference_data: ReferenceData) -> pd.DataFrame:
    """Flatten all price tables into one DataFrame."""
    rows = [
        {
            'roof_type': code,
            'width_min': entry.width_min,
            'width_max': entry.width_max,
            'modules': entry.modules,
            'price': entry.price,
            'height': entry.height,
        }
        for code, entries in reference_data.prices.items()
        for entry in entries
    ]
    return pd.DataFrame(rows, columns=['roof_type', 'width_min', 'width_max', 'modules', 'price', 'height'])


def _band_errors(df: pd.DataFrame, code: str) -> list[str]:
    """Gaps and overlaps between consecutive bands, per module count."""
    errors = []
    for modules, group in df.groupby('modules'):
        group = group.sort_values('width_min')
        previous = None
        for _, row in group.iterrows():
            if previous is not None:
                expected = previous['width_max'] + 1
                if row['width_min'] > expected:
                    errors.append(
                        f"{code}: gap between {previous['width_max']} and {row['width_min']} mm ({modules} modules)"
                    )
                elif row['width_min'] < expected:
                    errors.append(
                        f"{code}: bands overlap at {row['width_min']} mm ({modules} modules)"
                    )
            previous = row
    return errors


def build_price_report(reference_data: ReferenceData) -> dict:
    """
    Validate the price matrices of every roof type.

    Returns:
        Report dictionary with status, metrics, warnings and errors
    """
    report = {
        "timestamp": datetime.now().isoformat(),
        "status": "pending",
        "metrics": {},
        "warnings": [],
        "errors": [],
    }

    df = prices_frame(reference_data)

    duplicates = df[df.duplicated(['roof_type', 'width_min', 'width_max', 'modules'], keep=False)]
    for _, row in duplicates.drop_duplicates(['roof_type', 'width_min', 'width_max', 'modules']).iterrows():
        report["errors"].append(
            f"{row['roof_type']}: duplicate price for {row['width_min']}-{row['width_max']} mm, {row['modules']} modules"
        )

    roof_metrics = {}
    for roof_type in reference_data.roof_types:
        code = roof_type.code
        prices = df[df['roof_type'] == code]
        if prices.empty:
            report["errors"].append(f"{code}: no price table")
            continue

        report["errors"].extend(_band_errors(prices, code))

        if prices['width_min'].min() > roof_type.min_width:
            report["errors"].append(
                f"{code}: bands start at {prices['width_min'].min()} mm, above minimum width {roof_type.min_width} mm"
            )
        if prices['width_max'].max() < roof_type.max_width:
            report["errors"].append(
                f"{code}: bands end at {prices['width_max'].max()} mm, below maximum width {roof_type.max_width} mm"
            )

        priced_modules = set(prices['modules'].astype(int))
        missing = [m for m in range(roof_type.min_modules, roof_type.max_modules + 1) if m not in priced_modules]
        if missing:
            report["warnings"].append(f"{code}: no prices for module counts {missing}")

        roof_metrics[code] = {
            "price_count": int(len(prices)),
            "band_count": int(prices[['width_min', 'width_max']].drop_duplicates().shape[0]),
            "min_price": int(prices['price'].min()),
            "max_price": int(prices['price'].max()),
        }

    known_codes = {roof_type.code for roof_type in reference_data.roof_types}
    for code in sorted(set(df['roof_type']) - known_codes):
        report["warnings"].append(f"Prices for unknown roof type {code}")

    missing_codes = [code for code in SURCHARGE_CODES if code not in reference_data.surcharges]
    if missing_codes:
        report["warnings"].append(f"Surcharges missing from catalog (rules skipped): {', '.join(missing_codes)}")

    report["metrics"] = {
        "roof_types": len(reference_data.roof_types),
        "price_count": int(len(df)),
        "surcharge_count": len(reference_data.surcharges),
        "per_roof_type": roof_metrics,
    }
    report["status"] = "failed" if report["errors"] else "success"

    for error in report["errors"]:
        logger.error(error)
    for warning in report["warnings"]:
        logger.warning(warning)

    return report


def write_price_report(
    reference_data: ReferenceData,
    settings: Optional[Settings] = None,
) -> dict:
    """Build the report and save it to the configured report path."""
    settings = settings or get_settings()
    report = build_price_report(reference_data)

    if settings.reference_workbook:
        report["input_files"] = {
            "workbook": {"path": str(settings.reference_workbook), "hash": get_file_hash(settings.reference_workbook)}
        }
    else:
        report["input_files"] = {
            name: {"path": str(settings.data_dir / name), "hash": get_file_hash(settings.data_dir / name)}
            for name in (ROOF_TYPES_FILE, PRICES_FILE, SURCHARGES_FILE)
        }

    report_path = settings.build_report
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)

    logger.info("Price report saved to %s (%s)", report_path, report["status"])
    return report
