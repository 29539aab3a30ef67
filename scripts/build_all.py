#!/usr/bin/env python
"""
Build pipeline - checks the price matrices and runs the test suite.

Usage:
    python scripts/build_all.py
"""
import sys
import subprocess
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from enclosure_quote.config.logging import configure_logging
from enclosure_quote.config.settings import get_settings
from enclosure_quote.data.reference_data import load_from_settings
from enclosure_quote.data.price_report import write_price_report


def main():
    configure_logging()
    settings = get_settings()

    print("=" * 60)
    print("ENCLOSURE QUOTE BUILD PIPELINE")
    print("=" * 60)
    print()

    print("[1/2] Checking reference data...")
    reference_data = load_from_settings(settings)
    report = write_price_report(reference_data, settings)

    for warning in report["warnings"]:
        print(f"  WARNING: {warning}")

    if report["status"] != "success":
        print("\n❌ BUILD FAILED")
        for error in report["errors"]:
            print(f"  ERROR: {error}")
        sys.exit(1)

    print()
    print("[2/2] Running tests...")

    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-v', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )

    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    print()
    print("=" * 60)
    print("✅ BUILD COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Roof types: {report['metrics']['roof_types']}")
    print(f"  Prices: {report['metrics']['price_count']}")
    print(f"  Surcharges: {report['metrics']['surcharge_count']}")
    print()
    print("Price tables:")
    for code, stats in report['metrics']['per_roof_type'].items():
        print(f"  {code}: {stats['price_count']} prices in {stats['band_count']} bands, "
              f"{stats['min_price']}-{stats['max_price']}")
    print(f"\nReport written to {settings.build_report}")


if __name__ == "__main__":
    main()
