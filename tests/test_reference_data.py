"""
Reference data loading and price matrix integrity checks.
"""
import json
import os
import shutil
import sys

import pandas as pd
import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from enclosure_quote.config.settings import PACKAGE_DIR, Settings
from enclosure_quote.data.price_report import build_price_report, write_price_report
from enclosure_quote.data.reference_data import (
    load_reference_data,
    load_reference_workbook,
    load_from_settings,
    parse_prices,
    parse_surcharges,
)
from enclosure_quote.engine.lookup import find_price

SEED_DIR = PACKAGE_DIR / 'data' / 'reference'


@pytest.fixture
def data_dir(tmp_path):
    """Writable copy of the seed CSVs."""
    target = tmp_path / 'reference'
    shutil.copytree(SEED_DIR, target)
    return target


def test_seed_data_loads():
    data = load_reference_data(SEED_DIR)

    assert [rt.code for rt in data.roof_types] == ['HORIZONT', 'ROCK']
    assert data.roof_type('ROCK').has_skirts
    assert not data.roof_type('HORIZONT').has_skirts
    assert data.price_count() == 72
    assert len(data.surcharges) == 19

    install = data.surcharges.get('install_cz')
    assert install.is_percent
    assert install.value_rock == 0.07
    assert install.min_value == 5500
    assert data.surcharges.get('poly_solid').value == 3800


def test_price_table_keeps_file_order():
    table = load_reference_data(SEED_DIR).price_table('HORIZONT')
    assert (table[0].width_max, table[0].modules) == (2750, 2)
    assert table[0].price == 55866


def test_first_listed_price_wins_on_overlap():
    df = pd.DataFrame([
        {'roof_type': 'HORIZONT', 'width_label': 'B', 'width_min': 3200, 'width_max': 3500, 'modules': 2, 'price': 2000, 'height': 0.7},
        {'roof_type': 'HORIZONT', 'width_label': 'A', 'width_min': 3000, 'width_max': 3250, 'modules': 2, 'price': 1000, 'height': 0.7},
    ])

    table = parse_prices(df)['HORIZONT']

    assert [p.price for p in table] == [2000, 1000]
    assert find_price(table, 3200, 2).price == 2000
    assert find_price(table, 3100, 2).price == 1000


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_reference_data(tmp_path)


def test_inactive_rows_are_dropped(data_dir):
    df = pd.read_csv(data_dir / 'surcharges.csv')
    df.loc[df['code'] == 'segment_lock', 'active'] = False
    df.to_csv(data_dir / 'surcharges.csv', index=False)

    data = load_reference_data(data_dir)
    assert 'segment_lock' not in data.surcharges


def test_unknown_category_becomes_other():
    df = pd.DataFrame([{
        'code': 'crane', 'name': 'Crane', 'category': 'LOGISTICS', 'type': 'fixed', 'value': 2500,
    }])
    catalog = parse_surcharges(df)
    assert catalog.get('crane').category == 'OTHER'
    assert catalog.get('crane').kind == 'FIXED'


def test_invalid_surcharge_type_raises():
    df = pd.DataFrame([{'code': 'x', 'name': 'X', 'category': 'OTHER', 'type': 'PER_KM', 'value': 1}])
    with pytest.raises(ValueError):
        parse_surcharges(df)


def test_workbook_loads(tmp_path):
    path = tmp_path / 'reference.xlsx'
    with pd.ExcelWriter(path) as writer:
        pd.read_csv(SEED_DIR / 'roof_types.csv').to_excel(writer, sheet_name='Roof Types', index=False)
        pd.read_csv(SEED_DIR / 'prices.csv').to_excel(writer, sheet_name='Prices', index=False)
        pd.read_csv(SEED_DIR / 'surcharges.csv').to_excel(writer, sheet_name='Surcharges', index=False)

    data = load_reference_workbook(path)
    assert data.price_count() == 72
    assert data.surcharges.get('rail_meter').value_rock == 1150

    settings = Settings(project_root=tmp_path, data_dir=tmp_path / 'unused', reference_workbook=path)
    assert load_from_settings(settings).roof_type('HORIZONT').max_width == 4000


def test_seed_price_report_is_clean():
    report = build_price_report(load_reference_data(SEED_DIR))

    assert report['status'] == 'success'
    assert report['errors'] == []
    assert report['warnings'] == []
    assert report['metrics']['per_roof_type']['HORIZONT']['band_count'] == 6


def test_price_report_detects_gap_and_duplicate(data_dir):
    df = pd.read_csv(data_dir / 'prices.csv')
    # Remove one band for two modules and duplicate another
    gap = (df['roof_type'] == 'HORIZONT') & (df['width_min'] == 3001) & (df['modules'] == 2)
    duplicate = df[(df['roof_type'] == 'ROCK') & (df['width_min'] == 3000) & (df['modules'] == 2)]
    df = pd.concat([df[~gap], duplicate])
    df.to_csv(data_dir / 'prices.csv', index=False)

    report = build_price_report(load_reference_data(data_dir))

    assert report['status'] == 'failed'
    assert any('HORIZONT' in e and 'gap' in e for e in report['errors'])
    assert any('ROCK' in e and 'duplicate' in e for e in report['errors'])


def test_price_report_lists_missing_surcharges(data_dir):
    df = pd.read_csv(data_dir / 'surcharges.csv')
    df[df['code'] != 'vent_flap'].to_csv(data_dir / 'surcharges.csv', index=False)

    report = build_price_report(load_reference_data(data_dir))

    assert report['status'] == 'success'
    assert any('vent_flap' in w for w in report['warnings'])


def test_write_price_report(tmp_path):
    settings = Settings(
        project_root=tmp_path,
        data_dir=SEED_DIR,
        build_report=tmp_path / 'reports' / 'price_report.json',
    )
    write_price_report(load_reference_data(SEED_DIR), settings)

    with open(settings.build_report, encoding='utf-8') as f:
        saved = json.load(f)
    assert saved['status'] == 'success'
    assert set(saved['input_files']) == {'roof_types.csv', 'prices.csv', 'surcharges.csv'}
