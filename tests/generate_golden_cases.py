"""
Generate golden test cases by running the current pricing engine on the
seed reference data. This captures current behavior as a regression baseline.
"""
import json
import os
import sys

import pandas as pd

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from enclosure_quote.data.reference_data import load_reference_data
from enclosure_quote.config.settings import PACKAGE_DIR
from enclosure_quote.engine import PricingEngine, RoofConfiguration

# (case id, roof type, width, modules, options)
CASES = [
    ('horizont-default', 'HORIZONT', 3200, 2, {}),
    ('horizont-no-big-front', 'HORIZONT', 3200, 2, {'has_big_front': False}),
    ('horizont-doors-lock-transport', 'HORIZONT', 3200, 2,
     {'big_front_type': 'doors', 'big_front_lock': True, 'transport_km': 150}),
    ('horizont-bronze-install-eu', 'HORIZONT', 3900, 3,
     {'surface_type': 'bronze_elox', 'installation_type': 'eu'}),
    ('horizont-mountain-discount', 'HORIZONT', 3200, 2,
     {'mountain_reinforcement': True, 'discount_percent': 5, 'transport_km': 100}),
    ('horizont-length-height', 'HORIZONT', 3200, 2,
     {'use_standard_length': False, 'custom_length': 5336, 'use_standard_height': False, 'custom_height': 920}),
    ('rock-install-cz', 'ROCK', 3200, 2, {'installation_type': 'cz'}),
    ('rock-rails-segments-skirts', 'ROCK', 3200, 4,
     {'rail_extension': 2000, 'segment_locking': True, 'solid_poly_skirts': True}),
]


def generate_golden_cases():
    engine = PricingEngine(reference_data=load_reference_data(PACKAGE_DIR / 'data' / 'reference'))

    cases = []
    for case_id, roof_type, width, modules, options in CASES:
        config = RoofConfiguration.from_dict(
            {'roof_type_code': roof_type, 'width': width, 'modules': modules, **options}
        )
        result = engine.calculate(config)
        cases.append({
            'case_id': case_id,
            'roof_type': roof_type,
            'width': width,
            'modules': modules,
            'options': json.dumps(options),
            'expected_base': result.base_price,
            'expected_surcharges': result.surcharges_total,
            'expected_roof': result.roof_price,
            'expected_transport': result.transport_price,
            'expected_install': result.install_price,
            'expected_discount': result.discount_amount,
            'expected_final': result.final_price,
        })

    df = pd.DataFrame(cases)
    output_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'golden_cases.csv')
    df.to_csv(output_path, index=False)
    print(f"Generated {len(cases)} golden test cases")
    print(f"Output: {output_path}")
    print()
    print(df[['case_id', 'expected_base', 'expected_final']].to_string(index=False))


if __name__ == "__main__":
    generate_golden_cases()
