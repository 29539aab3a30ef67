import os
import re
import sys
from datetime import datetime
from io import BytesIO

import pytest
from pdfminer.high_level import extract_text

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from enclosure_quote.config.settings import PACKAGE_DIR
from enclosure_quote.data.reference_data import load_reference_data
from enclosure_quote.engine import PricingEngine, RoofConfiguration, CustomSurcharge
from enclosure_quote.render.formatting import format_price, format_mm, format_date, configuration_highlights
from enclosure_quote.render.quote_pdf import generate_pdf
from enclosure_quote.services.quote_service import QuoteService, Customer, Dealer


@pytest.fixture(scope="module")
def engine():
    return PricingEngine(reference_data=load_reference_data(PACKAGE_DIR / 'data' / 'reference'))


def test_formatting():
    assert format_price(64626) == "64 626 Kč"
    assert format_price(-3231, 'CZK') == "-3 231 CZK"
    assert format_mm(4336) == "4 336 mm"
    assert format_mm(None) == "-"
    assert format_date('2026-06-05T09:30:00') == "5.6.2026"


def test_configuration_highlights():
    config = RoofConfiguration(has_big_front=False, surface_type='ral', ral_color='7016', walking_rails=True)
    assert configuration_highlights(config) == ["Without big front", "Walking rails", "Surface: RAL 7016"]
    assert configuration_highlights(RoofConfiguration()) == []


def test_generate_pdf(tmp_path, engine):
    service = QuoteService(tmp_path, clock=lambda: datetime(2026, 5, 4, 10, 0))
    config = RoofConfiguration(
        has_small_front=False,
        big_front_type='doors',
        big_front_lock=True,
        use_standard_length=False,
        custom_length=5336,
        transport_km=120,
        installation_type='cz',
        discount_percent=5,
        custom_surcharges=[CustomSurcharge("Crane", 2500)],
    )
    quote = service.create_quote(
        configuration=config,
        result=engine.calculate(config),
        customer=Customer(name="Jan Novak", email="jan@example.com", address="Brno"),
        dealer=Dealer(name="Pool Center", contact="+420 600 000 000"),
        roof_type=engine.reference_data.roof_type('HORIZONT'),
        notes="Delivery in May\nCall ahead",
        prepared_by="Petr",
    )

    pdf = generate_pdf(quote)

    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000


def test_generate_pdf_many_items_breaks_pages(tmp_path, engine):
    service = QuoteService(tmp_path)
    config = RoofConfiguration(custom_surcharges=[CustomSurcharge(f"Extra {i}", 100) for i in range(80)])
    quote = service.create_quote(config, engine.calculate(config), Customer(name="Eva"))

    pdf = generate_pdf(quote)

    assert pdf.startswith(b"%PDF")
    assert int(re.search(rb"/Count (\d+)", pdf).group(1)) >= 2


def test_generate_pdf_keeps_czech_text(tmp_path, engine):
    service = QuoteService(tmp_path, clock=lambda: datetime(2026, 9, 1, 8, 0))
    config = RoofConfiguration()
    quote = service.create_quote(
        configuration=config,
        result=engine.calculate(config),
        customer=Customer(name="Antonín Dvořák", address="Čeňkova 12, Plzeň"),
        dealer=Dealer(name="Bazény Šťastný"),
        notes="Montáž v září",
    )

    text = extract_text(BytesIO(generate_pdf(quote)))

    assert "Antonín Dvořák" in text
    assert "Čeňkova 12, Plzeň" in text
    assert "Bazény Šťastný" in text
    assert "Montáž v září" in text
    assert "64 626 Kč" in text
    assert "CZK" not in text
