"""
Quote store tests: numbering, validity, listing and metadata updates.
"""
import json
import os
import sys
from datetime import datetime

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from enclosure_quote.config.settings import PACKAGE_DIR
from enclosure_quote.data.reference_data import load_reference_data
from enclosure_quote.engine import PricingEngine, RoofConfiguration
from enclosure_quote.services.quote_service import QuoteService, Customer, Dealer, add_months


class FakeClock:
    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


@pytest.fixture(scope="module")
def engine():
    return PricingEngine(reference_data=load_reference_data(PACKAGE_DIR / 'data' / 'reference'))


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 9, 30))


@pytest.fixture
def service(tmp_path, clock):
    return QuoteService(tmp_path / 'quotes', prefix='ALU', clock=clock)


def make_quote(service, engine, name="Jan Novak", **config_values):
    config = RoofConfiguration(**config_values)
    return service.create_quote(
        configuration=config,
        result=engine.calculate(config),
        customer=Customer(name=name, email=f"{name.split()[0].lower()}@example.com"),
        roof_type=engine.reference_data.roof_type(config.roof_type_code),
    )


def test_sequential_numbers(service, engine):
    first = make_quote(service, engine)
    second = make_quote(service, engine, name="Eva Svobodova")

    assert first.number == "ALU-2026-0001"
    assert second.number == "ALU-2026-0002"
    assert service.next_quote_number() == "ALU-2026-0003"


def test_numbering_restarts_each_year(service, engine, clock):
    make_quote(service, engine)
    make_quote(service, engine)

    clock.moment = datetime(2027, 1, 2, 8, 0)
    assert make_quote(service, engine).number == "ALU-2027-0001"


def test_numbering_continues_from_highest(service, engine, tmp_path):
    (tmp_path / 'quotes' / 'ALU-2026-0041.json').write_text(
        json.dumps(make_quote(service, engine).to_dict() | {'number': 'ALU-2026-0041'}),
        encoding='utf-8',
    )
    assert service.next_quote_number() == "ALU-2026-0042"


def test_create_stores_breakdown_and_validity(service, engine):
    quote = make_quote(service, engine, has_big_front=False)

    assert quote.status == 'DRAFT'
    assert quote.roof_type_name == 'Horizont'
    assert quote.created_at == '2026-03-10T09:30:00'
    assert quote.valid_until == '2026-06-10T09:30:00'
    assert quote.final_price == 61395

    stored = service.get_quote(quote.number)
    assert stored.result == quote.result
    assert stored.configuration == quote.configuration
    assert stored.customer == quote.customer


def test_create_requires_customer_name(service, engine):
    config = RoofConfiguration()
    with pytest.raises(ValueError):
        service.create_quote(config, engine.calculate(config), Customer(name="  "))


def test_add_months_clamps_day():
    assert add_months(datetime(2026, 11, 30), 3) == datetime(2027, 2, 28)
    assert add_months(datetime(2026, 1, 31), 1) == datetime(2026, 2, 28)
    assert add_months(datetime(2026, 12, 15), 1) == datetime(2027, 1, 15)


def test_list_search_and_paging(service, engine, clock):
    make_quote(service, engine, name="Jan Novak")
    clock.moment = datetime(2026, 3, 11, 9, 30)
    make_quote(service, engine, name="Eva Svobodova")
    clock.moment = datetime(2026, 3, 12, 9, 30)
    make_quote(service, engine, name="Petr Novak")

    quotes, total = service.list_quotes()
    assert total == 3
    assert [q.number for q in quotes] == ["ALU-2026-0003", "ALU-2026-0002", "ALU-2026-0001"]

    quotes, total = service.list_quotes(search="novak")
    assert total == 2

    quotes, total = service.list_quotes(limit=1, offset=1)
    assert total == 3
    assert [q.number for q in quotes] == ["ALU-2026-0002"]


def test_update_metadata(service, engine, clock):
    quote = make_quote(service, engine)
    clock.moment = datetime(2026, 4, 1, 12, 0)

    updated = service.update_quote(quote.number, {
        'status': 'SENT',
        'notes': "Call before delivery",
        'validity_months': 1,
        'dealer_name': "Pool Center",
    })

    assert updated.status == 'SENT'
    assert updated.notes == "Call before delivery"
    assert updated.valid_until == '2026-04-10T09:30:00'
    assert updated.dealer == Dealer(name="Pool Center")
    assert updated.updated_at == '2026-04-01T12:00:00'
    assert updated.final_price == quote.final_price

    assert service.get_quote(quote.number).status == 'SENT'
    assert service.list_quotes(status='SENT')[1] == 1
    assert service.list_quotes(status='DRAFT')[1] == 0


def test_update_rejects_bad_input(service, engine):
    quote = make_quote(service, engine)

    with pytest.raises(ValueError):
        service.update_quote(quote.number, {'status': 'LOST'})
    with pytest.raises(ValueError):
        service.update_quote(quote.number, {'final_price': 1})
    with pytest.raises(ValueError):
        service.update_quote("ALU-2026-9999", {'notes': "x"})


def test_delete(service, engine):
    quote = make_quote(service, engine)

    assert service.delete_quote(quote.number)
    assert service.get_quote(quote.number) is None
    with pytest.raises(ValueError):
        service.delete_quote(quote.number)


def test_stats(service, engine):
    make_quote(service, engine)
    make_quote(service, engine, roof_type_code='ROCK')

    stats = service.get_stats()
    assert stats['total'] == 2
    assert stats['by_status'] == {'DRAFT': 2}
    assert stats['by_roof_type'] == {'HORIZONT': 1, 'ROCK': 1}
    assert stats['total_value'] == 64626 + 78950


def test_listing_skips_foreign_and_unreadable_files(service, engine):
    quote = make_quote(service, engine)
    (service.quotes_dir / 'notes.json').write_text('{}', encoding='utf-8')
    (service.quotes_dir / 'ALU-2026-0009.json').write_text('{"number": "ALU-2026-0009"', encoding='utf-8')
    (service.quotes_dir / 'ALU-2026-0010.json').write_text('{}', encoding='utf-8')

    quotes, total = service.list_quotes()

    assert total == 1
    assert [q.number for q in quotes] == [quote.number]
    assert service.get_stats()['total'] == 1


def test_numbering_ignores_foreign_files(service, engine):
    (service.quotes_dir / 'backup-2026-0042.json').write_text('{}', encoding='utf-8')

    assert make_quote(service, engine).number == "ALU-2026-0001"


def test_writes_leave_no_temporary_files(service, engine):
    quote = make_quote(service, engine)
    service.update_quote(quote.number, {'status': 'SENT'})

    assert sorted(p.name for p in service.quotes_dir.iterdir()) == [f"{quote.number}.json"]
    with open(service.quotes_dir / f"{quote.number}.json", encoding='utf-8') as f:
        assert json.load(f)['status'] == 'SENT'
