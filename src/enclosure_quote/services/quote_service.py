"""
Quote Service - stores calculated quotes as JSON files.

Each quote is saved under its number (PREFIX-YYYY-NNNN). Numbers restart at
0001 every year and continue from the highest number stored for that year.
"""
import json
import logging
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..engine.models import RoofConfiguration, CalculationResult, RoofType

logger = logging.getLogger(__name__)

STATUSES = ('DRAFT', 'SENT', 'ACCEPTED', 'REJECTED', 'EXPIRED')
DEFAULT_VALIDITY_MONTHS = 3

# Fields a caller may change after creation
UPDATABLE_FIELDS = {
    'status', 'notes', 'validity_months',
    'customer_name', 'customer_email', 'customer_phone', 'customer_address',
    'dealer_name', 'dealer_contact',
}


@dataclass
class Customer:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@dataclass
class Dealer:
    name: str
    contact: Optional[str] = None


@dataclass
class Quote:
    """A stored quote: configuration, computed breakdown and metadata."""
    number: str
    status: str
    customer: Customer
    configuration: RoofConfiguration
    result: CalculationResult
    created_at: str
    valid_until: str
    dealer: Optional[Dealer] = None
    roof_type_code: Optional[str] = None
    roof_type_name: Optional[str] = None
    notes: Optional[str] = None
    prepared_by: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def final_price(self) -> float:
        return self.result.final_price

    def to_dict(self) -> dict:
        return {
            'number': self.number,
            'status': self.status,
            'customer': asdict(self.customer),
            'dealer': asdict(self.dealer) if self.dealer else None,
            'roof_type_code': self.roof_type_code,
            'roof_type_name': self.roof_type_name,
            'configuration': self.configuration.to_dict(),
            'result': self.result.to_dict(),
            'created_at': self.created_at,
            'valid_until': self.valid_until,
            'updated_at': self.updated_at,
            'notes': self.notes,
            'prepared_by': self.prepared_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Quote':
        return cls(
            number=data['number'],
            status=data.get('status', 'DRAFT'),
            customer=Customer(**data['customer']),
            dealer=Dealer(**data['dealer']) if data.get('dealer') else None,
            roof_type_code=data.get('roof_type_code'),
            roof_type_name=data.get('roof_type_name'),
            configuration=RoofConfiguration.from_dict(data['configuration']),
            result=CalculationResult.from_dict(data['result']),
            created_at=data['created_at'],
            valid_until=data['valid_until'],
            updated_at=data.get('updated_at'),
            notes=data.get('notes'),
            prepared_by=data.get('prepared_by'),
        )


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    next_month_first = datetime(year + month // 12, month % 12 + 1, 1)
    last_day = (next_month_first - datetime(year, month, 1)).days
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


class QuoteService:
    """Service for storing and querying quotes."""

    def __init__(
        self,
        quotes_dir: Path,
        prefix: str = 'ALU',
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.quotes_dir = Path(quotes_dir)
        self.prefix = prefix
        self.clock = clock
        self.quotes_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, number: str) -> Path:
        return self.quotes_dir / f"{number}.json"

    def _numbers(self) -> list[str]:
        """Stems of stored quote files; other JSON files in the directory are ignored."""
        pattern = re.compile(rf"^{re.escape(self.prefix)}-\d{{4}}-\d+$")
        return [p.stem for p in self.quotes_dir.glob('*.json') if pattern.match(p.stem)]

    def _load_all(self) -> list[Quote]:
        quotes = []
        for number in self._numbers():
            try:
                quote = self.get_quote(number)
            except (KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping unreadable quote file %s: %s", self._path(number), e)
                continue
            if quote:
                quotes.append(quote)
        return quotes

    def next_quote_number(self, year: Optional[int] = None) -> str:
        """Next sequential number for the year, e.g. ALU-2026-0007."""
        year = year or self.clock().year
        year_prefix = f"{self.prefix}-{year}-"
        pattern = re.compile(rf"^{re.escape(year_prefix)}(\d+)$")

        highest = 0
        for number in self._numbers():
            match = pattern.match(number)
            if match:
                highest = max(highest, int(match.group(1)))

        return f"{year_prefix}{highest + 1:04d}"

    def create_quote(
        self,
        configuration: RoofConfiguration,
        result: CalculationResult,
        customer: Customer,
        dealer: Optional[Dealer] = None,
        roof_type: Optional[RoofType] = None,
        notes: Optional[str] = None,
        validity_months: int = DEFAULT_VALIDITY_MONTHS,
        prepared_by: Optional[str] = None,
    ) -> Quote:
        """Persist a configuration and its computed breakdown under a new number."""
        if not customer.name or not customer.name.strip():
            raise ValueError("Customer name is required")
        if validity_months < 1:
            raise ValueError("Validity must be at least one month")

        now = self.clock()
        quote = Quote(
            number=self.next_quote_number(now.year),
            status='DRAFT',
            customer=customer,
            dealer=dealer if dealer and dealer.name else None,
            roof_type_code=roof_type.code if roof_type else configuration.roof_type_code,
            roof_type_name=roof_type.name if roof_type else None,
            configuration=configuration,
            result=result,
            created_at=now.isoformat(timespec='seconds'),
            valid_until=add_months(now, validity_months).isoformat(timespec='seconds'),
            notes=notes,
            prepared_by=prepared_by,
        )

        path = self._path(quote.number)
        if path.exists():
            raise ValueError(f"Quote '{quote.number}' already exists")

        self._write(quote)
        logger.info("Created quote %s for %s (%s)", quote.number, customer.name, result.final_price)
        return quote

    def get_quote(self, number: str) -> Optional[Quote]:
        """Get a single quote by number."""
        path = self._path(number)
        if not path.exists():
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return Quote.from_dict(json.load(f))

    def list_quotes(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Quote], int]:
        """
        List quotes newest first.

        Returns (page, total) where total counts all matches before paging.
        """
        quotes = self._load_all()

        if status and status != 'all':
            quotes = [q for q in quotes if q.status == status]

        if search:
            needle = search.lower()
            quotes = [
                q for q in quotes
                if needle in q.number.lower()
                or needle in q.customer.name.lower()
                or needle in (q.customer.email or '').lower()
            ]

        quotes.sort(key=lambda q: (q.created_at, q.number), reverse=True)
        return quotes[offset:offset + limit], len(quotes)

    def update_quote(self, number: str, updates: dict) -> Quote:
        """Update metadata of an existing quote. Prices are never changed here."""
        quote = self.get_quote(number)
        if quote is None:
            raise ValueError(f"Quote '{number}' not found")

        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        for key, value in updates.items():
            if key == 'status':
                if value not in STATUSES:
                    raise ValueError(f"Invalid status '{value}'")
                quote.status = value
            elif key == 'validity_months':
                # Validity is counted from the creation date
                created = datetime.fromisoformat(quote.created_at)
                quote.valid_until = add_months(created, int(value)).isoformat(timespec='seconds')
            elif key == 'notes':
                quote.notes = value
            elif key.startswith('customer_'):
                setattr(quote.customer, key[len('customer_'):], value)
            elif key.startswith('dealer_'):
                if quote.dealer is None:
                    quote.dealer = Dealer(name='')
                setattr(quote.dealer, key[len('dealer_'):], value)

        if not quote.customer.name:
            raise ValueError("Customer name is required")

        quote.updated_at = self.clock().isoformat(timespec='seconds')
        self._write(quote)
        return quote

    def delete_quote(self, number: str) -> bool:
        """Delete a quote."""
        path = self._path(number)
        if not path.exists():
            raise ValueError(f"Quote '{number}' not found")
        path.unlink()
        logger.info("Deleted quote %s", number)
        return True

    def _write(self, quote: Quote):
        # Atomic replace; readers never see a partial file
        path = self._path(quote.number)
        tmp_path = path.with_name(path.name + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(quote.to_dict(), f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)

    def get_stats(self) -> dict:
        """Get statistics about stored quotes."""
        quotes, total = self.list_quotes(limit=10**9)
        by_status = {}
        by_roof_type = {}
        for q in quotes:
            by_status[q.status] = by_status.get(q.status, 0) + 1
            key = q.roof_type_code or 'Unknown'
            by_roof_type[key] = by_roof_type.get(key, 0) + 1

        return {
            'total': total,
            'by_status': by_status,
            'by_roof_type': by_roof_type,
            'total_value': sum(q.final_price for q in quotes),
        }
