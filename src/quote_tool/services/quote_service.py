"""
Quote Service - persistence and lifecycle operations for client quotes.

Quotes are stored in quotes.csv. Every read-modify-write runs under one lock
per store file, and quotation numbers come from a per-year counter kept in
counters.json, so concurrent generation never hands out the same number
twice within a process.
"""
import csv
import json
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from .. import lifecycle
from ..lifecycle import InvalidStateTransition, Quote, QuoteStatus, QuotationNumberConflict
from .catalog_service import write_csv_atomic

logger = logging.getLogger(__name__)

_locks: dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    """One lock per store file, shared by every service instance in the process."""
    key = Path(path).resolve()
    with _locks_guard:
        if key not in _locks:
            _locks[key] = threading.RLock()
        return _locks[key]


SEARCH_FIELDS = {
    'quoteReference': 'quote_reference',
    'clientName': 'client_name',
    'companyName': 'company_name',
    'phoneNumber': 'phone_number',
    'clientEmail': 'client_email',
    'quotationNumber': 'quotation_number',
}


class QuoteService:
    """Service for managing quotes and their lifecycle."""

    def __init__(self, quotes_csv_path: Path, counters_path: Path):
        self.quotes_csv_path = Path(quotes_csv_path)
        self.counters_path = Path(counters_path)
        self._lock = _lock_for(self.quotes_csv_path)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_quotes(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        search_field: str = 'quoteReference',
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> list[Quote]:
        """
        List quotes, newest first.

        ``search`` is a case-insensitive substring match on ``search_field``
        (one of SEARCH_FIELDS); ``status`` is draft, generated or all. Dates
        are ISO ``YYYY-MM-DD`` bounds on created_at, inclusive.
        """
        quotes = self._read_quotes()

        if status and status != 'all':
            if status.strip().lower() not in {s.value for s in QuoteStatus}:
                raise ValueError(f"Unknown status '{status}'")
            wanted = QuoteStatus.parse(status)
            quotes = [q for q in quotes if q.status is wanted]

        if search:
            if search_field not in SEARCH_FIELDS:
                raise ValueError(f"Unknown search field '{search_field}'")
            attr = SEARCH_FIELDS[search_field]
            needle = search.lower()
            quotes = [q for q in quotes if needle in (getattr(q, attr) or '').lower()]

        if start_date:
            quotes = [q for q in quotes if (q.created_at or '')[:10] >= start_date]
        if end_date:
            quotes = [q for q in quotes if (q.created_at or '')[:10] <= end_date]

        quotes.sort(key=lambda q: q.created_at or '', reverse=True)
        return quotes

    def get_quote(self, quote_id: str) -> Optional[Quote]:
        for quote in self._read_quotes():
            if quote.id == str(quote_id):
                return quote
        return None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_quote(self, quote: Quote, generate: bool = False) -> Quote:
        """Save a new Draft quote; optionally generate it straight away."""
        with self._lock:
            quotes = self._read_quotes()
            quote.id = uuid.uuid4().hex[:12]
            quote.status = QuoteStatus.DRAFT
            quote.quotation_number = None
            quote.created_at = quote.created_at or datetime.now().isoformat()
            quotes.append(quote)
            self._write_quotes(quotes)
            logger.info("Created draft quote %s", quote.id)

            if generate:
                return self.generate_quote(quote.id)
            return quote

    def update_quote(self, quote_id: str, quote: Quote) -> Quote:
        """Replace a Draft quote's content. Generated quotes are rejected."""
        with self._lock:
            quotes = self._read_quotes()
            index, existing = self._find(quotes, quote_id)
            lifecycle.ensure_editable(existing)

            quote.id = existing.id
            quote.status = QuoteStatus.DRAFT
            quote.quotation_number = existing.quotation_number
            quote.created_at = quote.created_at or existing.created_at
            quotes[index] = quote
            self._write_quotes(quotes)
            logger.info("Updated draft quote %s", quote_id)
            return quote

    def delete_quote(self, quote_id: str) -> bool:
        """Delete a Draft quote. Generated quotes are rejected."""
        with self._lock:
            quotes = self._read_quotes()
            index, existing = self._find(quotes, quote_id)
            lifecycle.ensure_editable(existing)

            del quotes[index]
            self._write_quotes(quotes)
            logger.info("Deleted draft quote %s", quote_id)
            return True

    def generate_quote(self, quote_id: str, now: Optional[datetime] = None) -> Quote:
        """
        Transition a Draft quote to Generated and assign its quotation number.

        A number the Draft already carries is kept unless another quote holds
        it, in which case a fresh one is assigned. Raises
        InvalidStateTransition if the quote is already Generated and
        QuotationNumberConflict if a freshly assigned number is already taken.
        """
        now = now or datetime.now()
        with self._lock:
            quotes = self._read_quotes()
            index, existing = self._find(quotes, quote_id)
            if existing.status is QuoteStatus.GENERATED:
                # Checked before touching the counter so no number is burned
                raise InvalidStateTransition(f"Quote '{quote_id}' has already been generated")

            number = existing.quotation_number
            if number and self._holder_of(quotes, number, existing.id):
                logger.warning("Quote %s carries number %s held by another quote; assigning a new one",
                               quote_id, number)
                number = None

            number = number or self.assign_next_number(now.year, quotes)
            holder = self._holder_of(quotes, number, existing.id)
            if holder is not None:
                raise QuotationNumberConflict(
                    f"Quotation number {number} is already used by quote '{holder.id}'"
                )

            generated = lifecycle.generate(replace(existing, quotation_number=number))
            quotes[index] = generated
            self._write_quotes(quotes)
            logger.info("Generated quote %s as %s", quote_id, number)
            return generated

    def duplicate_quote(self, quote_id: str) -> Quote:
        """Copy any quote into a new Draft and save it."""
        original = self.get_quote(quote_id)
        if original is None:
            raise ValueError(f"Quote with ID '{quote_id}' not found")
        return self.create_quote(lifecycle.duplicate(original))

    def assign_next_number(self, year: int, quotes: Optional[list[Quote]] = None) -> str:
        """
        Atomically reserve the next quotation number for ``year``.

        The counter for a year is seeded from the quotes already generated
        in that year the first time it is used.
        """
        with self._lock:
            counters = self._read_counters()
            key = str(year)
            if key not in counters:
                quotes = quotes if quotes is not None else self._read_quotes()
                seed = lifecycle.next_sequence(quotes, year) - 1
                for quote in quotes:
                    parsed = lifecycle.parse_quotation_number(quote.quotation_number)
                    if parsed and parsed[0] == year:
                        seed = max(seed, parsed[1])
                counters[key] = seed

            counters[key] += 1
            self._write_counters(counters)
            return lifecycle.format_quotation_number(year, counters[key])

    def get_stats(self) -> dict:
        quotes = self._read_quotes()
        generated = [q for q in quotes if q.status is QuoteStatus.GENERATED]
        return {
            'total': len(quotes),
            'draft': len(quotes) - len(generated),
            'generated': len(generated),
        }

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    @staticmethod
    def _holder_of(quotes: list[Quote], number: str, exclude_id: Optional[str]) -> Optional[Quote]:
        """Another quote already carrying ``number``, if any."""
        for other in quotes:
            if other.id != exclude_id and other.quotation_number == number:
                return other
        return None

    def _find(self, quotes: list[Quote], quote_id: str) -> tuple[int, Quote]:
        for i, quote in enumerate(quotes):
            if quote.id == str(quote_id):
                return i, quote
        raise ValueError(f"Quote with ID '{quote_id}' not found")

    def _read_quotes(self) -> list[Quote]:
        if not self.quotes_csv_path.exists():
            return []
        with open(self.quotes_csv_path, 'r', encoding='utf-8', newline='') as f:
            return [Quote.from_row(row) for row in csv.DictReader(f) if row.get('id')]

    def _write_quotes(self, quotes: list[Quote]):
        write_csv_atomic(self.quotes_csv_path, Quote.CSV_COLUMNS, [q.to_row() for q in quotes])

    def _read_counters(self) -> dict[str, int]:
        if not self.counters_path.exists():
            return {}
        with open(self.counters_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return {str(k): int(v) for k, v in data.items()}

    def _write_counters(self, counters: dict[str, int]):
        self.counters_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.counters_path.with_suffix('.json.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(counters, f, indent=2, sort_keys=True)
        tmp_path.replace(self.counters_path)
