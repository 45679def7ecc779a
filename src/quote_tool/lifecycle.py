"""
Quote lifecycle - Draft → Generated transitions and quotation numbers.

A quote starts as a Draft and may be edited or deleted freely. Generating
it is one-way: it receives a quotation number ``Q-<year>-<NNN>`` and its
selection is frozen from then on. Duplicating a quote is the only way to
rework a generated one.
"""
import json
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional

from .engine.models import CustomRequirement, Discount, ProductConfiguration, QuoteSelection

QUOTATION_NUMBER_RE = re.compile(r'^Q-(\d{4})-(\d+)$')


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"

    @classmethod
    def parse(cls, value) -> 'QuoteStatus':
        if str(value or "").strip().lower() == cls.GENERATED.value:
            return cls.GENERATED
        return cls.DRAFT


class LifecycleError(Exception):
    """Base class for rejected lifecycle operations."""
    retryable = False


class InvalidStateTransition(LifecycleError):
    """The quote's current status does not allow the requested operation."""


class QuotationNumberConflict(LifecycleError):
    """Another quote already holds the number; assignment should be retried."""
    retryable = True


@dataclass
class Quote:
    """A client quote: client details, selection and lifecycle metadata."""
    id: Optional[str] = None
    client_name: str = ""
    client_email: str = ""
    company_name: str = ""
    phone_number: str = ""
    quote_reference: str = ""
    project_timeline: str = ""
    additional_notes: str = ""
    product_configurations: list[ProductConfiguration] = field(default_factory=list)
    custom_requirements: list[CustomRequirement] = field(default_factory=list)
    discounts: list[Discount] = field(default_factory=list)
    created_at: Optional[str] = None  # ISO timestamp
    status: QuoteStatus = QuoteStatus.DRAFT
    quotation_number: Optional[str] = None

    CSV_COLUMNS = [
        'id', 'clientName', 'clientEmail', 'companyName', 'phoneNumber',
        'quoteReference', 'projectTimeline', 'additionalNotes',
        'customRequirements', 'productConfigurations', 'discounts',
        'createdAt', 'status', 'quotation_num',
    ]

    @property
    def selection(self) -> QuoteSelection:
        return QuoteSelection(
            product_configurations=list(self.product_configurations),
            custom_requirements=list(self.custom_requirements),
            discounts=list(self.discounts),
        )

    @property
    def is_editable(self) -> bool:
        return self.status is QuoteStatus.DRAFT

    def to_row(self) -> dict:
        """Convert to CSV row format (nested lists as JSON text)."""
        selection = self.selection.to_dict()
        return {
            'id': self.id or '',
            'clientName': self.client_name,
            'clientEmail': self.client_email,
            'companyName': self.company_name,
            'phoneNumber': self.phone_number,
            'quoteReference': self.quote_reference,
            'projectTimeline': self.project_timeline,
            'additionalNotes': self.additional_notes,
            'customRequirements': json.dumps(selection['customRequirements']),
            'productConfigurations': json.dumps(selection['productConfigurations']),
            'discounts': json.dumps(selection['discounts']),
            'createdAt': self.created_at or '',
            'status': self.status.value,
            'quotation_num': self.quotation_number or '',
        }

    @classmethod
    def from_row(cls, row: dict) -> 'Quote':
        """Create a Quote from a CSV row; unreadable JSON columns load as empty."""
        return cls(
            id=row.get('id') or None,
            client_name=row.get('clientName') or '',
            client_email=row.get('clientEmail') or '',
            company_name=row.get('companyName') or '',
            phone_number=row.get('phoneNumber') or '',
            quote_reference=row.get('quoteReference') or '',
            project_timeline=row.get('projectTimeline') or '',
            additional_notes=row.get('additionalNotes') or '',
            product_configurations=[ProductConfiguration.from_dict(c) for c in _json_list(row.get('productConfigurations'))],
            custom_requirements=[CustomRequirement.from_dict(r) for r in _json_list(row.get('customRequirements'))],
            discounts=[Discount.from_dict(d) for d in _json_list(row.get('discounts'))],
            created_at=row.get('createdAt') or None,
            status=QuoteStatus.parse(row.get('status')),
            quotation_number=row.get('quotation_num') or None,
        )


def _json_list(text) -> list:
    if not text:
        return []
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return []
    return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


def format_quotation_number(year: int, sequence: int) -> str:
    """Format ``Q-<year>-<NNN>``; sequences past 999 simply grow wider."""
    return f"Q-{year}-{sequence:03d}"


def parse_quotation_number(number: Optional[str]) -> Optional[tuple[int, int]]:
    """Return (year, sequence) for a well-formed quotation number."""
    match = QUOTATION_NUMBER_RE.match(number or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def next_sequence(quotes: Iterable[Quote], year: int) -> int:
    """Count of quotes already Generated with a number for ``year``, plus one."""
    count = 0
    for quote in quotes:
        if quote.status is not QuoteStatus.GENERATED:
            continue
        parsed = parse_quotation_number(quote.quotation_number)
        if parsed and parsed[0] == year:
            count += 1
    return count + 1


def ensure_editable(quote: Quote):
    """Raise InvalidStateTransition unless the quote is still a Draft."""
    if not quote.is_editable:
        raise InvalidStateTransition(
            f"Quote '{quote.id}' is {quote.status.value} and can no longer be changed; duplicate it instead"
        )


def generate(quote: Quote, quotation_number: Optional[str] = None) -> Quote:
    """
    Move a Draft quote to Generated.

    An existing quotation number on the quote is kept; otherwise
    ``quotation_number`` is assigned. Returns a new Quote.
    """
    if quote.status is QuoteStatus.GENERATED:
        raise InvalidStateTransition(f"Quote '{quote.id}' has already been generated")

    number = quote.quotation_number or quotation_number
    if not number:
        raise InvalidStateTransition(f"Quote '{quote.id}' cannot be generated without a quotation number")

    return replace(quote, status=QuoteStatus.GENERATED, quotation_number=number)


def duplicate(quote: Quote, now: Optional[datetime] = None) -> Quote:
    """New Draft copying the selection; id, number and timestamp are reset."""
    now = now or datetime.now()
    return replace(
        quote,
        id=None,
        quote_reference=f"{quote.quote_reference} (Copy)" if quote.quote_reference else "",
        product_configurations=[replace(c, selected_add_on_ids=list(c.selected_add_on_ids))
                                for c in quote.product_configurations],
        custom_requirements=[replace(r) for r in quote.custom_requirements],
        discounts=[replace(d) for d in quote.discounts],
        created_at=now.isoformat(),
        status=QuoteStatus.DRAFT,
        quotation_number=None,
    )


def valid_until(quote: Quote, validity_days: int = 30) -> Optional[datetime]:
    """Expiry date printed on the quote document."""
    if not quote.created_at:
        return None
    try:
        created = datetime.fromisoformat(quote.created_at.replace('Z', '+00:00'))
    except ValueError:
        return None
    return created + timedelta(days=validity_days)
