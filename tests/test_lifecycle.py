import os
import sys
from datetime import datetime

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from quote_tool import lifecycle
from quote_tool.engine.models import CustomRequirement, Discount, DiscountType, ProductConfiguration
from quote_tool.lifecycle import InvalidStateTransition, Quote, QuoteStatus


def make_quote(**kwargs):
    defaults = dict(
        id="abc",
        client_name="Ada",
        quote_reference="REF-1",
        product_configurations=[ProductConfiguration(product_id="1", plan_id="1", frequency="Monthly",
                                                     selected_add_on_ids=["2"])],
        custom_requirements=[CustomRequirement(name="Training", price=100)],
        discounts=[Discount(type=DiscountType.FIXED, value=10)],
        created_at="2024-03-01T10:00:00",
    )
    defaults.update(kwargs)
    return Quote(**defaults)


def test_quotation_number_format():
    assert lifecycle.format_quotation_number(2024, 1) == "Q-2024-001"
    assert lifecycle.format_quotation_number(2024, 42) == "Q-2024-042"
    assert lifecycle.format_quotation_number(2024, 1234) == "Q-2024-1234"
    assert lifecycle.parse_quotation_number("Q-2024-007") == (2024, 7)
    assert lifecycle.parse_quotation_number("INV-1") is None
    assert lifecycle.parse_quotation_number(None) is None


def test_next_sequence_counts_generated_quotes_in_year():
    quotes = [
        make_quote(status=QuoteStatus.GENERATED, quotation_number="Q-2024-001"),
        make_quote(status=QuoteStatus.GENERATED, quotation_number="Q-2024-002"),
        make_quote(status=QuoteStatus.GENERATED, quotation_number="Q-2023-009"),
        make_quote(status=QuoteStatus.DRAFT),
    ]

    assert lifecycle.next_sequence(quotes, 2024) == 3
    assert lifecycle.next_sequence(quotes, 2025) == 1


def test_generate_moves_draft_to_generated():
    draft = make_quote()

    generated = lifecycle.generate(draft, "Q-2024-005")

    assert generated.status is QuoteStatus.GENERATED
    assert generated.quotation_number == "Q-2024-005"
    assert draft.status is QuoteStatus.DRAFT


def test_generate_keeps_existing_number():
    draft = make_quote(quotation_number="Q-2024-002")

    assert lifecycle.generate(draft, "Q-2024-009").quotation_number == "Q-2024-002"


def test_generate_rejects_generated_quote():
    generated = make_quote(status=QuoteStatus.GENERATED, quotation_number="Q-2024-001")

    with pytest.raises(InvalidStateTransition):
        lifecycle.generate(generated, "Q-2024-002")


def test_generate_requires_a_number():
    with pytest.raises(InvalidStateTransition):
        lifecycle.generate(make_quote())


def test_ensure_editable():
    lifecycle.ensure_editable(make_quote())

    with pytest.raises(InvalidStateTransition, match="duplicate it instead"):
        lifecycle.ensure_editable(make_quote(status=QuoteStatus.GENERATED))


def test_duplicate_resets_identity_and_copies_selection():
    original = make_quote(status=QuoteStatus.GENERATED, quotation_number="Q-2024-001")
    now = datetime(2025, 1, 2, 3, 4, 5)

    copy = lifecycle.duplicate(original, now=now)

    assert copy.id is None
    assert copy.quotation_number is None
    assert copy.status is QuoteStatus.DRAFT
    assert copy.created_at == now.isoformat()
    assert copy.quote_reference == "REF-1 (Copy)"
    assert copy.selection == original.selection

    copy.product_configurations[0].selected_add_on_ids.append("9")
    assert original.product_configurations[0].selected_add_on_ids == ["2"]


def test_valid_until():
    assert lifecycle.valid_until(make_quote(), 30) == datetime(2024, 3, 31, 10, 0, 0)
    assert lifecycle.valid_until(make_quote(created_at=None)) is None
    assert lifecycle.valid_until(make_quote(created_at="yesterday")) is None


def test_row_round_trip():
    quote = make_quote(status=QuoteStatus.GENERATED, quotation_number="Q-2024-003")

    assert Quote.from_row(quote.to_row()) == quote


def test_from_row_tolerates_bad_json():
    row = make_quote().to_row()
    row['productConfigurations'] = "{not json"
    row['discounts'] = '"scalar"'

    quote = Quote.from_row(row)

    assert quote.product_configurations == []
    assert quote.discounts == []
    assert len(quote.custom_requirements) == 1
