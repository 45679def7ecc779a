import json
import os
import sys
import threading
from datetime import datetime

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from quote_tool.engine.models import CustomRequirement, ProductConfiguration
from quote_tool.lifecycle import InvalidStateTransition, Quote, QuoteStatus, QuotationNumberConflict
from quote_tool.services.quote_service import QuoteService


def new_quote(reference="REF", client="Ada", created_at=None):
    return Quote(
        client_name=client,
        company_name=f"{client} Ltd",
        quote_reference=reference,
        created_at=created_at,
        product_configurations=[ProductConfiguration(product_id="1", plan_id="1", frequency="Monthly")],
        custom_requirements=[CustomRequirement(name="Training", price=250)],
    )


def test_create_quote_is_draft(quote_service):
    saved = quote_service.create_quote(new_quote())

    assert saved.id
    assert saved.status is QuoteStatus.DRAFT
    assert saved.quotation_number is None
    assert saved.created_at
    assert quote_service.get_quote(saved.id) == saved


def test_create_quote_ignores_incoming_status(quote_service):
    quote = new_quote()
    quote.status = QuoteStatus.GENERATED
    quote.quotation_number = "Q-1999-999"

    saved = quote_service.create_quote(quote)

    assert saved.status is QuoteStatus.DRAFT
    assert saved.quotation_number is None


def test_generate_assigns_sequential_numbers(quote_service):
    now = datetime(2024, 6, 1)
    first = quote_service.create_quote(new_quote("A"))
    second = quote_service.create_quote(new_quote("B"))

    assert quote_service.generate_quote(first.id, now=now).quotation_number == "Q-2024-001"
    assert quote_service.generate_quote(second.id, now=now).quotation_number == "Q-2024-002"
    assert quote_service.get_quote(first.id).status is QuoteStatus.GENERATED


def test_sequence_restarts_each_year(quote_service):
    first = quote_service.create_quote(new_quote("A"))
    second = quote_service.create_quote(new_quote("B"))

    quote_service.generate_quote(first.id, now=datetime(2024, 12, 31))
    generated = quote_service.generate_quote(second.id, now=datetime(2025, 1, 1))

    assert generated.quotation_number == "Q-2025-001"


def test_counter_is_seeded_from_existing_generated_quotes(tmp_path):
    # A store written before the counter file existed
    existing = Quote(id="old", quote_reference="Legacy", status=QuoteStatus.GENERATED,
                     quotation_number="Q-2024-004", created_at="2024-01-01T00:00:00")
    service = QuoteService(tmp_path / "quotes.csv", tmp_path / "counters.json")
    service._write_quotes([existing])

    draft = service.create_quote(new_quote())
    generated = service.generate_quote(draft.id, now=datetime(2024, 5, 5))

    assert generated.quotation_number == "Q-2024-005"
    assert json.loads((tmp_path / "counters.json").read_text()) == {"2024": 5}


def test_create_with_generate(quote_service):
    saved = quote_service.create_quote(new_quote(), generate=True)

    assert saved.status is QuoteStatus.GENERATED
    assert saved.quotation_number == f"Q-{datetime.now().year}-001"


def test_generating_twice_is_rejected_without_burning_a_number(quote_service, tmp_path):
    now = datetime(2024, 6, 1)
    saved = quote_service.create_quote(new_quote())
    quote_service.generate_quote(saved.id, now=now)

    with pytest.raises(InvalidStateTransition):
        quote_service.generate_quote(saved.id, now=now)

    assert json.loads((tmp_path / "counters.json").read_text()) == {"2024": 1}


def test_generated_quote_cannot_be_edited_or_deleted(quote_service):
    saved = quote_service.create_quote(new_quote())
    quote_service.generate_quote(saved.id)

    with pytest.raises(InvalidStateTransition):
        quote_service.update_quote(saved.id, new_quote("Changed"))
    with pytest.raises(InvalidStateTransition):
        quote_service.delete_quote(saved.id)

    assert quote_service.get_quote(saved.id).quote_reference == "REF"


def test_update_and_delete_draft(quote_service):
    saved = quote_service.create_quote(new_quote())

    updated = quote_service.update_quote(saved.id, new_quote("Changed"))

    assert updated.id == saved.id
    assert updated.created_at == saved.created_at
    assert quote_service.get_quote(saved.id).quote_reference == "Changed"

    assert quote_service.delete_quote(saved.id) is True
    assert quote_service.get_quote(saved.id) is None


def test_missing_quote_raises_value_error(quote_service):
    with pytest.raises(ValueError, match="not found"):
        quote_service.update_quote("nope", new_quote())
    with pytest.raises(ValueError):
        quote_service.delete_quote("nope")
    with pytest.raises(ValueError):
        quote_service.generate_quote("nope")
    with pytest.raises(ValueError):
        quote_service.duplicate_quote("nope")


def test_number_collision_is_a_retryable_conflict(quote_service):
    now = datetime(2024, 6, 1)
    taken = quote_service.create_quote(new_quote("A"))
    quote_service.generate_quote(taken.id, now=now)

    draft = quote_service.create_quote(new_quote("B"))
    quote_service._write_counters({"2024": 0})

    with pytest.raises(QuotationNumberConflict) as excinfo:
        quote_service.generate_quote(draft.id, now=now)

    assert excinfo.value.retryable is True
    # Retrying picks up the next free number
    assert quote_service.generate_quote(draft.id, now=now).quotation_number == "Q-2024-002"


def test_draft_carrying_a_taken_number_gets_a_fresh_one(quote_service):
    now = datetime(2024, 6, 1)
    first = quote_service.create_quote(new_quote("A"))
    quote_service.generate_quote(first.id, now=now)
    draft = quote_service.create_quote(new_quote("B"))

    quotes = quote_service._read_quotes()
    for quote in quotes:
        if quote.id == draft.id:
            quote.quotation_number = "Q-2024-001"
    quote_service._write_quotes(quotes)

    generated = quote_service.generate_quote(draft.id, now=now)

    assert generated.quotation_number == "Q-2024-002"
    assert quote_service.get_quote(first.id).quotation_number == "Q-2024-001"


def test_draft_keeps_its_own_free_number(quote_service):
    draft = quote_service.create_quote(new_quote("A"))
    quotes = quote_service._read_quotes()
    quotes[0].quotation_number = "Q-2023-007"
    quote_service._write_quotes(quotes)

    generated = quote_service.generate_quote(draft.id, now=datetime(2024, 6, 1))

    assert generated.quotation_number == "Q-2023-007"
    assert quote_service._read_counters() == {}


def test_concurrent_generation_hands_out_unique_numbers(tmp_path):
    service = QuoteService(tmp_path / "quotes.csv", tmp_path / "counters.json")
    ids = [service.create_quote(new_quote(f"R{i}")).id for i in range(8)]
    errors = []

    def worker(quote_id):
        # Separate instance per thread, same store files
        local = QuoteService(tmp_path / "quotes.csv", tmp_path / "counters.json")
        try:
            local.generate_quote(quote_id, now=datetime(2024, 2, 2))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(quote_id,)) for quote_id in ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    numbers = sorted(q.quotation_number for q in service.list_quotes())
    assert errors == []
    assert numbers == [f"Q-2024-{i:03d}" for i in range(1, 9)]


def test_duplicate_creates_new_draft(quote_service):
    saved = quote_service.create_quote(new_quote())
    quote_service.generate_quote(saved.id)

    copy = quote_service.duplicate_quote(saved.id)

    assert copy.id != saved.id
    assert copy.status is QuoteStatus.DRAFT
    assert copy.quotation_number is None
    assert copy.quote_reference == "REF (Copy)"
    assert copy.selection == quote_service.get_quote(saved.id).selection


def test_list_filters_and_search(quote_service):
    a = quote_service.create_quote(new_quote("Website Redesign", "Ada", "2024-01-10T09:00:00"))
    b = quote_service.create_quote(new_quote("Mobile App", "Grace", "2024-02-10T09:00:00"))
    quote_service.create_quote(new_quote("Website Hosting", "Linus", "2024-03-10T09:00:00"))
    quote_service.generate_quote(b.id)

    assert [q.quote_reference for q in quote_service.list_quotes()] == [
        "Website Hosting", "Mobile App", "Website Redesign",
    ]
    assert [q.id for q in quote_service.list_quotes(status="generated")] == [b.id]
    assert len(quote_service.list_quotes(status="draft")) == 2
    assert len(quote_service.list_quotes(search="website")) == 2
    assert [q.id for q in quote_service.list_quotes(search="grace", search_field="clientName")] == [b.id]
    assert [q.id for q in quote_service.list_quotes(end_date="2024-01-31")] == [a.id]
    assert len(quote_service.list_quotes(start_date="2024-02-10", end_date="2024-02-10")) == 1


def test_list_rejects_unknown_search_field(quote_service):
    with pytest.raises(ValueError, match="Unknown search field"):
        quote_service.list_quotes(search="x", search_field="password")


def test_list_rejects_unknown_status(quote_service):
    quote_service.create_quote(new_quote("A"))

    with pytest.raises(ValueError, match="Unknown status"):
        quote_service.list_quotes(status="bogus")
    assert len(quote_service.list_quotes(status="Draft")) == 1
    assert len(quote_service.list_quotes(status="all")) == 1


def test_stats(quote_service):
    first = quote_service.create_quote(new_quote("A"))
    quote_service.create_quote(new_quote("B"))
    quote_service.generate_quote(first.id)

    assert quote_service.get_stats() == {'total': 2, 'draft': 1, 'generated': 1}
