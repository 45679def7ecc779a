"""
Quote export - tabular documents for download.

Builds pandas DataFrames from a priced quote and writes them as CSV or as an
Excel workbook (one sheet each for the quote header, the line items and the
cost summary).
"""
import io
from typing import Optional

import pandas as pd

from ..engine.models import QuoteResult
from ..lifecycle import Quote, valid_until
from .catalog_service import CompanyProfile


def _signed(amount: float, is_discount: bool) -> float:
    return -amount if is_discount else amount


def quote_to_frames(quote: Quote, result: QuoteResult, profile: Optional[CompanyProfile] = None) -> dict[str, pd.DataFrame]:
    """Header, line-item and summary tables for one quote."""
    profile = profile or CompanyProfile()
    expires = valid_until(quote, profile.validity_days)

    header = pd.DataFrame([
        ('Company', profile.company_name),
        ('Company Email', profile.company_email),
        ('Company Phone', profile.phone),
        ('Address', profile.address),
        ('Quotation Number', quote.quotation_number or 'DRAFT'),
        ('Reference', quote.quote_reference),
        ('Client', quote.client_name),
        ('Client Company', quote.company_name),
        ('Client Email', quote.client_email),
        ('Client Phone', quote.phone_number),
        ('Project Timeline', quote.project_timeline),
        ('Date', (quote.created_at or '')[:10]),
        ('Valid Until', expires.strftime('%Y-%m-%d') if expires else ''),
        ('Currency', profile.default_currency),
        ('Notes', quote.additional_notes),
        ('Terms', profile.terms_and_conditions),
    ], columns=['Field', 'Value'])

    lines = pd.DataFrame(
        [{
            'Section': line.section,
            'Item': line.name,
            'Description': line.description,
            'Frequency': line.frequency,
            'Amount': _signed(line.amount, line.is_discount),
        } for line in result.lines],
        columns=['Section', 'Item', 'Description', 'Frequency', 'Amount'],
    )

    breakdown = result.breakdown
    periods = result.periods
    summary = pd.DataFrame([
        ('Products', breakdown.products),
        ('Setup Costs', breakdown.setup_costs),
        ('Add-ons', breakdown.addons),
        ('Custom Requirements', breakdown.custom_requirements),
        ('Discounts', -breakdown.discounts),
        ('Total', breakdown.total),
        ('One-Time Cost', periods.one_time),
        ('Monthly Total', periods.monthly),
        ('Quarterly Total', periods.quarterly),
        ('Yearly Total', periods.yearly),
    ], columns=['Item', 'Amount'])
    summary['Amount'] = summary['Amount'].round(2)

    return {'Quote': header, 'Line Items': lines, 'Summary': summary}


def export_csv(quote: Quote, result: QuoteResult, profile: Optional[CompanyProfile] = None) -> bytes:
    """Line items followed by the summary rows, as CSV bytes."""
    frames = quote_to_frames(quote, result, profile)
    summary = frames['Summary'].assign(Section='Summary', Description='', Frequency='')
    combined = pd.concat([frames['Line Items'], summary], ignore_index=True)
    return combined.to_csv(index=False).encode('utf-8')


def export_excel(quote: Quote, result: QuoteResult, profile: Optional[CompanyProfile] = None) -> bytes:
    """Workbook with Quote, Line Items and Summary sheets."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        for sheet, frame in quote_to_frames(quote, result, profile).items():
            frame.to_excel(writer, sheet_name=sheet, index=False)
    return buffer.getvalue()


def export_filename(quote: Quote, extension: str) -> str:
    stem = quote.quotation_number or f"draft_{quote.id}"
    return f"quote_{stem}.{extension}"


def quotes_to_frame(quotes: list[Quote], totals: Optional[dict[str, float]] = None) -> pd.DataFrame:
    """Quote history table; ``totals`` maps quote id to its priced total."""
    totals = totals or {}
    return pd.DataFrame(
        [{
            'ID': q.id,
            'Number': q.quotation_number or '',
            'Reference': q.quote_reference,
            'Client': q.client_name,
            'Company': q.company_name,
            'Status': q.status.value,
            'Created': (q.created_at or '')[:10],
            'Total': round(totals.get(q.id, 0.0), 2),
        } for q in quotes],
        columns=['ID', 'Number', 'Reference', 'Client', 'Company', 'Status', 'Created', 'Total'],
    )
