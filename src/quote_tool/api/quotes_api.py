"""
Quotes API - FastAPI router for quotes, their lifecycle and pricing.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import Response

from ..engine.pricing_engine import PricingEngine
from ..lifecycle import InvalidStateTransition, LifecycleError, Quote
from ..services import export
from ..services.catalog_service import CatalogService
from ..services.quote_service import QuoteService
from .schemas import QuoteIn
from .state import get_catalog_service, get_quote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


def _lifecycle_error(e: LifecycleError) -> HTTPException:
    """Map a rejected lifecycle operation to 409 Conflict."""
    logger.warning("Rejected quote operation: %s", e)
    return HTTPException(
        status_code=409,
        detail={
            "error": type(e).__name__,
            "message": str(e),
            "retryable": e.retryable,
        },
    )


def _get_or_404(service: QuoteService, quote_id: str) -> Quote:
    quote = service.get_quote(quote_id)
    if not quote:
        raise HTTPException(status_code=404, detail=f"Quote '{quote_id}' not found")
    return quote


@router.get("")
async def list_quotes(
    status: Optional[str] = None,
    search: Optional[str] = None,
    field: str = "quoteReference",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    service: QuoteService = Depends(get_quote_service),
):
    """List quotes, newest first."""
    try:
        quotes = service.list_quotes(status=status, search=search, search_field=field,
                                     start_date=start_date, end_date=end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return jsonable_encoder(quotes)


@router.get("/stats")
async def get_stats(service: QuoteService = Depends(get_quote_service)):
    return service.get_stats()


@router.post("", status_code=201)
async def create_quote(
    data: QuoteIn,
    generate: bool = False,
    service: QuoteService = Depends(get_quote_service),
):
    """Save a new draft quote, optionally generating it immediately."""
    try:
        return jsonable_encoder(service.create_quote(data.to_quote(), generate=generate))
    except LifecycleError as e:
        raise _lifecycle_error(e)


@router.get("/{quote_id}")
async def get_quote(quote_id: str, service: QuoteService = Depends(get_quote_service)):
    return jsonable_encoder(_get_or_404(service, quote_id))


@router.put("/{quote_id}")
async def update_quote(quote_id: str, data: QuoteIn, service: QuoteService = Depends(get_quote_service)):
    """Edit a draft quote. Generated quotes cannot be edited."""
    try:
        return jsonable_encoder(service.update_quote(quote_id, data.to_quote()))
    except InvalidStateTransition as e:
        raise _lifecycle_error(e)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{quote_id}")
async def delete_quote(quote_id: str, service: QuoteService = Depends(get_quote_service)):
    try:
        service.delete_quote(quote_id)
        return {"success": True, "message": f"Quote '{quote_id}' deleted"}
    except InvalidStateTransition as e:
        raise _lifecycle_error(e)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{quote_id}/generate")
async def generate_quote(quote_id: str, service: QuoteService = Depends(get_quote_service)):
    """Mark a draft as generated and assign its quotation number."""
    try:
        return jsonable_encoder(service.generate_quote(quote_id))
    except LifecycleError as e:
        raise _lifecycle_error(e)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{quote_id}/duplicate", status_code=201)
async def duplicate_quote(quote_id: str, service: QuoteService = Depends(get_quote_service)):
    try:
        return jsonable_encoder(service.duplicate_quote(quote_id))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{quote_id}/pricing")
async def price_quote(
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
    catalog_service: CatalogService = Depends(get_catalog_service),
):
    """Price a stored quote against the live catalog."""
    quote = _get_or_404(service, quote_id)
    engine = PricingEngine(catalog_service.load_catalog())
    return jsonable_encoder(engine.calculate(quote.selection))


@router.get("/{quote_id}/export")
async def export_quote(
    quote_id: str,
    format: str = "csv",
    service: QuoteService = Depends(get_quote_service),
    catalog_service: CatalogService = Depends(get_catalog_service),
):
    """Download a quote as CSV or as an Excel workbook."""
    quote = _get_or_404(service, quote_id)
    result = PricingEngine(catalog_service.load_catalog()).calculate(quote.selection)
    profile = catalog_service.get_company_profile()

    if format == "csv":
        content = export.export_csv(quote, result, profile)
        media_type = "text/csv"
    elif format == "xlsx":
        content = export.export_excel(quote, result, profile)
        media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    else:
        raise HTTPException(status_code=400, detail=f"Unsupported export format '{format}'")

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={export.export_filename(quote, format)}"},
    )
