"""
Shared service instances for the API, exposed as FastAPI dependencies.
"""
from typing import Optional

from ..config.settings import get_settings
from ..services.catalog_service import CatalogService
from ..services.quote_service import QuoteService

_catalog_service: Optional[CatalogService] = None
_quote_service: Optional[QuoteService] = None


def get_catalog_service() -> CatalogService:
    global _catalog_service
    if _catalog_service is None:
        settings = get_settings()
        _catalog_service = CatalogService(settings.products_csv, settings.company_csv)
    return _catalog_service


def get_quote_service() -> QuoteService:
    global _quote_service
    if _quote_service is None:
        settings = get_settings()
        _quote_service = QuoteService(settings.quotes_csv, settings.counters_json)
    return _quote_service
