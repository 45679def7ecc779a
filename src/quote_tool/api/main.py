import logging

from fastapi import Depends, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware

from quote_tool import __version__
from quote_tool.config.settings import get_settings
from quote_tool.engine import PricingEngine
from quote_tool.api.catalog_api import router as catalog_router
from quote_tool.api.quotes_api import router as quotes_router
from quote_tool.api.schemas import SelectionIn
from quote_tool.api.state import get_catalog_service, get_quote_service
from quote_tool.services.catalog_service import CatalogService
from quote_tool.services.quote_service import QuoteService

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Quote Tool API",
    description="Backend API for the product catalog and client quote builder",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog_router)
app.include_router(quotes_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Quote Tool API Active"}


@app.post("/calculate")
async def calculate(selection: SelectionIn, catalog_service: CatalogService = Depends(get_catalog_service)):
    """Price an unsaved selection against the live catalog."""
    engine = PricingEngine(catalog_service.load_catalog())
    return jsonable_encoder(engine.calculate(selection.to_selection()))


@app.get("/system/status")
async def get_status(
    catalog_service: CatalogService = Depends(get_catalog_service),
    quote_service: QuoteService = Depends(get_quote_service),
):
    settings = get_settings()
    return {
        "engine_active": True,
        "data_dir": str(settings.data_dir),
        "catalog": catalog_service.get_stats(),
        "quotes": quote_service.get_stats(),
    }
