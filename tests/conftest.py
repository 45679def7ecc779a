import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from quote_tool.engine.catalog import AddOn, Catalog, PricingOption, PricingPlan, Product
from quote_tool.services.catalog_service import CatalogService
from quote_tool.services.quote_service import QuoteService


def make_product(product_id="1", setup_fee=0.0, prices=None, add_ons=None, name="Widget"):
    """One product with a single plan '1' priced per frequency in ``prices``."""
    prices = prices if prices is not None else {"Monthly": 100.0}
    options = [PricingOption(id=str(i), frequency=f, price=p) for i, (f, p) in enumerate(prices.items(), start=1)]
    return Product(
        id=product_id,
        name=name,
        category="Software",
        key_features="Fast",
        setup_fee=setup_fee,
        pricing_plans=[PricingPlan(id="1", name="Basic", pricing_options=options)],
        add_ons=add_ons or [],
    )


@pytest.fixture
def catalog():
    return Catalog([
        make_product(
            "1",
            setup_fee=50.0,
            prices={"Monthly": 100.0, "Quarterly": 270.0, "Yearly": 1000.0},
            add_ons=[
                AddOn(id="1", name="Support", additional_cost=20.0, type="Service", frequency="Monthly"),
                AddOn(id="2", name="Migration", additional_cost=300.0, type="Service", frequency="One-time"),
                AddOn(id="3", name="Storage", additional_cost=10.0, type="Storage", frequency=""),
                AddOn(id="4", name="Odd", additional_cost=5.0, type="Misc", frequency="Weekly"),
            ],
        ),
    ])


@pytest.fixture
def catalog_service(tmp_path):
    return CatalogService(tmp_path / "products.csv", tmp_path / "quote_config.csv")


@pytest.fixture
def quote_service(tmp_path):
    return QuoteService(tmp_path / "quotes.csv", tmp_path / "counters.json")
