"""Engine subpackage - catalog, quote selection and pricing logic."""
from .catalog import Catalog, Product, PricingPlan, PricingOption, AddOn, Frequency
from .models import (
    QuoteSelection, ProductConfiguration, CustomRequirement, Discount, DiscountType,
    Breakdown, PeriodCosts, QuoteResult,
)
from .pricing_engine import PricingEngine, compute_total_breakdown, compute_cost_by_period

__all__ = [
    'Catalog', 'Product', 'PricingPlan', 'PricingOption', 'AddOn', 'Frequency',
    'QuoteSelection', 'ProductConfiguration', 'CustomRequirement', 'Discount', 'DiscountType',
    'Breakdown', 'PeriodCosts', 'QuoteResult',
    'PricingEngine', 'compute_total_breakdown', 'compute_cost_by_period',
]
