"""
Data models for the pricing engine.

Uses dataclasses for the quote selection (what was chosen) and for the
results the engine produces (breakdown, period costs, summary lines).
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .catalog import parse_amount


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

    @classmethod
    def parse(cls, value: Any) -> 'DiscountType':
        """Anything that is not "percentage" is treated as a fixed amount."""
        if isinstance(value, DiscountType):
            return value
        if str(value or "").strip().lower() == cls.PERCENTAGE.value:
            return cls.PERCENTAGE
        return cls.FIXED


def discount_amount(base: float, discount_type: DiscountType, value: float) -> float:
    """Money removed by a discount against ``base``; percentages above 100 are honored."""
    if discount_type is DiscountType.PERCENTAGE:
        return base * value / 100
    return value


@dataclass
class ProductConfiguration:
    """One product attached to a quote: plan, frequency, add-ons and discount."""
    product_id: str
    plan_id: str
    frequency: str
    selected_add_on_ids: list[str] = field(default_factory=list)
    include_setup_cost: bool = False
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_frequency: Optional[str] = None  # informational, used for display only
    discount_value: float = 0.0

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "planId": self.plan_id,
            "frequency": self.frequency,
            "selectedAddons": list(self.selected_add_on_ids),
            "includeSetupCost": self.include_setup_cost,
            "discountType": self.discount_type.value,
            "discountFreq": self.discount_frequency,
            "discountValue": self.discount_value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ProductConfiguration':
        add_ons = data.get('selected_add_on_ids', data.get('selectedAddons')) or []
        return cls(
            product_id=str(data.get('product_id', data.get('productId', '')) or ''),
            plan_id=str(data.get('plan_id', data.get('planId', '')) or ''),
            frequency=str(data.get('frequency') or ''),
            selected_add_on_ids=[str(a) for a in add_ons],
            include_setup_cost=bool(data.get('include_setup_cost', data.get('includeSetupCost', False))),
            discount_type=DiscountType.parse(data.get('discount_type', data.get('discountType'))),
            discount_frequency=data.get('discount_frequency', data.get('discountFreq')) or None,
            discount_value=parse_amount(data.get('discount_value', data.get('discountValue'))),
        )


@dataclass
class CustomRequirement:
    """A bespoke line item that is not tied to the catalog."""
    name: str
    description: str = ""
    price: float = 0.0
    frequency: str = "one-time"
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_frequency: Optional[str] = None
    discount_value: float = 0.0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "frequency": self.frequency,
            "discountType": self.discount_type.value,
            "discountFreq": self.discount_frequency,
            "discountValue": self.discount_value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CustomRequirement':
        return cls(
            name=str(data.get('name') or ''),
            description=str(data.get('description') or ''),
            price=parse_amount(data.get('price')),
            frequency=str(data.get('frequency') or ''),
            discount_type=DiscountType.parse(data.get('discount_type', data.get('discountType'))),
            discount_frequency=data.get('discount_frequency', data.get('discountFreq')) or None,
            discount_value=parse_amount(data.get('discount_value', data.get('discountValue'))),
        )


@dataclass
class Discount:
    """Quote-level discount, applied after all line items."""
    type: DiscountType
    value: float
    description: str = ""
    discount_frequency: Optional[str] = None  # targets a period bucket when set

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "value": self.value,
            "description": self.description,
            "discountFreq": self.discount_frequency,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Discount':
        return cls(
            type=DiscountType.parse(data.get('type')),
            value=parse_amount(data.get('value')),
            description=str(data.get('description') or ''),
            discount_frequency=data.get('discount_frequency', data.get('discountFreq')) or None,
        )


@dataclass
class QuoteSelection:
    """Everything chosen on a quote that affects its price."""
    product_configurations: list[ProductConfiguration] = field(default_factory=list)
    custom_requirements: list[CustomRequirement] = field(default_factory=list)
    discounts: list[Discount] = field(default_factory=list)

    def without(self, section: str, index: int) -> 'QuoteSelection':
        """Copy of the selection with one configuration, requirement or discount removed."""
        items = {
            'product_configurations': list(self.product_configurations),
            'custom_requirements': list(self.custom_requirements),
            'discounts': list(self.discounts),
        }
        if section not in items:
            raise ValueError(f"Unknown selection section '{section}'")
        del items[section][index]
        return QuoteSelection(**items)

    def to_dict(self) -> dict:
        return {
            "productConfigurations": [c.to_dict() for c in self.product_configurations],
            "customRequirements": [r.to_dict() for r in self.custom_requirements],
            "discounts": [d.to_dict() for d in self.discounts],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'QuoteSelection':
        configs = data.get('product_configurations', data.get('productConfigurations')) or []
        requirements = data.get('custom_requirements', data.get('customRequirements')) or []
        return cls(
            product_configurations=[ProductConfiguration.from_dict(c) for c in configs],
            custom_requirements=[CustomRequirement.from_dict(r) for r in requirements],
            discounts=[Discount.from_dict(d) for d in data.get('discounts') or []],
        )


@dataclass
class Breakdown:
    """Categorized subtotals of a quote; ``discounts`` is money removed."""
    products: float = 0.0
    setup_costs: float = 0.0
    addons: float = 0.0
    custom_requirements: float = 0.0
    discounts: float = 0.0
    total: float = 0.0


@dataclass
class PeriodCosts:
    """Projected cost grouped by billing cadence."""
    one_time: float = 0.0
    monthly: float = 0.0
    quarterly: float = 0.0
    yearly: float = 0.0


@dataclass
class TraceStep:
    """A single step in the pricing trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class LineItem:
    """A row of the cost summary table."""
    section: str  # "Product Configuration", "Custom Requirements", "Overall Discounts"
    name: str
    description: str
    frequency: str
    amount: float
    is_discount: bool = False


@dataclass
class QuoteResult:
    """Complete result of pricing a quote selection."""
    breakdown: Breakdown
    periods: PeriodCosts
    lines: list[LineItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        if warning not in self.warnings:
            self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)
