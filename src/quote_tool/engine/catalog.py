"""
Catalog data model: products, pricing plans, pricing options and add-ons.

Catalog records are parsed once at the store boundary. Amounts are coerced
to non-negative floats so that one malformed record never breaks pricing.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Frequency(str, Enum):
    """Billing cadence of a price, add-on or custom requirement."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"

    @classmethod
    def parse(cls, value: Any) -> Optional['Frequency']:
        """Case-insensitive lookup; unknown or empty values give None."""
        if value is None:
            return None
        if isinstance(value, Frequency):
            return value
        text = str(value).strip().lower().replace('_', '-').replace(' ', '-')
        if text in ('onetime', 'one-off'):
            text = 'one-time'
        for member in cls:
            if member.value == text:
                return member
        return None

    @property
    def label(self) -> str:
        return "One-time" if self is Frequency.ONE_TIME else self.value.capitalize()


def parse_amount(value: Any) -> float:
    """
    Parse a money amount leniently.

    None, blanks, non-numeric text, NaN and infinities all parse to 0.
    Negative amounts are clamped to 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(str(value).strip().replace(',', ''))
    except ValueError:
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return max(0.0, amount)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _pick(data: dict, *keys, default=None):
    """Return the first present key; accepts snake_case and camelCase spellings."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class PricingOption:
    """One price of a plan at a given billing frequency."""
    id: str
    frequency: str
    price: float = 0.0

    def to_dict(self) -> dict:
        return {"id": self.id, "frequency": self.frequency, "price": self.price}

    @classmethod
    def from_dict(cls, data: dict) -> 'PricingOption':
        return cls(
            id=_text(data.get('id')),
            frequency=_text(data.get('frequency')),
            price=parse_amount(data.get('price')),
        )


@dataclass
class PricingPlan:
    """A named pricing tier offering one price per billing frequency."""
    id: str
    name: str
    features: str = ""
    pricing_options: list[PricingOption] = field(default_factory=list)

    def find_option(self, frequency: Optional[str]) -> Optional[PricingOption]:
        """Option whose frequency equals ``frequency`` exactly."""
        for option in self.pricing_options:
            if option.frequency == frequency:
                return option
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "features": self.features,
            "pricingOptions": [o.to_dict() for o in self.pricing_options],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PricingPlan':
        options = _pick(data, 'pricing_options', 'pricingOptions', default=[])
        return cls(
            id=_text(data.get('id')),
            name=_text(data.get('name')),
            features=_text(data.get('features')),
            pricing_options=[PricingOption.from_dict(o) for o in options if isinstance(o, dict)],
        )


@dataclass
class AddOn:
    """Optional extra cost attachable to a product configuration."""
    id: str
    name: str
    description: str = ""
    additional_cost: float = 0.0
    type: str = ""
    frequency: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "additional_cost": self.additional_cost,
            "type": self.type,
            "frequency": self.frequency,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AddOn':
        return cls(
            id=_text(data.get('id')),
            name=_text(data.get('name')),
            description=_text(data.get('description')),
            additional_cost=parse_amount(_pick(data, 'additional_cost', 'additionalCost')),
            type=_text(data.get('type')),
            frequency=_text(data.get('frequency')),
        )


@dataclass
class Product:
    """A sellable product with its pricing plans and add-ons."""
    id: str
    name: str
    category: str = ""
    description: str = ""
    website_link: str = ""
    key_features: str = ""
    setup_fee: float = 0.0
    pricing_plans: list[PricingPlan] = field(default_factory=list)
    add_ons: list[AddOn] = field(default_factory=list)

    def find_plan(self, plan_id: Any) -> Optional[PricingPlan]:
        plan_id = _text(plan_id)
        for plan in self.pricing_plans:
            if plan.id == plan_id:
                return plan
        return None

    def find_add_on(self, add_on_id: Any) -> Optional[AddOn]:
        add_on_id = _text(add_on_id)
        for add_on in self.add_ons:
            if add_on.id == add_on_id:
                return add_on
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "website_link": self.website_link,
            "key_features": self.key_features,
            "setup_fee": self.setup_fee,
            "pricing_plans": [p.to_dict() for p in self.pricing_plans],
            "add_ons": [a.to_dict() for a in self.add_ons],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Product':
        plans = _pick(data, 'pricing_plans', 'pricingPlans', default=[])
        add_ons = _pick(data, 'add_ons', 'addOns', 'custom_elements', default=[])
        return cls(
            id=_text(data.get('id')),
            name=_text(data.get('name')),
            category=_text(data.get('category')),
            description=_text(data.get('description')),
            website_link=_text(_pick(data, 'website_link', 'websiteLink')),
            key_features=_text(_pick(data, 'key_features', 'keyFeatures')),
            setup_fee=parse_amount(_pick(data, 'setup_fee', 'setupFee')),
            pricing_plans=[PricingPlan.from_dict(p) for p in plans if isinstance(p, dict)],
            add_ons=[AddOn.from_dict(a) for a in add_ons if isinstance(a, dict)],
        )


class Catalog:
    """Ordered, read-only view over products with lookup by id."""

    def __init__(self, products: Optional[list[Product]] = None):
        self.products: list[Product] = list(products or [])
        self._by_id: dict[str, Product] = {}
        for product in self.products:
            # First entry wins on duplicate ids
            self._by_id.setdefault(str(product.id), product)

    def get(self, product_id: Any) -> Optional[Product]:
        return self._by_id.get(_text(product_id))

    def categories(self) -> list[str]:
        seen = []
        for product in self.products:
            category = product.category or "Uncategorized"
            if category not in seen:
                seen.append(category)
        return seen

    def __iter__(self):
        return iter(self.products)

    def __len__(self) -> int:
        return len(self.products)


def validate_product(product: Product) -> list[str]:
    """Return a list of problems with a product record (empty when valid)."""
    errors = []

    if not product.name.strip():
        errors.append("Name is required")

    plan_ids = set()
    for plan in product.pricing_plans:
        if plan.id in plan_ids:
            errors.append(f"Duplicate pricing plan id '{plan.id}'")
        plan_ids.add(plan.id)

        if not plan.name.strip():
            errors.append(f"Pricing plan '{plan.id}' needs a name")

        frequencies = set()
        for option in plan.pricing_options:
            frequency = Frequency.parse(option.frequency)
            if frequency is None:
                errors.append(f"Plan '{plan.name}' has unknown frequency '{option.frequency}'")
            key = frequency or option.frequency.strip().lower()
            if key in frequencies:
                errors.append(f"Plan '{plan.name}' lists frequency '{option.frequency}' more than once")
            frequencies.add(key)

    add_on_ids = set()
    for add_on in product.add_ons:
        if add_on.id in add_on_ids:
            errors.append(f"Duplicate add-on id '{add_on.id}'")
        add_on_ids.add(add_on.id)

    return errors
