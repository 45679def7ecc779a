"""
Pydantic request models for the API and their conversion to engine types.
"""
from typing import Optional

from pydantic import BaseModel, Field

from ..engine.catalog import Product
from ..engine.models import QuoteSelection
from ..lifecycle import Quote
from ..services.catalog_service import CompanyProfile


class PricingOptionIn(BaseModel):
    id: str = ""
    frequency: str
    price: float = Field(default=0.0, ge=0)


class PricingPlanIn(BaseModel):
    id: str = ""
    name: str
    features: str = ""
    pricing_options: list[PricingOptionIn] = []


class AddOnIn(BaseModel):
    id: str = ""
    name: str
    description: str = ""
    additional_cost: float = Field(default=0.0, ge=0)
    type: str = ""
    frequency: str = ""


class ProductIn(BaseModel):
    """Request model for creating or replacing a product."""
    name: str
    category: str = ""
    description: str = ""
    website_link: str = ""
    key_features: str = ""
    setup_fee: float = Field(default=0.0, ge=0)
    pricing_plans: list[PricingPlanIn] = []
    add_ons: list[AddOnIn] = []

    def to_product(self) -> Product:
        data = self.model_dump()
        # Plans and options get sequential ids when none are supplied
        for plan_index, plan in enumerate(data['pricing_plans'], start=1):
            plan['id'] = plan['id'] or str(plan_index)
            for option_index, option in enumerate(plan['pricing_options'], start=1):
                option['id'] = option['id'] or str(option_index)
        for add_on_index, add_on in enumerate(data['add_ons'], start=1):
            add_on['id'] = add_on['id'] or str(add_on_index)
        return Product.from_dict(dict(data, id=""))


class ProductConfigurationIn(BaseModel):
    product_id: str
    plan_id: str
    frequency: str
    selected_add_on_ids: list[str] = []
    include_setup_cost: bool = False
    discount_type: str = "percentage"
    discount_frequency: Optional[str] = None
    discount_value: float = Field(default=0.0, ge=0)


class CustomRequirementIn(BaseModel):
    name: str = ""
    description: str = ""
    price: float = Field(default=0.0, ge=0)
    frequency: str = "one-time"
    discount_type: str = "percentage"
    discount_frequency: Optional[str] = None
    discount_value: float = Field(default=0.0, ge=0)


class DiscountIn(BaseModel):
    type: str = "percentage"
    value: float = Field(default=0.0, ge=0)
    description: str = ""
    discount_frequency: Optional[str] = None


class SelectionIn(BaseModel):
    """The priced part of a quote."""
    product_configurations: list[ProductConfigurationIn] = []
    custom_requirements: list[CustomRequirementIn] = []
    discounts: list[DiscountIn] = []

    def to_selection(self) -> QuoteSelection:
        return QuoteSelection.from_dict(self.model_dump())


class QuoteIn(SelectionIn):
    """Request model for creating or editing a quote."""
    client_name: str = ""
    client_email: str = ""
    company_name: str = ""
    phone_number: str = ""
    quote_reference: str = ""
    project_timeline: str = ""
    additional_notes: str = ""

    def to_quote(self) -> Quote:
        selection = self.to_selection()
        return Quote(
            client_name=self.client_name,
            client_email=self.client_email,
            company_name=self.company_name,
            phone_number=self.phone_number,
            quote_reference=self.quote_reference,
            project_timeline=self.project_timeline,
            additional_notes=self.additional_notes,
            product_configurations=selection.product_configurations,
            custom_requirements=selection.custom_requirements,
            discounts=selection.discounts,
        )


class CompanyProfileIn(BaseModel):
    company_name: str
    company_email: str = ""
    phone: str = ""
    address: str = ""
    default_currency: str = "USD"
    default_tax_rate: float = Field(default=0.0, ge=0)
    terms_and_conditions: str = ""
    footer_message: str = ""
    validity_days: int = Field(default=30, gt=0)

    def to_profile(self) -> CompanyProfile:
        return CompanyProfile(**self.model_dump())
