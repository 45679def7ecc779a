"""
Pricing Engine - folds a catalog and a quote selection into cost results.

Two independent passes over the same inputs:
- Total breakdown: categorized subtotals with discounts netted against a
  running total, in a fixed order (products, custom requirements, overall).
- Cost by period: the same items bucketed by billing cadence, with overall
  discounts targeted at a bucket by their discount frequency.

The engine is pure. It never mutates its inputs, performs no I/O and does
not raise for bad data: malformed amounts were already parsed to 0 and
dangling references contribute nothing.
"""
import logging
from typing import Callable, Iterable, Optional, Union

from .catalog import Catalog, Frequency, Product
from .models import (
    Breakdown,
    CustomRequirement,
    DiscountType,
    LineItem,
    PeriodCosts,
    ProductConfiguration,
    QuoteResult,
    QuoteSelection,
    discount_amount,
)

logger = logging.getLogger(__name__)

TraceFn = Callable[[str, str, Optional[str]], None]

_RECURRING_BUCKETS = {
    Frequency.MONTHLY: 'monthly',
    Frequency.QUARTERLY: 'quarterly',
    Frequency.YEARLY: 'yearly',
}

_ALL_BUCKETS = dict(_RECURRING_BUCKETS, **{Frequency.ONE_TIME: 'one_time'})


def _recurring_bucket(frequency: Optional[str]) -> str:
    """Monthly, quarterly or yearly bucket; anything else lands in monthly."""
    return _RECURRING_BUCKETS.get(Frequency.parse(frequency), 'monthly')


def _money(amount: float) -> str:
    return f"{amount:,.2f}"


def _no_trace(step: str, description: str, value: Optional[str] = None):
    pass


class PricingEngine:
    """
    Prices quote selections against a catalog snapshot.

    Resolution per product configuration:
    1. Product by id (missing: the configuration is skipped entirely)
    2. Plan by id, then the plan's option for the configuration's frequency
       (missing: the plan contributes 0, setup and add-ons still count)
    3. Setup fee when requested, selected add-ons by id
    4. The configuration's own discount, based on its own plan price
    """

    def __init__(self, catalog: Union[Catalog, Iterable[Product]]):
        self.catalog = catalog if isinstance(catalog, Catalog) else Catalog(list(catalog))

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def plan_price(self, product: Product, config: ProductConfiguration) -> Optional[float]:
        """Price of the configured plan at the configured frequency, or None."""
        plan = product.find_plan(config.plan_id)
        if plan is None:
            return None
        option = plan.find_option(config.frequency)
        if option is None:
            return None
        return option.price

    @staticmethod
    def item_discount(base: float, discount_type: DiscountType, value: float) -> float:
        """Per-item discount; zero unless the discount value is positive."""
        if value > 0:
            return discount_amount(base, discount_type, value)
        return 0.0

    def check_references(self, selection: QuoteSelection) -> list[str]:
        """Describe every dangling product, plan, frequency or add-on reference."""
        warnings = []
        for config in selection.product_configurations:
            product = self.catalog.get(config.product_id)
            if product is None:
                warnings.append(f"Product '{config.product_id}' not found in catalog; configuration skipped")
                continue

            plan = product.find_plan(config.plan_id)
            if plan is None:
                warnings.append(f"Plan '{config.plan_id}' not found on product '{product.name}'")
            elif plan.find_option(config.frequency) is None:
                warnings.append(
                    f"Plan '{plan.name}' on product '{product.name}' has no '{config.frequency}' price"
                )

            for add_on_id in config.selected_add_on_ids:
                if product.find_add_on(add_on_id) is None:
                    warnings.append(f"Add-on '{add_on_id}' not found on product '{product.name}'")

        for warning in warnings:
            logger.debug(warning)
        return warnings

    # ------------------------------------------------------------------
    # Total breakdown
    # ------------------------------------------------------------------

    def compute_total_breakdown(self, selection: QuoteSelection) -> Breakdown:
        """Categorized subtotals and the floored grand total."""
        breakdown, _ = self._total_pass(selection, _no_trace)
        return breakdown

    def _total_pass(self, selection: QuoteSelection, trace: TraceFn) -> tuple[Breakdown, list[float]]:
        """
        Run the ordered accumulation.

        Returns the breakdown and the amount removed by each overall
        discount, in sequence order.
        """
        breakdown = Breakdown()
        total = 0.0

        for config in selection.product_configurations:
            product = self.catalog.get(config.product_id)
            if product is None:
                continue

            plan_price = self.plan_price(product, config) or 0.0
            breakdown.products += plan_price
            total += plan_price
            trace("Plan Price", f"{product.name} ({config.frequency or 'no frequency'})", _money(plan_price))

            if config.include_setup_cost and product.setup_fee:
                breakdown.setup_costs += product.setup_fee
                total += product.setup_fee
                trace("Setup Fee", product.name, _money(product.setup_fee))

            for add_on_id in config.selected_add_on_ids:
                add_on = product.find_add_on(add_on_id)
                if add_on is None:
                    continue
                breakdown.addons += add_on.additional_cost
                total += add_on.additional_cost
                trace("Add-on", f"{add_on.name} on {product.name}", _money(add_on.additional_cost))

            if config.discount_value > 0:
                amount = self.item_discount(plan_price, config.discount_type, config.discount_value)
                breakdown.discounts += amount
                total -= amount
                trace("Product Discount", f"{product.name} ({config.discount_type.value})", f"-{_money(amount)}")

        for requirement in selection.custom_requirements:
            breakdown.custom_requirements += requirement.price
            total += requirement.price
            trace("Custom Requirement", requirement.name or "Custom Requirement", _money(requirement.price))

            if requirement.discount_value > 0:
                amount = self.item_discount(requirement.price, requirement.discount_type, requirement.discount_value)
                breakdown.discounts += amount
                total -= amount
                trace("Requirement Discount", requirement.name or "Custom Requirement", f"-{_money(amount)}")

        overall_amounts = []
        for discount in selection.discounts:
            # Each overall discount sees the already-discounted running total
            amount = discount_amount(total, discount.type, discount.value)
            breakdown.discounts += amount
            total -= amount
            overall_amounts.append(amount)
            trace("Overall Discount", discount.description or discount.type.value, f"-{_money(amount)}")

        breakdown.total = max(0.0, total)
        trace("Total", "Floored at zero", _money(breakdown.total))
        return breakdown, overall_amounts

    # ------------------------------------------------------------------
    # Cost by period
    # ------------------------------------------------------------------

    def compute_cost_by_period(self, selection: QuoteSelection) -> PeriodCosts:
        """Cost per billing cadence, with overall discounts targeted by frequency."""
        periods = PeriodCosts()

        # Setup fees are always one-time
        for config in selection.product_configurations:
            product = self.catalog.get(config.product_id)
            if product is not None and config.include_setup_cost and product.setup_fee:
                periods.one_time += product.setup_fee

        for requirement in selection.custom_requirements:
            if self._is_one_time(requirement):
                periods.one_time += requirement.price

        for config in selection.product_configurations:
            product = self.catalog.get(config.product_id)
            if product is None:
                continue

            plan_price = self.plan_price(product, config)
            if plan_price is not None:
                final_price = plan_price - self.item_discount(
                    plan_price, config.discount_type, config.discount_value
                )
                self._add(periods, _recurring_bucket(config.frequency), final_price)

            for add_on_id in config.selected_add_on_ids:
                add_on = product.find_add_on(add_on_id)
                if add_on is None:
                    continue
                frequency = Frequency.parse(add_on.frequency or config.frequency)
                bucket = _ALL_BUCKETS.get(frequency) or _recurring_bucket(config.frequency)
                self._add(periods, bucket, add_on.additional_cost)

        for requirement in selection.custom_requirements:
            if self._is_one_time(requirement):
                continue
            final_cost = requirement.price - self.item_discount(
                requirement.price, requirement.discount_type, requirement.discount_value
            )
            self._add(periods, _recurring_bucket(requirement.frequency), final_cost)

        self._clamp(periods)

        for discount in selection.discounts:
            target = _ALL_BUCKETS.get(Frequency.parse(discount.discount_frequency))

            if target is not None:
                current = getattr(periods, target)
                self._add(periods, target, -discount_amount(current, discount.type, discount.value))
            elif discount.type is DiscountType.PERCENTAGE:
                self._spread_percentage(periods, discount.value)
            else:
                periods.one_time -= discount.value

            self._clamp(periods)

        return periods

    @staticmethod
    def _is_one_time(requirement: CustomRequirement) -> bool:
        return not requirement.frequency or Frequency.parse(requirement.frequency) is Frequency.ONE_TIME

    @staticmethod
    def _add(periods: PeriodCosts, bucket: str, amount: float):
        setattr(periods, bucket, getattr(periods, bucket) + amount)

    @staticmethod
    def _clamp(periods: PeriodCosts):
        for bucket in ('one_time', 'monthly', 'quarterly', 'yearly'):
            setattr(periods, bucket, max(0.0, getattr(periods, bucket)))

    @staticmethod
    def _spread_percentage(periods: PeriodCosts, value: float):
        """Split a percentage discount over the recurring buckets by their share."""
        total_recurring = periods.monthly + periods.quarterly + periods.yearly
        if total_recurring <= 0:
            return
        total_discount = total_recurring * value / 100
        monthly_ratio = periods.monthly / total_recurring
        quarterly_ratio = periods.quarterly / total_recurring
        yearly_ratio = periods.yearly / total_recurring

        periods.monthly -= total_discount * monthly_ratio
        periods.quarterly -= total_discount * quarterly_ratio
        periods.yearly -= total_discount * yearly_ratio

    # ------------------------------------------------------------------
    # Summary lines and full result
    # ------------------------------------------------------------------

    def build_lines(self, selection: QuoteSelection, overall_amounts: Optional[list[float]] = None) -> list[LineItem]:
        """Rows of the cost summary table, in display order."""
        if overall_amounts is None:
            _, overall_amounts = self._total_pass(selection, _no_trace)

        lines = []
        section = "Product Configuration"
        for config in selection.product_configurations:
            product = self.catalog.get(config.product_id)
            if product is None:
                continue

            plan = product.find_plan(config.plan_id)
            plan_price = self.plan_price(product, config)
            resolved = plan is not None and plan_price is not None
            lines.append(LineItem(
                section=section,
                name=f"{product.name} - {plan.name}" if resolved else product.name,
                description=product.key_features,
                frequency=config.frequency if resolved else "",
                amount=plan_price or 0.0,
            ))

            if config.include_setup_cost and product.setup_fee > 0:
                lines.append(LineItem(section, "Setup Cost", "One-time setup", "One-time", product.setup_fee))

            for add_on_id in config.selected_add_on_ids:
                add_on = product.find_add_on(add_on_id)
                if add_on is not None:
                    lines.append(LineItem(section, add_on.name, add_on.type, add_on.frequency, add_on.additional_cost))

            amount = self.item_discount(plan_price or 0.0, config.discount_type, config.discount_value)
            if amount > 0:
                lines.append(LineItem(
                    section, "Discount", "",
                    config.discount_frequency or (config.frequency if resolved else ""),
                    amount, is_discount=True,
                ))

        section = "Custom Requirements"
        for requirement in selection.custom_requirements:
            lines.append(LineItem(
                section,
                requirement.name or "Custom Requirement",
                requirement.description,
                requirement.frequency or "One-time",
                requirement.price,
            ))
            amount = self.item_discount(requirement.price, requirement.discount_type, requirement.discount_value)
            if amount > 0:
                lines.append(LineItem(
                    section, "Discount", "",
                    requirement.discount_frequency or requirement.frequency or "One-time",
                    amount, is_discount=True,
                ))

        section = "Overall Discounts"
        for discount, amount in zip(selection.discounts, overall_amounts):
            lines.append(LineItem(
                section, "Discount", discount.description,
                discount.discount_frequency or "One-time",
                amount, is_discount=True,
            ))

        return lines

    def calculate(self, selection: QuoteSelection) -> QuoteResult:
        """
        Price a selection with full traceability.

        Returns a QuoteResult with the breakdown, period costs, summary
        lines, reference warnings and the accumulation trace.
        """
        result = QuoteResult(breakdown=Breakdown(), periods=PeriodCosts())

        for warning in self.check_references(selection):
            result.add_warning(warning)

        result.breakdown, overall_amounts = self._total_pass(selection, result.add_trace)
        result.periods = self.compute_cost_by_period(selection)
        result.lines = self.build_lines(selection, overall_amounts)
        return result


def compute_total_breakdown(catalog: Union[Catalog, Iterable[Product]], selection: QuoteSelection) -> Breakdown:
    """Categorized subtotals of ``selection`` priced against ``catalog``."""
    return PricingEngine(catalog).compute_total_breakdown(selection)


def compute_cost_by_period(catalog: Union[Catalog, Iterable[Product]], selection: QuoteSelection) -> PeriodCosts:
    """Period projection of ``selection`` priced against ``catalog``."""
    return PricingEngine(catalog).compute_cost_by_period(selection)
