"""
frontend/pricing.py

Subscription pricing for the billing flow.

All amounts are integers in kobo (1/100 naira), the unit the payment gateway
expects. `calculate_price` is pure and total: quotes are validated by the
SubscriptionQuote model before they get here.

Two rule sets existed historically (checkout vs. the pricing widget). The
checkout rules are canonical; the widget rules are kept as PRICING_WIDGET_RULES
so they can still be evaluated explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from frontend.models import BillingCycle, PlanTier, SubscriptionQuote


MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class PlanRates:
    """Per-plan prices (kobo) and seat limits. None means unlimited."""
    name: str
    base: int
    per_asset: int
    per_user: int
    max_assets: Optional[int] = None
    max_users: Optional[int] = None


@dataclass(frozen=True)
class PricingRules:
    rates: Dict[PlanTier, PlanRates]
    free_assets: int = 1
    free_users: int = 1
    annual_discount: Decimal = Decimal("0.15")


DEFAULT_PRICING_RULES = PricingRules(
    rates={
        PlanTier.starter: PlanRates("Starter", base=500_000, per_asset=20_000, per_user=100_000, max_assets=100, max_users=3),
        PlanTier.professional: PlanRates("Professional", base=1_500_000, per_asset=15_000, per_user=80_000, max_assets=1000),
        PlanTier.enterprise: PlanRates("Enterprise", base=5_000_000, per_asset=10_000, per_user=50_000),
    },
    free_assets=1,
    free_users=1,
    annual_discount=Decimal("0.15"),
)

PRICING_WIDGET_RULES = PricingRules(
    rates={
        PlanTier.starter: PlanRates("Starter", base=900, per_asset=10, per_user=200, max_assets=100, max_users=3),
        PlanTier.professional: PlanRates("Professional", base=2900, per_asset=5, per_user=150, max_assets=1000),
        PlanTier.enterprise: PlanRates("Enterprise", base=9900, per_asset=2, per_user=100),
    },
    free_assets=10,
    free_users=1,
    annual_discount=Decimal("0.20"),
)

PLAN_FEATURES: Dict[PlanTier, List[str]] = {
    PlanTier.starter: [
        "Asset tracking & management",
        "Basic reporting",
        "Email support",
        "Mobile app access",
    ],
    PlanTier.professional: [
        "Everything in Starter",
        "Advanced reporting & analytics",
        "Custom fields & forms",
        "API access",
        "Priority support",
    ],
    PlanTier.enterprise: [
        "Everything in Professional",
        "Advanced integrations",
        "Custom branding",
        "Dedicated account manager",
        "On-premise deployment option",
    ],
}


@dataclass(frozen=True)
class PriceBreakdown:
    """Itemized price. `total` always equals calculate_price() for the same quote."""
    base: int
    assets: int
    users: int
    monthly_total: int
    months: int
    discount: int
    total: int
    line_items: List[str] = field(default_factory=list)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _monthly_parts(quote: SubscriptionQuote, rules: PricingRules) -> tuple:
    rates = rules.rates[PlanTier(quote.plan)]
    assets = 0
    if quote.asset_count > rules.free_assets:
        assets = (quote.asset_count - rules.free_assets) * rates.per_asset
    users = 0
    if quote.user_count > rules.free_users:
        users = (quote.user_count - rules.free_users) * rates.per_user
    return rates.base, assets, users


def annualize(monthly_total: int, rules: PricingRules = DEFAULT_PRICING_RULES) -> int:
    """Twelve months of `monthly_total` with the annual discount applied."""
    factor = Decimal(MONTHS_PER_YEAR) * (Decimal(1) - rules.annual_discount)
    return _round_half_up(Decimal(monthly_total) * factor)


def calculate_price(quote: SubscriptionQuote, rules: PricingRules = DEFAULT_PRICING_RULES) -> int:
    """
    Price of a subscription in kobo.

    monthly = base + billable assets * per_asset + billable users * per_user,
    where only units above the free allotment are billable. Annual billing
    charges twelve months less the annual discount. Never negative.
    """
    base, assets, users = _monthly_parts(quote, rules)
    monthly_total = base + assets + users
    if BillingCycle(quote.billing_cycle) == BillingCycle.annual:
        return max(0, annualize(monthly_total, rules))
    return max(0, monthly_total)


def price_breakdown(quote: SubscriptionQuote, rules: PricingRules = DEFAULT_PRICING_RULES) -> PriceBreakdown:
    """Itemize a quote for display on the checkout page."""
    base, assets, users = _monthly_parts(quote, rules)
    monthly_total = base + assets + users
    annual = BillingCycle(quote.billing_cycle) == BillingCycle.annual
    months = MONTHS_PER_YEAR if annual else 1
    total = calculate_price(quote, rules)
    discount = monthly_total * months - total if annual else 0

    rates = rules.rates[PlanTier(quote.plan)]
    line_items = [f"{rates.name} base: {format_amount(base)}"]
    if assets:
        line_items.append(f"{quote.asset_count - rules.free_assets} extra assets: {format_amount(assets)}")
    if users:
        line_items.append(f"{quote.user_count - rules.free_users} extra users: {format_amount(users)}")
    if discount:
        line_items.append(f"Annual discount ({rules.annual_discount * 100:.0f}%): -{format_amount(discount)}")

    return PriceBreakdown(
        base=base,
        assets=assets,
        users=users,
        monthly_total=monthly_total,
        months=months,
        discount=discount,
        total=total,
        line_items=line_items,
    )


def clamp_to_plan_limits(quote: SubscriptionQuote, rules: PricingRules = DEFAULT_PRICING_RULES) -> SubscriptionQuote:
    """Lower asset/user counts that exceed the plan's limits (used when switching plans)."""
    rates = rules.rates[PlanTier(quote.plan)]
    update = {}
    if rates.max_assets is not None and quote.asset_count > rates.max_assets:
        update["asset_count"] = rates.max_assets
    if rates.max_users is not None and quote.user_count > rates.max_users:
        update["user_count"] = rates.max_users
    if not update:
        return quote
    return quote.model_copy(update=update)


def get_plan_features(plan: PlanTier) -> List[str]:
    return list(PLAN_FEATURES.get(PlanTier(plan), []))


def get_plan_details(plan: str, rules: PricingRules = DEFAULT_PRICING_RULES) -> dict:
    """
    Pricing and features for a plan.

    Raises:
        ValueError: If the plan name is unknown
    """
    try:
        tier = PlanTier(plan)
    except ValueError:
        raise ValueError(f"Invalid plan: {plan}") from None
    rates = rules.rates[tier]
    return {
        "name": tier.value,
        "display_name": rates.name,
        "base_price": rates.base,
        "per_asset_price": rates.per_asset,
        "per_user_price": rates.per_user,
        "max_assets": rates.max_assets,
        "max_users": rates.max_users,
        "features": get_plan_features(tier),
    }


def format_amount(amount_in_kobo: int) -> str:
    """Format kobo as naira, e.g. 123450 -> "₦1,234.50"."""
    sign = "-" if amount_in_kobo < 0 else ""
    naira = Decimal(abs(amount_in_kobo)) / 100
    return f"{sign}₦{naira:,.2f}"
