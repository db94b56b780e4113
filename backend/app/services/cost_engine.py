"""Cost derivation engine - pure calculation logic without side effects"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP, getcontext, localcontext
from typing import Any, Dict, Mapping, Optional, Union

# Set a reasonable precision for financial calculations
getcontext().prec = 28

Number = Union[Decimal, float, int, str]

CENT = Decimal("0.01")

# Forwarder-buy service: 10% commission on the item price plus a flat
# 10 CNY, billed in PHP at the forwarder's own rate, plus a flat QC fee.
FORWARDER_BUY_COMMISSION_RATE = Decimal("0.1")
FORWARDER_BUY_FLAT_FEE_CNY = Decimal("10")
FORWARDER_BUY_QC_FEE_PHP = Decimal("150")

# Markup within this many PHP of the target range counts as "near"
MARKUP_NEAR_MARGIN = Decimal("100")


def to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    """Convert a stored or submitted number to Decimal via its string form"""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round to the cent, half up; precision is widened so large amounts still quantize"""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _or_zero(value: Optional[Number]) -> Decimal:
    return to_decimal(value) if value is not None else Decimal("0")


@dataclass(frozen=True)
class CostInputs:
    """Snapshot of the pricing and shipping inputs of one item"""
    price_cny: Decimal
    exchange_rate_used: Decimal
    forwarder_rate_per_kg: Decimal
    has_local_shipping: bool = False
    local_shipping_cny: Optional[Decimal] = None
    weight_kg: Optional[Decimal] = None
    is_forwarder_buy: bool = False
    forwarder_buy_rate_used: Optional[Decimal] = None
    lalamove_fee: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CostInputs":
        """Build inputs from a record dict; unknown keys are ignored"""
        return cls(
            price_cny=to_decimal(data["price_cny"]),
            exchange_rate_used=to_decimal(data["exchange_rate_used"]),
            forwarder_rate_per_kg=to_decimal(data["forwarder_rate_per_kg"]),
            has_local_shipping=bool(data.get("has_local_shipping") or False),
            local_shipping_cny=to_decimal(data.get("local_shipping_cny")),
            weight_kg=to_decimal(data.get("weight_kg")),
            is_forwarder_buy=bool(data.get("is_forwarder_buy") or False),
            forwarder_buy_rate_used=to_decimal(data.get("forwarder_buy_rate_used")),
            lalamove_fee=to_decimal(data.get("lalamove_fee")),
            selling_price=to_decimal(data.get("selling_price")),
        )


@dataclass(frozen=True)
class DerivedCosts:
    """Derived monetary fields; None means the field does not apply"""
    price_php: Decimal
    local_shipping_php: Optional[Decimal]
    forwarder_fee: Optional[Decimal]
    forwarder_buy_fee_php: Optional[Decimal]
    qc_service_fee_php: Optional[Decimal]
    total_cost: Decimal
    profit: Optional[Decimal]

    def as_dict(self) -> Dict[str, Optional[Decimal]]:
        return asdict(self)


@dataclass(frozen=True)
class LiveCosts:
    """Form preview figures; every field is a number, zero when not applicable"""
    price_php: Decimal
    local_shipping_php: Decimal
    forwarder_fee: Decimal
    forwarder_buy_fee_cny: Decimal
    forwarder_buy_fee_php: Decimal
    qc_service_fee_php: Decimal
    total_cost: Decimal
    profit: Decimal
    markup_percent: Decimal

    def as_dict(self) -> Dict[str, Decimal]:
        return asdict(self)


@dataclass
class MarkupTargets:
    """Target profit range (PHP) a sale should land in"""
    min_markup: Decimal = Decimal("700")
    max_markup: Decimal = Decimal("850")

    def __post_init__(self) -> None:
        """Validate the range is ordered"""
        self.min_markup = to_decimal(self.min_markup)
        self.max_markup = to_decimal(self.max_markup)
        if self.min_markup > self.max_markup:
            raise ValueError("Markup targets must satisfy: min <= max")


class CostEngine:
    """Pure cost derivation engine - no side effects, deterministic"""

    @staticmethod
    def _forwarder_buy_fee_cny(price_cny: Decimal) -> Decimal:
        return price_cny * FORWARDER_BUY_COMMISSION_RATE + FORWARDER_BUY_FLAT_FEE_CNY

    @staticmethod
    def compute_derived_fields(inputs: CostInputs) -> DerivedCosts:
        """
        Derive every stored monetary field of an item.

        Each quantity is rounded to the cent on its own before it feeds the
        total. Fields whose trigger is off (no local shipping, no weight, no
        forwarder buy, no selling price) come back as None, not zero.
        """
        rate = inputs.exchange_rate_used
        price_php = round_money(inputs.price_cny * rate)

        local_shipping_php = None
        if inputs.has_local_shipping and inputs.local_shipping_cny:
            local_shipping_php = round_money(inputs.local_shipping_cny * rate)

        forwarder_fee = None
        if inputs.weight_kg is not None and inputs.weight_kg > 0:
            forwarder_fee = round_money(inputs.weight_kg * inputs.forwarder_rate_per_kg)

        forwarder_buy_fee_php = None
        qc_service_fee_php = None
        if inputs.is_forwarder_buy:
            buy_rate = inputs.forwarder_buy_rate_used or Decimal("0")
            forwarder_buy_fee_php = round_money(
                CostEngine._forwarder_buy_fee_cny(inputs.price_cny) * buy_rate
            )
            qc_service_fee_php = round_money(FORWARDER_BUY_QC_FEE_PHP)

        zero = Decimal("0")
        total_cost = round_money(
            price_php
            + (local_shipping_php or zero)
            + (forwarder_fee or zero)
            + (inputs.lalamove_fee or zero)
            + (forwarder_buy_fee_php or zero)
            + (qc_service_fee_php or zero)
        )

        profit = None
        if inputs.selling_price is not None:
            profit = round_money(inputs.selling_price - total_cost)

        return DerivedCosts(
            price_php=price_php,
            local_shipping_php=local_shipping_php,
            forwarder_fee=forwarder_fee,
            forwarder_buy_fee_php=forwarder_buy_fee_php,
            qc_service_fee_php=qc_service_fee_php,
            total_cost=total_cost,
            profit=profit,
        )

    # --- Preview helpers ---

    @staticmethod
    def compute_live_costs(
        price_cny: Number = 0,
        exchange_rate: Number = 0,
        has_local_shipping: bool = False,
        local_shipping_cny: Number = 0,
        weight_kg: Number = 0,
        forwarder_rate_per_kg: Number = 0,
        is_forwarder_buy: bool = False,
        forwarder_buy_rate_used: Number = 0,
        lalamove_fee: Number = 0,
        selling_price: Number = 0,
    ) -> LiveCosts:
        """
        Running totals for an item form that is still being filled in.

        Unlike compute_derived_fields, intermediate values are kept unrounded
        and only the reported figures are rounded, and absent inputs read as 0.
        """
        zero = Decimal("0")
        price_cny = _or_zero(price_cny)
        rate = _or_zero(exchange_rate)
        selling = _or_zero(selling_price)

        price_php = price_cny * rate
        local_php = _or_zero(local_shipping_cny) * rate if has_local_shipping else zero
        weight = _or_zero(weight_kg)
        forwarder_fee = weight * _or_zero(forwarder_rate_per_kg) if weight > 0 else zero

        buy_fee_cny = CostEngine._forwarder_buy_fee_cny(price_cny) if is_forwarder_buy else zero
        buy_fee_php = buy_fee_cny * _or_zero(forwarder_buy_rate_used) if is_forwarder_buy else zero
        qc_fee = FORWARDER_BUY_QC_FEE_PHP if is_forwarder_buy else zero

        total = price_php + local_php + forwarder_fee + _or_zero(lalamove_fee) + buy_fee_php + qc_fee
        profit = selling - total if selling > 0 else zero
        markup_percent = (selling - total) / total * 100 if total > 0 and selling > 0 else zero

        return LiveCosts(
            price_php=round_money(price_php),
            local_shipping_php=round_money(local_php),
            forwarder_fee=round_money(forwarder_fee),
            forwarder_buy_fee_cny=round_money(buy_fee_cny),
            forwarder_buy_fee_php=round_money(buy_fee_php),
            qc_service_fee_php=round_money(qc_fee),
            total_cost=round_money(total),
            profit=round_money(profit),
            markup_percent=round_money(markup_percent),
        )


# --- Decision layer functions ---

def classify_markup(markup: Number, targets: MarkupTargets) -> str:
    """
    Place a profit amount against the target range

    Returns:
        "in_range" if min <= markup <= max
        "near_range" if within MARKUP_NEAR_MARGIN of the range
        "out_of_range" otherwise
    """
    markup = to_decimal(markup)
    if targets.min_markup <= markup <= targets.max_markup:
        return "in_range"
    if targets.min_markup - MARKUP_NEAR_MARGIN <= markup <= targets.max_markup + MARKUP_NEAR_MARGIN:
        return "near_range"
    return "out_of_range"
