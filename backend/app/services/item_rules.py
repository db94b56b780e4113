"""Validation and derivation applied to an item record before it is written"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from app.models.item import ItemCategory
from app.services.cost_engine import CostEngine, CostInputs, to_decimal
from app.services.errors import ItemValidationError

CLOTHES_SIZES = ("S", "M", "L", "XL")

# Inputs a derivation depends on; only these feed CostInputs
COST_INPUT_FIELDS = (
    "price_cny",
    "exchange_rate_used",
    "has_local_shipping",
    "local_shipping_cny",
    "weight_kg",
    "forwarder_rate_per_kg",
    "is_forwarder_buy",
    "forwarder_buy_rate_used",
    "lalamove_fee",
    "selling_price",
)

SALE_FIELDS = ("selling_price", "lalamove_fee", "customer_name")

NUMBER_FIELDS = (
    "price_cny",
    "exchange_rate_used",
    "local_shipping_cny",
    "weight_kg",
    "forwarder_rate_per_kg",
    "forwarder_buy_rate_used",
    "lalamove_fee",
    "selling_price",
)


def parse_category(value: Union[str, ItemCategory, None]) -> ItemCategory:
    try:
        return ItemCategory(value)
    except ValueError:
        raise ItemValidationError(f"Invalid category: {value}", field="category")


def normalize_size(category: ItemCategory, size: Optional[str]) -> Optional[str]:
    """Trim, uppercase clothes sizes, and drop sizes for categories without one"""
    trimmed = size.strip() if size else ""
    if not trimmed:
        return None
    if category == ItemCategory.WATCHES_ACCESSORIES:
        return None
    if category == ItemCategory.CLOTHES:
        return trimmed.upper()
    return trimmed


def _is_positive_number(text: str) -> bool:
    try:
        value = Decimal(text)
    except InvalidOperation:
        return False
    return value.is_finite() and value > 0


def validate_finite(data: Mapping[str, Any], fields: Iterable[str] = NUMBER_FIELDS) -> None:
    """Numeric inputs that are present must be finite numbers"""
    for key in fields:
        value = data.get(key)
        if value is None:
            continue
        try:
            number = to_decimal(value)
        except InvalidOperation:
            number = None
        if number is None or not number.is_finite():
            raise ItemValidationError(f"{key} must be a finite number", field=key)


def validate_base_fields(data: Dict[str, Any]) -> None:
    """Required fields every item must carry"""
    if not (data.get("name") or "").strip():
        raise ItemValidationError("Item name is required", field="name")
    if not (data.get("seller") or "").strip():
        raise ItemValidationError("Seller is required", field="seller")

    price = to_decimal(data.get("price_cny"))
    if price is None or price <= 0:
        raise ItemValidationError("Price (CNY) must be greater than 0", field="price_cny")
    rate = to_decimal(data.get("exchange_rate_used"))
    if rate is None or rate <= 0:
        raise ItemValidationError("Exchange rate must be greater than 0", field="exchange_rate_used")
    if data.get("forwarder_rate_per_kg") is None:
        raise ItemValidationError("Forwarder rate per kg is required", field="forwarder_rate_per_kg")
    if data.get("order_date") is None:
        raise ItemValidationError("Order date is required", field="order_date")


def validate_item_rules(
    category: ItemCategory,
    size: Optional[str],
    is_forwarder_buy: bool,
    forwarder_buy_rate_used: Optional[Any],
) -> None:
    """Category-specific size rules and the forwarder-buy rate requirement"""
    if category == ItemCategory.SHOES:
        if not size or not _is_positive_number(size):
            raise ItemValidationError("Shoes must use a valid EU size", field="size")

    if category == ItemCategory.CLOTHES:
        if not size or size not in CLOTHES_SIZES:
            raise ItemValidationError(
                f"Clothes size must be one of {', '.join(CLOTHES_SIZES)}", field="size"
            )

    if is_forwarder_buy:
        rate = to_decimal(forwarder_buy_rate_used)
        if rate is None or rate.is_nan() or rate <= 0:
            raise ItemValidationError(
                "Forwarder buy service rate is required", field="forwarder_buy_rate_used"
            )


def _to_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def build_item_record(data: Dict[str, Any], include_sale: bool = True) -> Dict[str, Any]:
    """
    Validate a full (already merged) record and return it with every
    normalized and derived field filled in.

    Forwarder-buy off clears the buy rate together with its fees. With
    ``include_sale`` False (personal items) sale inputs are ignored and the
    sale-side derived fields are left out of the result.
    """
    record = dict(data)

    validate_finite(record)
    validate_base_fields(record)
    category = parse_category(record.get("category"))
    size = normalize_size(category, record.get("size"))
    is_forwarder_buy = bool(record.get("is_forwarder_buy") or False)
    forwarder_buy_rate_used = record.get("forwarder_buy_rate_used") if is_forwarder_buy else None

    validate_item_rules(category, size, is_forwarder_buy, forwarder_buy_rate_used)

    record.update(
        category=category,
        size=size,
        has_local_shipping=bool(record.get("has_local_shipping") or False),
        is_forwarder_buy=is_forwarder_buy,
        forwarder_buy_rate_used=forwarder_buy_rate_used,
    )

    cost_fields = {key: record.get(key) for key in COST_INPUT_FIELDS}
    if not include_sale:
        cost_fields["selling_price"] = None
        cost_fields["lalamove_fee"] = None
    derived = CostEngine.compute_derived_fields(CostInputs.from_mapping(cost_fields))

    derived_fields = {key: _to_float(value) for key, value in derived.as_dict().items()}
    if not include_sale:
        derived_fields.pop("total_cost")
        derived_fields.pop("profit")
        for key in SALE_FIELDS:
            record.pop(key, None)
    record.update(derived_fields)
    return record
