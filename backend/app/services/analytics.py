"""Profit analytics - reducers over item rows, no database access"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from app.services.cost_engine import round_money, to_decimal
from app.services.lifecycle import CLOSED_STATUSES, SOLD_STATUSES

PROFIT_BUCKET_SIZE = 100
TOP_LIMIT = 10


def round2(value) -> float:
    """Round a sum to the cent (half up) and return it as float"""
    return float(round_money(to_decimal(value)))


def _sold(items: Iterable[Any]) -> List[Any]:
    return [item for item in items if item.status in SOLD_STATUSES]


def _month_key(moment: datetime) -> str:
    return f"{moment.year}-{moment.month:02d}"


def dashboard_stats(items: List[Any], now: datetime) -> Dict[str, Any]:
    """Headline numbers for the current calendar month"""
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    sold_this_month = [
        item for item in _sold(items)
        if item.sold_date and item.sold_date >= start_of_month
    ]
    in_pipeline = [item for item in items if item.status not in CLOSED_STATUSES]

    revenue = sum(item.selling_price or 0 for item in sold_this_month)
    profit = sum(item.profit or 0 for item in sold_this_month)
    avg_profit = profit / len(sold_this_month) if sold_this_month else 0

    return {
        "total_items": len(items),
        "in_pipeline": len(in_pipeline),
        "sold_this_month": len(sold_this_month),
        "revenue_this_month": round2(revenue),
        "profit_this_month": round2(profit),
        "avg_profit_this_month": round2(avg_profit),
    }


def monthly_profit(items: List[Any]) -> List[Dict[str, Any]]:
    monthly: Dict[str, Dict[str, float]] = defaultdict(
        lambda: {"revenue": 0, "cost": 0, "profit": 0, "count": 0}
    )
    for item in _sold(items):
        if not item.sold_date:
            continue
        bucket = monthly[_month_key(item.sold_date)]
        bucket["revenue"] += item.selling_price or 0
        bucket["cost"] += item.total_cost or 0
        bucket["profit"] += item.profit or 0
        bucket["count"] += 1

    return [
        {
            "month": month,
            "revenue": round2(data["revenue"]),
            "cost": round2(data["cost"]),
            "profit": round2(data["profit"]),
            "count": data["count"],
        }
        for month, data in sorted(monthly.items())
    ]


def _group_profit(items: Iterable[Any], key: str) -> Dict[str, Dict[str, float]]:
    groups: Dict[str, Dict[str, float]] = defaultdict(lambda: {"profit": 0, "count": 0, "revenue": 0})
    for item in items:
        group = groups[getattr(item, key)]
        group["profit"] += item.profit or 0
        group["count"] += 1
        group["revenue"] += item.selling_price or 0
    return groups


def profit_by_category(items: List[Any]) -> List[Dict[str, Any]]:
    groups = _group_profit(_sold(items), "category")
    return [
        {
            "category": category.value if hasattr(category, "value") else category,
            "profit": round2(data["profit"]),
            "count": data["count"],
            "revenue": round2(data["revenue"]),
        }
        for category, data in groups.items()
    ]


def profit_by_seller(items: List[Any]) -> List[Dict[str, Any]]:
    groups = _group_profit(_sold(items), "seller")
    rows = [
        {
            "seller": seller,
            "profit": round2(data["profit"]),
            "count": data["count"],
            "revenue": round2(data["revenue"]),
        }
        for seller, data in groups.items()
    ]
    return sorted(rows, key=lambda row: row["profit"], reverse=True)


COST_BREAKDOWN_FIELDS = {
    "item_price": "price_php",
    "local_shipping": "local_shipping_php",
    "forwarder_fee": "forwarder_fee",
    "forwarder_buy_fee": "forwarder_buy_fee_php",
    "qc_service_fee": "qc_service_fee_php",
    "lalamove_fee": "lalamove_fee",
}


def cost_breakdown(items: List[Any]) -> Dict[str, float]:
    """Average of each cost component per sold item"""
    sold = _sold(items)
    if not sold:
        return {name: 0.0 for name in COST_BREAKDOWN_FIELDS}
    return {
        name: round2(sum(getattr(item, field) or 0 for item in sold) / len(sold))
        for name, field in COST_BREAKDOWN_FIELDS.items()
    }


def top_batches(items: List[Any], limit: int = TOP_LIMIT) -> List[Dict[str, Any]]:
    groups: Dict[str, Dict[str, float]] = defaultdict(lambda: {"profit": 0, "count": 0})
    for item in _sold(items):
        if not item.batch:
            continue
        groups[item.batch]["profit"] += item.profit or 0
        groups[item.batch]["count"] += 1
    rows = [
        {"batch": batch, "profit": round2(data["profit"]), "count": data["count"]}
        for batch, data in groups.items()
    ]
    return sorted(rows, key=lambda row: row["profit"], reverse=True)[:limit]


def top_customers(items: List[Any], limit: int = TOP_LIMIT) -> List[Dict[str, Any]]:
    groups: Dict[str, Dict[str, float]] = defaultdict(lambda: {"total_spent": 0, "count": 0})
    for item in _sold(items):
        if not item.customer_name:
            continue
        groups[item.customer_name]["total_spent"] += item.selling_price or 0
        groups[item.customer_name]["count"] += 1
    rows = [
        {"customer": customer, "total_spent": round2(data["total_spent"]), "count": data["count"]}
        for customer, data in groups.items()
    ]
    return sorted(rows, key=lambda row: row["total_spent"], reverse=True)[:limit]


def profit_distribution(items: List[Any], bucket_size: int = PROFIT_BUCKET_SIZE) -> List[Dict[str, Any]]:
    """Count of sold items per profit bucket, e.g. "100-200" """
    buckets: Dict[int, int] = defaultdict(int)
    for item in _sold(items):
        if item.profit is None:
            continue
        buckets[int(item.profit // bucket_size) * bucket_size] += 1
    return [
        {"range": f"{start}-{start + bucket_size}", "count": count}
        for start, count in sorted(buckets.items())
    ]


def cumulative_profit(items: List[Any]) -> List[Dict[str, Any]]:
    sold = sorted(
        (item for item in _sold(items) if item.sold_date and item.profit is not None),
        key=lambda item: item.sold_date,
    )
    running = 0
    series = []
    for item in sold:
        running += item.profit
        series.append({"date": item.sold_date, "profit": round2(running), "item_name": item.name})
    return series


def items_sold_by_month(items: List[Any]) -> List[Dict[str, Any]]:
    monthly: Dict[str, int] = defaultdict(int)
    for item in _sold(items):
        if item.sold_date:
            monthly[_month_key(item.sold_date)] += 1
    return [{"month": month, "count": count} for month, count in sorted(monthly.items())]


def _best(totals: Dict[str, float], label: str) -> Optional[Dict[str, Any]]:
    if not totals:
        return None
    name, profit = max(totals.items(), key=lambda pair: pair[1])
    return {label: name, "profit": round2(profit)}


def all_time_stats(items: List[Any]) -> Dict[str, Any]:
    sold = _sold(items)
    total_revenue = sum(item.selling_price or 0 for item in sold)
    total_profit = sum(item.profit or 0 for item in sold)
    avg_profit = total_profit / len(sold) if sold else 0

    month_profit: Dict[str, float] = defaultdict(float)
    seller_profit: Dict[str, float] = defaultdict(float)
    for item in sold:
        if item.sold_date:
            month_profit[_month_key(item.sold_date)] += item.profit or 0
        seller_profit[item.seller] += item.profit or 0

    return {
        "total_revenue": round2(total_revenue),
        "total_profit": round2(total_profit),
        "total_sold": len(sold),
        "avg_profit": round2(avg_profit),
        "best_month": _best(month_profit, "month"),
        "best_seller": _best(seller_profit, "seller"),
    }
