"""
Spend Calculations

DESIGN DECISION: Analytics are DETERMINISTIC functions over data the
caller already loaded. They never touch storage and never call the model,
so every number shown to the user can be traced back to stored records.

Only monthly and yearly billing is normalized. Any other frequency
("weekly", "quarterly", free text) counts as zero rather than being
guessed at.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Iterable

from payright.models.analytics import CategorySpend, MonthlyCostItem, StatusTrend
from payright.models.subscription import (
    Subscription,
    SubscriptionCategory,
    quantize_money,
)
from payright.models.wallet import Transaction, TransactionType


ZERO = Decimal("0")


def normalized_monthly_cost(subscription: Subscription) -> Decimal:
    """
    Cost of a subscription per month, unrounded.

    monthly -> amount, yearly -> amount / 12, anything else -> 0.
    """
    frequency = (subscription.frequency or "").strip().lower()
    if frequency == "monthly":
        return subscription.amount
    if frequency == "yearly":
        return subscription.amount / 12
    return ZERO


def _active(subscriptions: Iterable[Subscription]) -> list[Subscription]:
    return [s for s in subscriptions if s.is_active]


def monthly_spend_breakdown(subscriptions: Iterable[Subscription]) -> list[MonthlyCostItem]:
    """Per-subscription monthly cost for active subscriptions, rounded to cents."""
    items = []
    for sub in _active(subscriptions):
        cost = normalized_monthly_cost(sub)
        if cost > 0:
            items.append(MonthlyCostItem(
                subscription_id=sub.id,
                vendor=sub.vendor,
                normalized_monthly_cost=quantize_money(cost),
            ))
    return items


def total_monthly_spend(subscriptions: Iterable[Subscription]) -> Decimal:
    """Sum of the rounded per-subscription monthly costs."""
    total = sum(
        (item.normalized_monthly_cost for item in monthly_spend_breakdown(subscriptions)),
        ZERO,
    )
    return quantize_money(total)


def spend_by_category(subscriptions: Iterable[Subscription]) -> list[CategorySpend]:
    """
    Monthly spend of active subscriptions per category.

    Uncategorized subscriptions count as Other. Sorted by amount,
    largest first; categories that round to zero are dropped.
    """
    totals: dict[str, Decimal] = {}
    for sub in _active(subscriptions):
        cost = normalized_monthly_cost(sub)
        if cost <= 0:
            continue
        category = (sub.category or SubscriptionCategory.OTHER).value
        totals[category] = totals.get(category, ZERO) + cost

    rows = [
        CategorySpend(category=name, amount=quantize_money(value))
        for name, value in totals.items()
    ]
    rows = [row for row in rows if row.amount > 0]
    rows.sort(key=lambda row: row.amount, reverse=True)
    return rows


def status_trends(
    transactions: Iterable[Transaction],
    months: int = 12,
) -> list[StatusTrend]:
    """
    Activations and pauses per calendar month, oldest first.

    Reads the related detail of status_change transactions
    ("Status of X set to active" / "... paused"). Only the last
    `months` months that have any status change are returned.
    """
    buckets: dict[str, StatusTrend] = OrderedDict()
    for txn in transactions:
        if txn.type != TransactionType.STATUS_CHANGE:
            continue

        month = txn.timestamp.strftime("%Y-%m")
        trend = buckets.setdefault(month, StatusTrend(month=month))

        # Only the trailing status counts; vendor names may contain either word
        detail = (txn.related_detail or "").strip().lower()
        if detail.endswith("set to active"):
            trend.activations += 1
        elif detail.endswith("set to paused"):
            trend.pauses += 1

    ordered = sorted(buckets.values(), key=lambda t: t.month)
    if months <= 0:
        return []
    return ordered[-months:]
