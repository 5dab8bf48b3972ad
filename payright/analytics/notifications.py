"""
Notifications and Alerts

Derived, never stored: rebuilt from the subscription list each time
they are shown.

Dates are compared as calendar days. A subscription due today is
"due in 0 days", not past due.
"""

from datetime import date, datetime, timezone
from typing import Iterable, Optional

from payright.models.analytics import (
    Notification,
    NotificationCategory,
    NotificationSeverity,
)
from payright.models.subscription import Subscription, SubscriptionStatus


DUE_SOON_DAYS = 7
UNUSED_THRESHOLD_DAYS = 30

_SEVERITY_ORDER = {
    NotificationSeverity.ERROR: 0,
    NotificationSeverity.WARNING: 1,
}


def _parse_due_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _display_date(d: date) -> str:
    # e.g. "Jun 5, 2024"
    return f"{d:%b} {d.day}, {d.year}"


def build_notifications(
    subscriptions: Iterable[Subscription],
    today: Optional[date] = None,
    due_soon_days: int = DUE_SOON_DAYS,
) -> list[Notification]:
    """
    Build the notification list.

    Order: errors, then warnings, then everything else; within a group,
    dated notices by date (earliest first) before undated ones.
    """
    today = today or date.today()
    notifications = []

    for sub in subscriptions:
        due = _parse_due_date(sub.next_due_date)

        if sub.is_active and due is not None:
            if due < today:
                notifications.append(Notification(
                    id=f"{sub.id}-past-due",
                    subscription_id=sub.id,
                    category=NotificationCategory.PAST_DUE,
                    title=f"Past Due: {sub.vendor}",
                    message=(
                        f"Your subscription for {sub.vendor} was due on "
                        f"{_display_date(due)}. Please renew or manage it."
                    ),
                    date=sub.next_due_date,
                    severity=NotificationSeverity.ERROR,
                ))

            days_until_due = (due - today).days
            if 0 <= days_until_due <= due_soon_days:
                plural = "" if days_until_due == 1 else "s"
                notifications.append(Notification(
                    id=f"{sub.id}-due-soon",
                    subscription_id=sub.id,
                    category=NotificationCategory.DUE_SOON,
                    title=f"Upcoming: {sub.vendor}",
                    message=(
                        f"Your subscription for {sub.vendor} is due in "
                        f"{days_until_due} day{plural} on {_display_date(due)}."
                    ),
                    date=sub.next_due_date,
                    severity=NotificationSeverity.WARNING,
                ))

        if sub.usage_count == 0 and sub.is_active:
            notifications.append(Notification(
                id=f"{sub.id}-usage-alert",
                subscription_id=sub.id,
                category=NotificationCategory.USAGE_ALERT,
                title=f"Low Usage: {sub.vendor}",
                message=(
                    f"AI suggests your subscription for {sub.vendor} might be "
                    f"unused. Consider reviewing it."
                ),
                severity=NotificationSeverity.INFO,
            ))

        if sub.status == SubscriptionStatus.PAUSED:
            notifications.append(Notification(
                id=f"{sub.id}-status-paused",
                subscription_id=sub.id,
                category=NotificationCategory.STATUS_UPDATE,
                title=f"Paused: {sub.vendor}",
                message=f"Your subscription for {sub.vendor} is currently paused.",
                severity=NotificationSeverity.INFO,
            ))

    def sort_key(n: Notification):
        dated = _parse_due_date(n.date)
        return (
            _SEVERITY_ORDER.get(n.severity, 2),
            0 if dated else 1,
            dated or date.min,
        )

    notifications.sort(key=sort_key)
    return notifications


def unused_alerts(
    subscriptions: Iterable[Subscription],
    now: Optional[datetime] = None,
    threshold_days: int = UNUSED_THRESHOLD_DAYS,
) -> list[Subscription]:
    """Subscriptions marked unused for more than threshold_days full days."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    alerts = []
    for sub in subscriptions:
        if not sub.is_unused or sub.unused_since is None:
            continue
        since = sub.unused_since
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        if (now - since).days > threshold_days:
            alerts.append(sub)
    return alerts
