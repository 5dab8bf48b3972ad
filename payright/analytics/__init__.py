"""
Analytics Package

Spend breakdowns, status trends, notifications and CSV export,
all computed from already-loaded data.
"""

from payright.analytics.calculator import (
    monthly_spend_breakdown,
    normalized_monthly_cost,
    spend_by_category,
    status_trends,
    total_monthly_spend,
)
from payright.analytics.export import (
    transactions_to_csv,
    write_transactions_csv,
)
from payright.analytics.notifications import (
    DUE_SOON_DAYS,
    UNUSED_THRESHOLD_DAYS,
    build_notifications,
    unused_alerts,
)

__all__ = [
    # Spend
    "monthly_spend_breakdown",
    "normalized_monthly_cost",
    "spend_by_category",
    "status_trends",
    "total_monthly_spend",
    # Notifications
    "DUE_SOON_DAYS",
    "UNUSED_THRESHOLD_DAYS",
    "build_notifications",
    "unused_alerts",
    # Export
    "transactions_to_csv",
    "write_transactions_csv",
]
