"""
Analytics Models

Read-only views computed from the subscription list and the
transaction history. Nothing here is stored.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_serializer


class MonthlyCostItem(BaseModel):
    """One subscription's cost expressed per month."""

    subscription_id: str
    vendor: str
    normalized_monthly_cost: Decimal

    @field_serializer("normalized_monthly_cost", when_used="json")
    def serialize_cost(self, v: Decimal) -> float:
        return float(v)


class CategorySpend(BaseModel):
    """Monthly spend for one category."""

    category: str
    amount: Decimal

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)


class StatusTrend(BaseModel):
    """Activations and pauses recorded in one calendar month."""

    month: str = Field(..., description="YYYY-MM")
    activations: int = 0
    pauses: int = 0


class NotificationCategory(str, Enum):
    DUE_SOON = "due_soon"
    PAST_DUE = "past_due"
    USAGE_ALERT = "usage_alert"
    STATUS_UPDATE = "status_update"


class NotificationSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """A derived notice about one subscription."""

    id: str
    subscription_id: str
    category: NotificationCategory
    title: str
    message: str
    date: Optional[str] = Field(
        default=None,
        description="Due date (YYYY-MM-DD) for date-based notices"
    )
    severity: NotificationSeverity
