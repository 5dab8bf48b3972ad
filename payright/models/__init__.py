"""
Data Models Package

This package contains all Pydantic models used in PayRight.
All data flowing through the system must conform to these schemas.
"""

from payright.models.subscription import (
    ActionResult,
    AlternativeSuggestion,
    DetectedCharge,
    RenewalPrediction,
    Subscription,
    SubscriptionCategory,
    SubscriptionStatus,
    quantize_money,
)
from payright.models.wallet import (
    ChargeResult,
    Transaction,
    TransactionType,
    Wallet,
)
from payright.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from payright.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from payright.models.analytics import (
    CategorySpend,
    MonthlyCostItem,
    Notification,
    NotificationCategory,
    NotificationSeverity,
    StatusTrend,
)

__all__ = [
    # Subscription models
    "ActionResult",
    "AlternativeSuggestion",
    "DetectedCharge",
    "RenewalPrediction",
    "Subscription",
    "SubscriptionCategory",
    "SubscriptionStatus",
    "quantize_money",
    # Wallet models
    "ChargeResult",
    "Transaction",
    "TransactionType",
    "Wallet",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Analytics models
    "CategorySpend",
    "MonthlyCostItem",
    "Notification",
    "NotificationCategory",
    "NotificationSeverity",
    "StatusTrend",
]
