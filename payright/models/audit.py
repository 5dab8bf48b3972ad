"""
Audit Models for PayRight

Every significant action in the system is logged for audit purposes.
The transaction history tells the user what happened to their money;
the audit trail tells a developer what the system did and why.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # AI flows
    CHARGES_DETECTED = "charges_detected"
    ALTERNATIVES_SUGGESTED = "alternatives_suggested"
    RENEWAL_PREDICTED = "renewal_predicted"
    AI_FLOW_FAILED = "ai_flow_failed"
    INPUT_REJECTED = "input_rejected"
    VALIDATION_WARNING = "validation_warning"

    # Wallet
    FUNDS_ADDED = "funds_added"
    CHARGE_SUCCEEDED = "charge_succeeded"
    CHARGE_FAILED = "charge_failed"

    # Subscription store
    SUBSCRIPTIONS_REPLACED = "subscriptions_replaced"
    STATUS_CHANGED = "status_changed"
    SUBSCRIPTION_DELETED = "subscription_deleted"
    SUBSCRIPTION_UPDATED = "subscription_updated"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    entity_id is a string because subscription and transaction IDs
    are timestamp-based strings, not UUIDs.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'subscription', 'wallet', 'flow')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one sync of bank data)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.funds_added("defaultUser", "50.00", "150.00")
        event = AuditEventBuilder.status_changed(sub_id, "Netflix", "paused")
    """

    @staticmethod
    def charges_detected(
        source: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHARGES_DETECTED,
            entity_type="flow",
            correlation_id=correlation_id,
            description=f"Detected {count} recurring charges from {source}",
            details={"source": source, "count": count},
            is_user_action=True,
        )

    @staticmethod
    def alternatives_suggested(
        subscription_name: str,
        alternative_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALTERNATIVES_SUGGESTED,
            entity_type="flow",
            correlation_id=correlation_id,
            description=f"Suggested {alternative_count} alternatives for {subscription_name}",
            details={
                "subscription_name": subscription_name,
                "alternative_count": alternative_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def renewal_predicted(
        subscription_name: str,
        predicted_date: str,
        confidence: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RENEWAL_PREDICTED,
            entity_type="flow",
            correlation_id=correlation_id,
            description=f"Predicted renewal for {subscription_name}: {predicted_date}",
            details={
                "subscription_name": subscription_name,
                "predicted_date": predicted_date,
                "confidence": confidence,
            },
        )

    @staticmethod
    def ai_flow_failed(
        flow: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_FLOW_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="flow",
            correlation_id=correlation_id,
            description=f"AI flow failed: {flow}",
            details={"flow": flow},
            error_message=error_message,
        )

    @staticmethod
    def input_rejected(
        flow: str,
        messages: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="flow",
            correlation_id=correlation_id,
            description=f"Input rejected for {flow}",
            details={"flow": flow, "messages": messages},
            is_user_action=True,
        )

    @staticmethod
    def validation_warning(
        vendor: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_WARNING,
            severity=AuditSeverity.WARNING,
            entity_type="detected_charge",
            correlation_id=correlation_id,
            description=f"Detected charge for {vendor} has {len(issues)} issues",
            details={"vendor": vendor, "issues": issues},
        )

    @staticmethod
    def funds_added(
        user_id: str,
        amount: str,
        new_balance: str,
        transaction_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FUNDS_ADDED,
            entity_type="wallet",
            entity_id=user_id,
            description=f"Added {amount} to wallet",
            details={
                "amount": amount,
                "new_balance": new_balance,
                "transaction_id": transaction_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def charge_succeeded(
        user_id: str,
        subscription_id: str,
        vendor: str,
        amount: str,
        new_balance: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHARGE_SUCCEEDED,
            entity_type="wallet",
            entity_id=user_id,
            description=f"Charged {amount} for {vendor}",
            details={
                "subscription_id": subscription_id,
                "amount": amount,
                "new_balance": new_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def charge_failed(
        user_id: str,
        subscription_id: str,
        vendor: str,
        amount: str,
        balance: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHARGE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="wallet",
            entity_id=user_id,
            description=f"Insufficient funds to charge {amount} for {vendor}",
            details={
                "subscription_id": subscription_id,
                "amount": amount,
                "balance": balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def subscriptions_replaced(count: int, correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTIONS_REPLACED,
            entity_type="subscription_list",
            correlation_id=correlation_id,
            description=f"Subscription list replaced with {count} entries",
            details={"count": count},
        )

    @staticmethod
    def status_changed(
        subscription_id: str,
        vendor: str,
        new_status: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATUS_CHANGED,
            entity_type="subscription",
            entity_id=subscription_id,
            description=f"{vendor} set to {new_status}",
            details={"vendor": vendor, "new_status": new_status},
            is_user_action=True,
        )

    @staticmethod
    def subscription_deleted(subscription_id: str, vendor: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_DELETED,
            entity_type="subscription",
            entity_id=subscription_id,
            description=f"Subscription removed: {vendor}",
            details={"vendor": vendor},
            is_user_action=True,
        )

    @staticmethod
    def subscription_updated(
        subscription_id: str,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_UPDATED,
            entity_type="subscription",
            entity_id=subscription_id,
            description=f"Subscription updated: {', '.join(fields)}",
            details={"fields": fields},
        )

    @staticmethod
    def storage_error(
        key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            entity_id=key,
            description=f"Storage error on {key}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
