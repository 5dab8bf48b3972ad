"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of every balance change and status flip
2. Debugging capability when an AI flow misbehaves
3. Correlation of the steps of one user action

The audit logger:
- Is async so callers can await it alongside storage calls
- Never raises; a logging failure must not undo a user action
- Supports correlation IDs to trace related events
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from payright.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Writes each AuditEvent as one structured log line, at the level
    matching its severity.
    """

    def __init__(self, logger: Optional[Any] = None):
        """
        Initialize audit logger.

        Args:
            logger: structlog-style logger. Defaults to the "payright.audit" logger.
        """
        self._logger = logger or structlog.get_logger("payright.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Logging must never break the calling action
            return False

        return True

    async def log_charges_detected(
        self,
        source: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful charge detection."""
        await self.log(AuditEventBuilder.charges_detected(
            source=source,
            count=count,
            correlation_id=correlation_id,
        ))

    async def log_alternatives_suggested(
        self,
        subscription_name: str,
        alternative_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.alternatives_suggested(
            subscription_name=subscription_name,
            alternative_count=alternative_count,
            correlation_id=correlation_id,
        ))

    async def log_renewal_predicted(
        self,
        subscription_name: str,
        predicted_date: str,
        confidence: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.renewal_predicted(
            subscription_name=subscription_name,
            predicted_date=predicted_date,
            confidence=confidence,
            correlation_id=correlation_id,
        ))

    async def log_ai_flow_failed(
        self,
        flow: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed AI flow (empty output, bad JSON, schema mismatch)."""
        await self.log(AuditEventBuilder.ai_flow_failed(
            flow=flow,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_input_rejected(
        self,
        flow: str,
        messages: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.input_rejected(
            flow=flow,
            messages=messages,
            correlation_id=correlation_id,
        ))

    async def log_validation_warning(
        self,
        vendor: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_warning(
            vendor=vendor,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_funds_added(
        self,
        user_id: str,
        amount: str,
        new_balance: str,
        transaction_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.funds_added(
            user_id=user_id,
            amount=amount,
            new_balance=new_balance,
            transaction_id=transaction_id,
        ))

    async def log_charge(
        self,
        user_id: str,
        subscription_id: str,
        vendor: str,
        amount: str,
        balance: str,
        success: bool,
    ) -> None:
        """Log a charge attempt; balance is the balance after the attempt."""
        if success:
            event = AuditEventBuilder.charge_succeeded(
                user_id=user_id,
                subscription_id=subscription_id,
                vendor=vendor,
                amount=amount,
                new_balance=balance,
            )
        else:
            event = AuditEventBuilder.charge_failed(
                user_id=user_id,
                subscription_id=subscription_id,
                vendor=vendor,
                amount=amount,
                balance=balance,
            )
        await self.log(event)

    async def log_subscriptions_replaced(
        self,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.subscriptions_replaced(
            count=count,
            correlation_id=correlation_id,
        ))

    async def log_status_changed(
        self,
        subscription_id: str,
        vendor: str,
        new_status: str,
    ) -> None:
        await self.log(AuditEventBuilder.status_changed(
            subscription_id=subscription_id,
            vendor=vendor,
            new_status=new_status,
        ))

    async def log_subscription_deleted(
        self,
        subscription_id: str,
        vendor: str,
    ) -> None:
        await self.log(AuditEventBuilder.subscription_deleted(
            subscription_id=subscription_id,
            vendor=vendor,
        ))

    async def log_subscription_updated(
        self,
        subscription_id: str,
        fields: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.subscription_updated(
            subscription_id=subscription_id,
            fields=fields,
        ))

    async def log_storage_error(self, key: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.storage_error(
            key=key,
            error_message=error_message,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a bank data sync).
    Pass it through all subsequent operations.
    """
    return uuid4()
