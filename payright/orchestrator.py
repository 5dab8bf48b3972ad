"""
Main Orchestrator for PayRight

This module ties together all the components and defines the
user-facing actions:
1. Subscriptions (detect from bank/email text, suggest alternatives,
   predict renewal, pause/resume, mark unused, delete)
2. Wallet (add funds, charge a stored subscription, history, export)

DESIGN DECISION: Every action returns an ActionResult instead of raising.
The orchestrator is the one place exceptions are turned into the short
error strings the user sees; the message of the underlying exception is
passed through as-is. Every step is audited.
"""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog

from payright.agents import (
    AIFlowError,
    AIServiceError,
    AlternativesAgent,
    ChargeDetectionAgent,
    InputValidationError,
    RenewalAgent,
)
from payright.analytics import (
    build_notifications,
    spend_by_category,
    status_trends,
    total_monthly_spend,
    unused_alerts,
    write_transactions_csv,
)
from payright.audit import AuditLogger, create_correlation_id
from payright.config import get_settings
from payright.models.subscription import (
    ActionResult,
    DetectedCharge,
    SubscriptionStatus,
)
from payright.services import (
    InMemoryStorage,
    InvalidAmountError,
    JsonFileStorage,
    KeyValueStorageInterface,
    StorageError,
    SubscriptionService,
    WalletError,
    WalletService,
)
from payright.validation import SubscriptionValidator


logger = structlog.get_logger(__name__)


MOCK_BANK_DATA = """
      Transaction: Netflix Premium - $19.99 on 2024-06-15 for monthly streaming
      Transaction: Spotify Family Plan - $16.99 on 2024-06-10 for music service
      Transaction: AWS Cloud Services - $75.30 on 2024-06-01 for web hosting
      Transaction: Adobe Photoshop - $20.99 on 2024-06-20 (monthly subscription)
      Transaction: Zoom Pro Annual - $149.90 on 2024-01-05 (yearly video conferencing)
      Transaction: Audible - $14.95 on 2024-06-03 (audiobooks)
      Transaction: UnusedGymMembership - $39.99 on 2024-06-05 (gym access, never used)
      Transaction: YouTube Premium - $11.99 on 2024-05-28 for ad-free videos
      Transaction: iCloud Storage 200GB - $2.99 on 2024-06-12
    """


def _not_found(subscription_id: str) -> ActionResult:
    return ActionResult.failure(f"Subscription with ID {subscription_id} not found.")


async def _storage_failure(
    audit_logger: AuditLogger,
    error: StorageError,
) -> ActionResult:
    await audit_logger.log_storage_error(
        key=error.key or "unknown",
        error_message=str(error),
    )
    return ActionResult.failure(str(error))


class SubscriptionFlow:
    """
    Orchestrates the subscription actions.

    Flow for detection:
    1. Validate input (length, presence)
    2. Prompt the model, validate its JSON
    3. Semantic checks (warnings only)
    4. Replace the stored subscription list

    The model never writes to storage; only step 4 does.
    """

    def __init__(
        self,
        subscription_service: SubscriptionService,
        charge_agent: Optional[ChargeDetectionAgent] = None,
        alternatives_agent: Optional[AlternativesAgent] = None,
        renewal_agent: Optional[RenewalAgent] = None,
        validator: Optional[SubscriptionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._subscriptions = subscription_service
        self._charge_agent = charge_agent or ChargeDetectionAgent()
        self._alternatives_agent = alternatives_agent or AlternativesAgent()
        self._renewal_agent = renewal_agent or RenewalAgent()
        self._validator = validator or SubscriptionValidator()
        self._audit_logger = audit_logger or AuditLogger()

    async def _ai_failure(
        self,
        flow: str,
        error: Union[InputValidationError, AIFlowError],
        correlation_id: UUID,
    ) -> ActionResult:
        if isinstance(error, InputValidationError):
            await self._audit_logger.log_input_rejected(
                flow=flow,
                messages=error.messages,
                correlation_id=correlation_id,
            )
            return ActionResult.failure(str(error))

        if isinstance(error, AIServiceError):
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=error.message,
                correlation_id=correlation_id,
            )
        await self._audit_logger.log_ai_flow_failed(
            flow=flow,
            error_message=error.message,
            correlation_id=correlation_id,
        )
        return ActionResult.failure(error.message)

    async def detect_charges(
        self,
        bank_data: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """Detect subscriptions in bank text and make them the stored list."""
        return await self._detect(
            "bank",
            lambda: self._charge_agent.detect_from_bank_data(bank_data),
            correlation_id,
        )

    async def detect_charges_from_email(
        self,
        email_content: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """Detect subscriptions in email text and make them the stored list."""
        return await self._detect(
            "email",
            lambda: self._charge_agent.detect_from_email(email_content),
            correlation_id,
        )

    async def sync_mock_bank_data(self) -> ActionResult:
        """Run detection over the built-in sample statement."""
        return await self.detect_charges(MOCK_BANK_DATA)

    async def _detect(self, source, call, correlation_id) -> ActionResult:
        correlation_id = correlation_id or create_correlation_id()

        try:
            charges = await call()
        except (InputValidationError, AIFlowError) as e:
            return await self._ai_failure(f"detect_charges_{source}", e, correlation_id)

        await self._audit_logger.log_charges_detected(
            source=source,
            count=len(charges),
            correlation_id=correlation_id,
        )
        await self._report_warnings(charges, correlation_id)

        try:
            subscriptions = await self._subscriptions.merge_detected(charges)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)

        if subscriptions:
            message = f"{len(subscriptions)} potential subscriptions found."
        else:
            message = "Could not find recurring charges from the provided data."
        return ActionResult.success(data=subscriptions, message=message)

    async def _report_warnings(
        self,
        charges: list[DetectedCharge],
        correlation_id: UUID,
    ) -> None:
        for charge in charges:
            result = self._validator.check_detected_charge(charge)
            if result.warnings:
                await self._audit_logger.log_validation_warning(
                    vendor=charge.vendor,
                    issues=[
                        {"field": i.field, "type": i.issue_type, "message": i.message}
                        for i in result.warnings
                    ],
                    correlation_id=correlation_id,
                )

    async def suggest_alternatives(
        self,
        subscription_id: str,
        user_needs: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """Ask the model for cheaper alternatives and store them on the subscription."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            subscription = await self._subscriptions.get_subscription(subscription_id)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        if subscription is None:
            return _not_found(subscription_id)

        try:
            suggestion = await self._alternatives_agent.suggest_alternatives(
                subscription_name=subscription.vendor,
                current_cost=subscription.amount,
                user_needs=user_needs,
            )
        except (InputValidationError, AIFlowError) as e:
            return await self._ai_failure("suggest_alternatives", e, correlation_id)

        await self._audit_logger.log_alternatives_suggested(
            subscription_name=subscription.vendor,
            alternative_count=len(suggestion.alternatives),
            correlation_id=correlation_id,
        )

        try:
            stored = await self._subscriptions.apply_alternatives(
                subscription_id,
                suggestion,
                user_needs=user_needs,
            )
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        if stored is None:
            return _not_found(subscription_id)
        return ActionResult.success(
            data=suggestion,
            message=f"Alternatives for {subscription.vendor} suggested.",
        )

    async def predict_renewal(
        self,
        subscription_id: str,
        apply: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        """
        Predict the next renewal date of a stored subscription.

        With apply=True the prediction also becomes its next due date.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            subscription = await self._subscriptions.get_subscription(subscription_id)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        if subscription is None:
            return _not_found(subscription_id)

        try:
            prediction = await self._renewal_agent.predict_renewal(
                subscription_name=subscription.vendor,
                last_payment_date=subscription.last_payment_date,
                billing_cycle=subscription.frequency,
            )
        except (InputValidationError, AIFlowError) as e:
            return await self._ai_failure("predict_renewal", e, correlation_id)

        await self._audit_logger.log_renewal_predicted(
            subscription_name=subscription.vendor,
            predicted_date=prediction.predicted_renewal_date,
            confidence=prediction.confidence,
            correlation_id=correlation_id,
        )

        if apply:
            try:
                stored = await self._subscriptions.update_renewal(
                    subscription_id,
                    prediction.predicted_renewal_date,
                )
            except StorageError as e:
                return await _storage_failure(self._audit_logger, e)
            if stored is None:
                return _not_found(subscription_id)
        return ActionResult.success(data=prediction)

    async def toggle_status(
        self,
        subscription_id: str,
        new_status: Union[SubscriptionStatus, str],
        user_id: Optional[str] = None,
    ) -> ActionResult:
        try:
            status = SubscriptionStatus(new_status)
        except ValueError:
            return ActionResult.failure(f"Unknown status: {new_status}")

        try:
            subscription = await self._subscriptions.toggle_status(
                subscription_id,
                status,
                user_id=user_id,
            )
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        if subscription is None:
            return _not_found(subscription_id)

        verb = "resumed" if status == SubscriptionStatus.ACTIVE else "paused"
        return ActionResult.success(
            data=subscription,
            message=f"{subscription.vendor} has been {verb}.",
        )

    async def toggle_unused(self, subscription_id: str) -> ActionResult:
        try:
            subscription = await self._subscriptions.toggle_unused(subscription_id)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        if subscription is None:
            return _not_found(subscription_id)
        return ActionResult.success(data=subscription)

    async def delete_subscription(self, subscription_id: str) -> ActionResult:
        try:
            removed = await self._subscriptions.delete(subscription_id)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        if not removed:
            return _not_found(subscription_id)
        return ActionResult.success(
            data=subscription_id,
            message="The subscription has been removed from your list.",
        )

    async def overview(self, today: Optional[date] = None) -> ActionResult:
        """
        Dashboard numbers: monthly total, category split, notifications
        and long-unused subscriptions.
        """
        settings = get_settings().app
        try:
            subscriptions = await self._subscriptions.list_subscriptions()
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        now = datetime.combine(today, datetime.min.time()) if today else None

        return ActionResult.success(data={
            "subscriptions": subscriptions,
            "total_monthly_spend": total_monthly_spend(subscriptions),
            "spend_by_category": spend_by_category(subscriptions),
            "notifications": build_notifications(
                subscriptions,
                today=today,
                due_soon_days=settings.due_soon_days,
            ),
            "unused_alerts": unused_alerts(
                subscriptions,
                now=now,
                threshold_days=settings.unused_threshold_days,
            ),
        })


class WalletFlow:
    """
    Orchestrates the wallet actions.

    A storage failure on any of them, including a corrupt wallets or
    history document, comes back as ActionResult.error.
    """

    def __init__(
        self,
        wallet_service: WalletService,
        subscription_service: SubscriptionService,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._wallet = wallet_service
        self._subscriptions = subscription_service
        self._audit_logger = audit_logger or AuditLogger()

    async def get_wallet(self, user_id: Optional[str] = None) -> ActionResult:
        try:
            wallet = await self._wallet.get_wallet(user_id)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        return ActionResult.success(data=wallet)

    async def add_funds(
        self,
        amount: Union[Decimal, float, int, str],
        user_id: Optional[str] = None,
    ) -> ActionResult:
        try:
            wallet = await self._wallet.add_funds(amount, user_id=user_id)
        except InvalidAmountError as e:
            return ActionResult.failure(str(e))
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        except WalletError as e:
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"action": "add_funds"},
            )
            return ActionResult.failure(str(e))

        return ActionResult.success(
            data=wallet,
            message=f"New balance: ${wallet.balance:.2f}",
        )

    async def charge_subscription(
        self,
        subscription_id: str,
        user_id: Optional[str] = None,
    ) -> ActionResult:
        """
        Charge one period of a stored subscription.

        Insufficient funds still returns a successful ActionResult whose
        data.success is False; the failed attempt is in the history.
        """
        try:
            subscription = await self._subscriptions.get_subscription(subscription_id)
            if subscription is None:
                return _not_found(subscription_id)
            result = await self._wallet.charge_for_subscription(
                subscription,
                user_id=user_id,
            )
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        except WalletError as e:
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"action": "charge", "subscription_id": subscription_id},
            )
            return ActionResult.failure(str(e))

        return ActionResult.success(
            data=result,
            message=result.transaction.related_detail,
        )

    async def get_transactions(
        self,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ActionResult:
        try:
            transactions = await self._wallet.get_transactions(user_id, limit=limit)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        return ActionResult.success(data=transactions)

    async def status_trends(self, user_id: Optional[str] = None) -> ActionResult:
        try:
            transactions = await self._wallet.get_transactions(user_id)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        months = get_settings().app.trend_months
        return ActionResult.success(data=status_trends(transactions, months=months))

    async def export_transactions(
        self,
        path: Union[str, Path],
        user_id: Optional[str] = None,
    ) -> ActionResult:
        try:
            transactions = await self._wallet.get_transactions(user_id)
        except StorageError as e:
            return await _storage_failure(self._audit_logger, e)
        try:
            written = write_transactions_csv(transactions, path)
        except OSError as e:
            return ActionResult.failure(f"Could not write {path}: {e}")
        return ActionResult.success(
            data=written,
            message=f"Exported {len(transactions)} transactions.",
        )


def create_storage(backend: Optional[str] = None) -> KeyValueStorageInterface:
    """
    Build the configured storage backend.

    Google Sheets is imported only when selected, so the local backends
    work without Google credentials.
    """
    settings = get_settings().storage
    backend = backend or settings.backend

    if backend == "memory":
        return InMemoryStorage()
    if backend == "json_file":
        return JsonFileStorage(settings.resolved_file_path)
    if backend == "google_sheets":
        from payright.services.storage.google_sheets import GoogleSheetsStorage
        return GoogleSheetsStorage()
    raise ValueError(f"Unknown storage backend: {backend}")


def create_app_components(
    backend: Optional[str] = None,
    charge_agent: Optional[ChargeDetectionAgent] = None,
    alternatives_agent: Optional[AlternativesAgent] = None,
    renewal_agent: Optional[RenewalAgent] = None,
) -> tuple[SubscriptionFlow, WalletFlow, KeyValueStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        backend: Storage backend name; defaults to the configured one.
                 If it cannot be set up, falls back to in-memory storage.

    Returns:
        (subscription_flow, wallet_flow, storage)
    """
    try:
        storage = create_storage(backend)
    except Exception as e:
        # Storage not configured - continue with a throwaway store
        logger.warning("storage_not_configured", backend=backend, error=str(e))
        storage = InMemoryStorage()

    audit_logger = AuditLogger()
    subscription_service = SubscriptionService(storage, audit_logger=audit_logger)
    wallet_service = WalletService(storage, audit_logger=audit_logger)

    subscription_flow = SubscriptionFlow(
        subscription_service,
        charge_agent=charge_agent,
        alternatives_agent=alternatives_agent,
        renewal_agent=renewal_agent,
        audit_logger=audit_logger,
    )
    wallet_flow = WalletFlow(
        wallet_service,
        subscription_service,
        audit_logger=audit_logger,
    )
    return subscription_flow, wallet_flow, storage
