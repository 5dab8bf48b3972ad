"""
Subscription Service

Owns the stored subscription list: replacing it after a detection run,
pausing and resuming, deleting, and recording what the AI suggested.

Status changes are ledger events: each one appends a status_change
transaction to the user's history, the same history the wallet writes.
"""

import time
from datetime import datetime, timezone
from typing import Optional

import structlog

from payright.audit import AuditLogger
from payright.config import get_settings
from payright.models.subscription import (
    AlternativeSuggestion,
    DetectedCharge,
    Subscription,
    SubscriptionStatus,
)
from payright.models.wallet import Transaction, TransactionType
from payright.services.storage import (
    KeyValueStorageInterface,
    SubscriptionRepository,
    TransactionRepository,
)
from payright.services.wallet_service import new_transaction_id


logger = structlog.get_logger(__name__)


class SubscriptionService:
    """CRUD and status changes for the stored subscription list."""

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        default_user_id: Optional[str] = None,
    ):
        self._subscriptions = SubscriptionRepository(storage)
        self._transactions = TransactionRepository(storage)
        self._audit = audit_logger or AuditLogger()
        self._default_user_id = default_user_id or get_settings().app.mock_user_id

    async def list_subscriptions(self) -> list[Subscription]:
        return await self._subscriptions.load_all()

    async def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        for subscription in await self._subscriptions.load_all():
            if subscription.id == subscription_id:
                return subscription
        return None

    async def save_all(self, subscriptions: list[Subscription]) -> None:
        await self._subscriptions.save_all(subscriptions)

    async def merge_detected(self, charges: list[DetectedCharge]) -> list[Subscription]:
        """
        Turn detected charges into subscriptions and store them.

        The stored list is REPLACED, not appended to: a detection run is
        a fresh sync of the user's charges. Every new subscription starts
        active; a usage count of exactly 0 marks it unused.
        """
        stamp = int(time.time() * 1000)
        subscriptions = [
            Subscription.from_detected(charge, f"sub-{stamp}-{index}")
            for index, charge in enumerate(charges)
        ]
        await self._subscriptions.save_all(subscriptions)
        await self._audit.log_subscriptions_replaced(count=len(subscriptions))
        return subscriptions

    async def toggle_status(
        self,
        subscription_id: str,
        new_status: SubscriptionStatus,
        user_id: Optional[str] = None,
    ) -> Optional[Subscription]:
        """
        Set a subscription's status and record the change.

        Setting the status it already has still counts as a change.

        Returns:
            The updated subscription, or None if no subscription has
            that id (nothing is written in that case)
        """
        new_status = SubscriptionStatus(new_status)
        entries = await self._subscriptions.load_entries()
        subscription = next(
            (e for e in entries if isinstance(e, Subscription) and e.id == subscription_id),
            None,
        )
        if subscription is None:
            logger.error("subscription_not_found", subscription_id=subscription_id)
            return None

        subscription.status = new_status
        await self._subscriptions.save_entries(entries)

        user = user_id or self._default_user_id
        await self._transactions.prepend(Transaction(
            id=new_transaction_id("txn-status"),
            user_id=user,
            type=TransactionType.STATUS_CHANGE,
            description=(
                f"Subscription {subscription.vendor} status changed to "
                f"{new_status.value}."
            ),
            subscription_id=subscription.id,
            related_detail=f"Status of {subscription.vendor} set to {new_status.value}",
        ))

        await self._audit.log_status_changed(
            subscription_id=subscription.id,
            vendor=subscription.vendor,
            new_status=new_status.value,
        )
        return subscription

    async def delete(self, subscription_id: str) -> bool:
        """Remove the subscription with this id. True if one was removed."""
        removed = await self._subscriptions.remove(subscription_id)
        if removed is None:
            return False
        await self._audit.log_subscription_deleted(
            subscription_id=subscription_id,
            vendor=removed.vendor,
        )
        return True

    async def _store(self, subscription: Subscription, fields: list[str]) -> Optional[Subscription]:
        if not await self._subscriptions.update(subscription):
            # Removed between the read and the write
            logger.error("subscription_not_found", subscription_id=subscription.id)
            return None
        await self._audit.log_subscription_updated(
            subscription_id=subscription.id,
            fields=fields,
        )
        return subscription

    async def apply_alternatives(
        self,
        subscription_id: str,
        suggestion: AlternativeSuggestion,
        user_needs: Optional[str] = None,
    ) -> Optional[Subscription]:
        """Store an alternatives suggestion on the subscription."""
        subscription = await self.get_subscription(subscription_id)
        if subscription is None:
            return None

        subscription.alternatives = list(suggestion.alternatives)
        subscription.alternatives_reasoning = suggestion.reasoning
        if user_needs is not None:
            subscription.user_needs = user_needs

        return await self._store(
            subscription,
            ["alternatives", "alternatives_reasoning", "user_needs"],
        )

    async def update_renewal(
        self,
        subscription_id: str,
        next_due_date: str,
    ) -> Optional[Subscription]:
        """Replace the next due date, e.g. with a predicted renewal date."""
        subscription = await self.get_subscription(subscription_id)
        if subscription is None:
            return None

        subscription.next_due_date = next_due_date
        return await self._store(subscription, ["next_due_date"])

    async def toggle_unused(
        self,
        subscription_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        """
        Flip the manual "unused" marker.

        Marking sets unused_since to now; unmarking clears it.
        """
        subscription = await self.get_subscription(subscription_id)
        if subscription is None:
            return None

        if subscription.is_unused:
            subscription.is_unused = False
            subscription.unused_since = None
        else:
            subscription.is_unused = True
            subscription.unused_since = now or datetime.now(timezone.utc)

        return await self._store(subscription, ["is_unused", "unused_since"])
