"""
Wallet Service

The virtual wallet: one balance per user, topped up by hand and
charged against subscriptions.

DESIGN DECISION: Balance changes are read-modify-write over the key-value
store, which has no transactions. An asyncio.Lock serializes them within
the process so two concurrent charges cannot both spend the same money.
Separate processes sharing one storage file are not protected.

INVARIANTS:
- A successful charge never leaves the balance negative
- A failed charge leaves the balance unchanged
- Every add_funds and every charge attempt appends exactly one transaction
"""

import asyncio
import time
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import uuid4

from payright.audit import AuditLogger
from payright.config import get_settings
from payright.models.subscription import Subscription, quantize_money
from payright.models.wallet import (
    ChargeResult,
    Transaction,
    TransactionType,
    Wallet,
)
from payright.services.storage import (
    KeyValueStorageInterface,
    TransactionRepository,
    WalletRepository,
)


class WalletError(Exception):
    """Base exception for wallet operations."""
    pass


class InvalidAmountError(WalletError):
    """Amount is zero, negative or not a number."""
    pass


def new_transaction_id(prefix: str = "txn") -> str:
    """Timestamp-based transaction id, e.g. txn-1718000000000-1a2b3c4d."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid4().hex[:8]}"


class WalletService:
    """
    Wallet ledger.

    All methods default to the configured mock user.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        default_user_id: Optional[str] = None,
    ):
        self._wallets = WalletRepository(storage)
        self._transactions = TransactionRepository(storage)
        self._audit = audit_logger or AuditLogger()
        self._default_user_id = default_user_id or get_settings().app.mock_user_id
        self._lock = asyncio.Lock()

    def _user(self, user_id: Optional[str]) -> str:
        return user_id or self._default_user_id

    async def get_wallet(self, user_id: Optional[str] = None) -> Wallet:
        """The stored wallet, or a zero-balance one if the user has none."""
        return await self._wallets.get(self._user(user_id))

    async def add_funds(
        self,
        amount: Union[Decimal, float, int, str],
        user_id: Optional[str] = None,
    ) -> Wallet:
        """
        Add money to the wallet.

        Raises:
            InvalidAmountError: amount is not positive
        """
        try:
            value = quantize_money(amount)
            if isinstance(value, bool) or not isinstance(value, Decimal) or value <= 0:
                raise InvalidAmountError("Amount must be positive.")
        except InvalidOperation:
            raise InvalidAmountError("Amount must be positive.")

        user = self._user(user_id)
        async with self._lock:
            wallet = await self._wallets.get(user)
            wallet.balance = quantize_money(wallet.balance + value)
            await self._wallets.save(wallet)

            transaction = Transaction(
                id=new_transaction_id(),
                user_id=user,
                type=TransactionType.ADD_FUNDS,
                amount=value,
                description="Added funds to wallet.",
            )
            await self._transactions.prepend(transaction)

        await self._audit.log_funds_added(
            user_id=user,
            amount=str(value),
            new_balance=str(wallet.balance),
            transaction_id=transaction.id,
        )
        return wallet

    async def charge_for_subscription(
        self,
        subscription: Subscription,
        user_id: Optional[str] = None,
    ) -> ChargeResult:
        """
        Charge one period of a subscription.

        Insufficient funds is not an error: the attempt is recorded as a
        charge_failed transaction and success is False.
        """
        user = self._user(user_id)
        amount = quantize_money(subscription.amount)
        vendor = subscription.vendor

        async with self._lock:
            wallet = await self._wallets.get(user)
            success = wallet.balance >= amount

            if success:
                wallet.balance = quantize_money(wallet.balance - amount)
                await self._wallets.save(wallet)

            transaction = Transaction(
                id=new_transaction_id(),
                user_id=user,
                type=(
                    TransactionType.CHARGE_SUCCESS if success
                    else TransactionType.CHARGE_FAILED
                ),
                amount=amount,
                description=(
                    f"Charged for {vendor}." if success
                    else f"Failed to charge for {vendor}."
                ),
                subscription_id=subscription.id,
                related_detail=(
                    f"Payment successful for {vendor}" if success
                    else f"Insufficient funds for {vendor}"
                ),
            )
            await self._transactions.prepend(transaction)

        await self._audit.log_charge(
            user_id=user,
            subscription_id=subscription.id,
            vendor=vendor,
            amount=str(amount),
            balance=str(wallet.balance),
            success=success,
        )
        return ChargeResult(
            success=success,
            new_balance=wallet.balance,
            transaction=transaction,
        )

    async def get_transactions(
        self,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """Transaction history, newest first."""
        return await self._transactions.get_all(self._user(user_id), limit=limit)
