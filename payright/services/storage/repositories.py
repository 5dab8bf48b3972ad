"""
Typed Repositories over Key-Value Storage

Three documents, three keys:

    payright-subscriptions   JSON array of subscriptions
    payright-wallets         JSON object: userId -> wallet
    payright-transactions    JSON object: userId -> array, newest first

Each repository reads the whole document, changes it, and writes the
whole document back. There is no locking at this level.
"""

import json
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from payright.models.subscription import Subscription
from payright.models.wallet import Transaction, Wallet
from payright.services.storage.interface import (
    CorruptDataError,
    KeyValueStorageInterface,
    StorageError,
)


SUBSCRIPTIONS_KEY = "payright-subscriptions"
WALLETS_KEY = "payright-wallets"
TRANSACTIONS_KEY = "payright-transactions"


logger = structlog.get_logger(__name__)


def _with_key(error: StorageError, key: str) -> StorageError:
    if error.key is None:
        error.key = key
    return error


async def _load_json(
    storage: KeyValueStorageInterface,
    key: str,
    default: Any,
) -> Any:
    """
    Read and parse one document.

    Backend failures propagate as StorageError; only a value that is
    not JSON raises CorruptDataError.
    """
    try:
        raw = await storage.get_item(key)
    except StorageError as e:
        raise _with_key(e, key)
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptDataError(f"Stored value under {key} is not valid JSON: {e}", key=key)


async def _save_json(
    storage: KeyValueStorageInterface,
    key: str,
    value: Any,
) -> None:
    try:
        await storage.set_item(key, json.dumps(value, ensure_ascii=False))
    except StorageError as e:
        raise _with_key(e, key)


class SubscriptionRepository:
    """
    The stored subscription list.

    Entries that no longer validate are carried through every write
    exactly as they were stored, so changing one subscription never
    drops another.
    """

    def __init__(self, storage: KeyValueStorageInterface):
        self._storage = storage

    async def load_entries(self) -> list[Any]:
        """
        Load every stored entry, in stored order.

        Valid entries come back as Subscription, the rest as their raw
        JSON value. A document that is not a JSON array reads as an
        empty list; a backend read failure raises StorageError.
        """
        try:
            data = await _load_json(self._storage, SUBSCRIPTIONS_KEY, [])
        except CorruptDataError as e:
            logger.error("subscriptions_unreadable", key=SUBSCRIPTIONS_KEY, error=str(e))
            return []

        if not isinstance(data, list):
            logger.error("subscriptions_not_a_list", key=SUBSCRIPTIONS_KEY)
            return []

        entries = []
        for entry in data:
            try:
                entries.append(Subscription.model_validate(entry))
            except ValidationError as e:
                logger.warning(
                    "subscription_unparsed",
                    entry_id=entry.get("id") if isinstance(entry, dict) else None,
                    error=str(e),
                )
                entries.append(entry)
        return entries

    async def load_all(self) -> list[Subscription]:
        """Every stored subscription that validates."""
        return [e for e in await self.load_entries() if isinstance(e, Subscription)]

    async def save_entries(self, entries: list[Any]) -> None:
        await _save_json(
            self._storage,
            SUBSCRIPTIONS_KEY,
            [e.to_storage_dict() if isinstance(e, Subscription) else e for e in entries],
        )

    async def save_all(self, subscriptions: list[Subscription]) -> None:
        """Replace the whole stored list."""
        await self.save_entries(subscriptions)

    async def update(self, subscription: Subscription) -> bool:
        """Replace the stored record with the same id. False if absent."""
        entries = await self.load_entries()
        for idx, existing in enumerate(entries):
            if isinstance(existing, Subscription) and existing.id == subscription.id:
                entries[idx] = subscription
                await self.save_entries(entries)
                return True
        return False

    async def remove(self, subscription_id: str) -> Optional[Subscription]:
        """Remove the first record with this id and return it; None if absent."""
        entries = await self.load_entries()
        for idx, existing in enumerate(entries):
            if isinstance(existing, Subscription) and existing.id == subscription_id:
                del entries[idx]
                await self.save_entries(entries)
                return existing
        return None


class WalletRepository:
    """Stored wallets, one per user."""

    def __init__(self, storage: KeyValueStorageInterface):
        self._storage = storage

    async def _load_map(self) -> dict:
        data = await _load_json(self._storage, WALLETS_KEY, {})
        if not isinstance(data, dict):
            raise CorruptDataError(
                f"Stored value under {WALLETS_KEY} must be an object",
                key=WALLETS_KEY,
            )
        return data

    async def get(self, user_id: str) -> Wallet:
        """The user's wallet; a zero balance if none is stored."""
        entry = (await self._load_map()).get(user_id)
        if entry is None:
            return Wallet(user_id=user_id)
        try:
            return Wallet.model_validate(entry)
        except ValidationError as e:
            raise CorruptDataError(
                f"Stored wallet for {user_id} is invalid: {e.error_count()} invalid field(s)",
                key=WALLETS_KEY,
            )

    async def save(self, wallet: Wallet) -> None:
        wallets = await self._load_map()
        wallets[wallet.user_id] = wallet.to_storage_dict()
        await _save_json(self._storage, WALLETS_KEY, wallets)


class TransactionRepository:
    """Stored transaction history, per user, newest first."""

    def __init__(self, storage: KeyValueStorageInterface):
        self._storage = storage

    async def _load_map(self) -> dict:
        data = await _load_json(self._storage, TRANSACTIONS_KEY, {})
        if not isinstance(data, dict):
            raise CorruptDataError(
                f"Stored value under {TRANSACTIONS_KEY} must be an object",
                key=TRANSACTIONS_KEY,
            )
        return data

    async def get_all(self, user_id: str, limit: Optional[int] = None) -> list[Transaction]:
        entries = (await self._load_map()).get(user_id, [])
        if not isinstance(entries, list):
            raise CorruptDataError(
                f"Stored history for {user_id} must be an array",
                key=TRANSACTIONS_KEY,
            )
        if limit is not None:
            entries = entries[:limit]
        try:
            return [Transaction.model_validate(entry) for entry in entries]
        except ValidationError as e:
            raise CorruptDataError(
                f"Stored history for {user_id} is invalid: {e.error_count()} invalid field(s)",
                key=TRANSACTIONS_KEY,
            )

    async def prepend(self, transaction: Transaction) -> None:
        all_transactions = await self._load_map()
        user_entries = all_transactions.setdefault(transaction.user_id, [])
        if not isinstance(user_entries, list):
            raise CorruptDataError(
                f"Stored history for {transaction.user_id} must be an array",
                key=TRANSACTIONS_KEY,
            )
        user_entries.insert(0, transaction.to_storage_dict())
        await _save_json(self._storage, TRANSACTIONS_KEY, all_transactions)
