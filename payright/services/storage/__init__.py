"""
Storage Services Package

Provides the key-value storage interface, its implementations, and the
typed repositories for subscriptions, wallets and transactions.
"""

from payright.services.storage.interface import (
    ConnectionError,
    CorruptDataError,
    KeyValueStorageInterface,
    NotFoundError,
    StorageError,
)
from payright.services.storage.local import (
    InMemoryStorage,
    JsonFileStorage,
)
from payright.services.storage.repositories import (
    SUBSCRIPTIONS_KEY,
    TRANSACTIONS_KEY,
    WALLETS_KEY,
    SubscriptionRepository,
    TransactionRepository,
    WalletRepository,
)

__all__ = [
    # Interfaces
    "KeyValueStorageInterface",
    # Exceptions
    "ConnectionError",
    "CorruptDataError",
    "NotFoundError",
    "StorageError",
    # Local implementations
    "InMemoryStorage",
    "JsonFileStorage",
    # Repositories
    "SUBSCRIPTIONS_KEY",
    "TRANSACTIONS_KEY",
    "WALLETS_KEY",
    "SubscriptionRepository",
    "TransactionRepository",
    "WalletRepository",
]
