"""Services package."""

from payright.services.storage import (
    ConnectionError,
    CorruptDataError,
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorageInterface,
    NotFoundError,
    StorageError,
)
from payright.services.subscription_service import SubscriptionService
from payright.services.wallet_service import (
    InvalidAmountError,
    WalletError,
    WalletService,
)

__all__ = [
    # Ledger and store
    "SubscriptionService",
    "WalletService",
    "InvalidAmountError",
    "WalletError",
    # Storage services
    "ConnectionError",
    "CorruptDataError",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorageInterface",
    "NotFoundError",
    "StorageError",
]
