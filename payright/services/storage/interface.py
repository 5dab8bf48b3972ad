"""
Abstract Storage Interface

DESIGN DECISION: PayRight persists everything as a handful of JSON
documents under fixed string keys, exactly like browser localStorage.
The interface is therefore a plain key-value API over strings.
This allows us to:
1. Keep the data layout of the web version (same keys, same JSON)
2. Use in-memory storage for testing
3. Swap a local file for Google Sheets without touching services

Typed access (subscriptions, wallets, transactions) lives one level up,
in the repositories.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for key-value storage.

    Values are opaque strings (JSON documents in practice).
    Last write wins; there are no transactions.
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        Args:
            key: Storage key
            value: String to store

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        """List all stored keys."""
        pass

    async def clear(self) -> None:
        """Remove every key."""
        for key in await self.keys():
            await self.remove_item(key)


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class CorruptDataError(StorageError):
    """A stored value was read but does not parse or validate."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
