"""
Key/value stores holding the blob and its digest.
"""
from abc import ABC, abstractmethod
from typing import Optional

from django.core.cache import caches

from .exceptions import StoreError


class KeyValueStore(ABC):
    """Interface for string key/value stores (Strategy pattern)"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read a value

        Returns:
            Stored string or None if the key is absent
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write a value, overwriting any previous one"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key; no-op if absent"""
        pass


class MemoryStore(KeyValueStore):
    """Dict-backed store, one per process"""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class CacheStore(KeyValueStore):
    """
    Store backed by a Django cache.

    Values never expire. Backend failures are raised as StoreError.
    """

    def __init__(self, alias: str = "default"):
        self.alias = alias

    @property
    def cache(self):
        return caches[self.alias]

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.cache.aget(key)
        except Exception as e:
            raise StoreError(f"Cache read failed for {key!r}: {e}") from e
        if value is not None and not isinstance(value, str):
            return None
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self.cache.aset(key, value, timeout=None)
        except Exception as e:
            raise StoreError(f"Cache write failed for {key!r}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.cache.adelete(key)
        except Exception as e:
            raise StoreError(f"Cache delete failed for {key!r}: {e}") from e
