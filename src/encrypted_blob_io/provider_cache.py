"""
Reload-aware caching of providers built from settings.

This module provides:
- ProviderCache: Thread-safe cached value rebuilt when its settings change
- KeyProviderCache: ProviderCache of EncryptionKeyProvider instances

Builds and reloads are serialized by a lock. A caller that obtained a
provider before a reload keeps using it until its operation completes; the
cache only stops handing it out.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

from .key_provider import EncryptionKeyProvider
from .settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderCache(Generic[T]):
    """Cached value with invalidation, recomputed under a lock on settings change."""

    def __init__(self, factory: Callable[[Settings], T]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._settings: Optional[Settings] = None

    def get(self, settings: Settings) -> T:
        """
        Return the cached value, building it first if needed.

        The value is rebuilt when the cache is empty or when settings differ
        from the ones the cached value was built from.
        """
        with self._lock:
            if self._value is None:
                self._value = self._factory(settings)
                self._settings = settings
            elif self._settings != settings:
                logger.info("Settings changed, rebuilding %s", type(self._value).__name__)
                replacement = self._factory(settings)
                self._close_value()
                self._value = replacement
                self._settings = settings
            return self._value

    @property
    def cached(self) -> Optional[T]:
        return self._value

    def invalidate(self) -> None:
        """Drop the cached value; the next get() rebuilds it."""
        with self._lock:
            self._close_value()
            self._value = None
            self._settings = None

    def close(self) -> None:
        self.invalidate()

    def __enter__(self) -> ProviderCache[T]:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _close_value(self) -> None:
        close = getattr(self._value, "close", None)
        if close is not None:
            close()


class KeyProviderCache(ProviderCache[EncryptionKeyProvider]):
    """ProviderCache building EncryptionKeyProvider instances from settings."""

    def __init__(self) -> None:
        super().__init__(EncryptionKeyProvider.of)
