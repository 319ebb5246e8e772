"""Credential pool cycled on rate-limit and quota errors.

One KeyRotator is shared by every adapter that talks to the same API so that
rotation state stays consistent process-wide.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Sequence

from sofy_shorts.config.logging import get_logger
from sofy_shorts.exceptions import ConfigurationError

if TYPE_CHECKING:
    from sofy_shorts.config.settings import Settings

logger = get_logger(__name__)


class KeyRotator:
    """Thread-safe cyclic pool of API keys.

    Rotation never removes a key. If every key is exhausted, rotation keeps
    cycling; callers bound their retries with a RetryPolicy.
    """

    def __init__(self, keys: Sequence[str]):
        cleaned = [k for k in keys if k]
        if not cleaned:
            raise ConfigurationError(
                "No API keys found",
                details="Set GEMINI_API_KEY or GEMINI_API_KEY_1..GEMINI_API_KEY_10",
            )
        self._keys: tuple[str, ...] = tuple(cleaned)
        self._index = 0
        self._lock = threading.Lock()
        logger.info("Loaded %d API key(s)", len(self._keys))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "KeyRotator":
        return cls(settings.api_keys())

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def index(self) -> int:
        with self._lock:
            return self._index

    def current_key(self) -> str:
        with self._lock:
            return self._keys[self._index]

    def checkout(self) -> tuple[int, str]:
        """Return (index, key) read under one lock acquisition."""
        with self._lock:
            return self._index, self._keys[self._index]

    def rotate(self, expected_index: int | None = None) -> str:
        """Advance to the next key and return it.

        Args:
            expected_index: Index the caller was using when it failed. If
                another caller already rotated away from it, the pool is not
                advanced again and the current key is returned.
        """
        with self._lock:
            if expected_index is None or expected_index == self._index:
                self._index = (self._index + 1) % len(self._keys)
                logger.warning(
                    "Rotated API key to slot %d/%d", self._index + 1, len(self._keys)
                )
            return self._keys[self._index]

    def all_keys(self) -> list[str]:
        return list(self._keys)
