import logging
from typing import Iterable, List

from mentra.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class CredentialPool:
    """
    Ordered API credentials with a rotation cursor.

    The cursor only moves through `rotate()`, which advances it circularly.
    An empty pool is allowed to exist; it fails on first use instead.
    """

    def __init__(self, credentials: Iterable[str] = ()):
        self._credentials: List[str] = [c for c in credentials if c]
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> str:
        if not self._credentials:
            raise ConfigurationError(
                "No Gemini API key configured. Set GEMINI_API_KEYS or GEMINI_API_KEY in environment (.env)."
            )
        return self._credentials[self._cursor]

    def rotate(self) -> int:
        """Advance to the next credential and return the new cursor."""
        if not self._credentials:
            raise ConfigurationError("Cannot rotate an empty credential pool.")
        self._cursor = (self._cursor + 1) % len(self._credentials)
        logger.info(f"Rotated to credential #{self._cursor + 1} of {len(self._credentials)}")
        return self._cursor
