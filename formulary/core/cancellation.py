"""Cooperative cancellation for install operations.

Cancellation is checked explicitly at stage boundaries and between
download chunks.  Once the binary write begins the installer stops
checking, so a write is never abandoned half-way.
"""

from __future__ import annotations

import threading

from formulary.core.errors import OperationCancelled


class CancellationToken:
    """Thread-safe cancellation flag.

    Examples
    --------
    >>> token = CancellationToken()
    >>> token.is_cancelled()
    False
    >>> token.cancel()
    >>> token.is_cancelled()
    True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str, **context) -> None:
        """Raise ``OperationCancelled`` if cancellation was requested."""
        if self._event.is_set():
            raise OperationCancelled(f"Install cancelled during {where}", **context)
