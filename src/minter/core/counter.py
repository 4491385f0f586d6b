"""
Token ID counter.

Monotonic sequence generator handing out unique token identifiers.
"""

from contextlib import contextmanager
from typing import Iterator

import structlog

from minter.config import UINT256_MAX
from minter.core.errors import Overflow

logger = structlog.get_logger(__name__)


class TokenCounter:
    """
    Last allocated token ID, advanced by exactly one per allocation.

    The counter is owned by whoever constructs it and injected into the
    engine. A value of 0 means nothing has been allocated yet.

    Usage:
        ```python
        counter = TokenCounter()
        with counter.transaction():
            token_id = counter.next()  # restored if the block raises
        ```
    """

    def __init__(self, start: int = 0, max_value: int = UINT256_MAX):
        if start < 0:
            raise ValueError(f"Counter start must be non-negative, got {start}")
        if start > max_value:
            raise ValueError(f"Counter start {start} exceeds max value {max_value}")
        self._value = start
        self._max_value = max_value

    @property
    def current(self) -> int:
        """Last allocated token ID (0 if none)."""
        return self._value

    @property
    def max_value(self) -> int:
        return self._max_value

    @property
    def remaining(self) -> int:
        """Number of IDs still available for allocation."""
        return self._max_value - self._value

    def next(self) -> int:
        """
        Allocate the next token ID.

        Returns:
            The new counter value

        Raises:
            Overflow: If the counter is exhausted
        """
        if self._value >= self._max_value:
            raise Overflow(
                f"Token counter exhausted at {self._value}",
                limit=self._max_value,
            )
        self._value += 1
        return self._value

    @contextmanager
    def transaction(self) -> Iterator["TokenCounter"]:
        """Restore the counter to its entry value if the block raises."""
        snapshot = self._value
        try:
            yield self
        except BaseException:
            if self._value != snapshot:
                logger.debug(
                    "counter_rewound",
                    from_value=self._value,
                    to_value=snapshot,
                )
            self._value = snapshot
            raise

    def __repr__(self) -> str:
        return f"TokenCounter(current={self._value})"
