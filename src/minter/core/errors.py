"""
Minting errors.

Every failure aborts the whole call. Validation errors are raised before
any state is touched; allocation errors are raised after rollback.
"""

from typing import Optional


class MintError(Exception):
    """Base class for all minting errors."""
    pass


class InvalidCount(MintError):
    """Raised when a batch requests zero or a negative number of tokens."""

    def __init__(self, count: int):
        super().__init__(f"Mint count must be positive, got {count}")
        self.count = count


class BatchTooLarge(MintError):
    """Raised when a batch exceeds the configured maximum size."""

    def __init__(self, count: int, max_batch_size: int):
        super().__init__(
            f"Batch of {count} exceeds maximum batch size {max_batch_size}"
        )
        self.count = count
        self.max_batch_size = max_batch_size


class MetadataCountMismatch(MintError):
    """Raised when the number of metadata references differs from the count."""

    def __init__(self, count: int, refs_count: int):
        super().__init__(
            f"Expected {count} metadata references, got {refs_count}"
        )
        self.count = count
        self.refs_count = refs_count


class InsufficientPayment(MintError):
    """Raised when the attached payment does not cover the batch price."""

    def __init__(self, required: int, provided: int):
        super().__init__(
            f"Payment of {provided} is below required {required}"
        )
        self.required = required
        self.provided = provided


class Overflow(MintError):
    """Raised when a checked arithmetic operation would exceed its range."""

    def __init__(self, message: str, limit: Optional[int] = None):
        super().__init__(message)
        self.limit = limit


class BindError(MintError):
    """Raised when the ownership registry rejects a binding."""

    def __init__(self, message: str, token_id: Optional[int] = None):
        super().__init__(message)
        self.token_id = token_id


class TokenNotFound(MintError):
    """Raised when querying a token ID that was never bound."""

    def __init__(self, token_id: int):
        super().__init__(f"Token {token_id} does not exist")
        self.token_id = token_id


class Unauthorized(MintError):
    """Raised when a non-admin caller invokes an administrative operation."""

    def __init__(self, operation: str, caller: Optional[str] = None):
        super().__init__(f"Caller is not authorized to {operation}")
        self.operation = operation
        self.caller = caller


class InvalidPrice(MintError):
    """Raised when a unit price is negative."""

    def __init__(self, price: int):
        super().__init__(f"Unit price must be non-negative, got {price}")
        self.price = price


class InvalidRecipient(MintError):
    """Raised when a recipient is not a valid address."""

    def __init__(self, recipient: str, reason: str = ""):
        message = f"Invalid recipient address: {recipient!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.recipient = recipient
