"""
Mint request and result models.

A request lives for the duration of one batch_mint call; the result is
returned to the caller and published to observers.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterator, List, Optional


class MintStatus(str, Enum):
    """Status of a mint request."""
    PENDING = "pending"           # Constructed, not yet validated
    MINTED = "minted"             # All tokens allocated and bound
    FAILED = "failed"             # Rejected or rolled back


@dataclass
class MintRequest:
    """
    A single batch mint request.

    Attributes:
        recipient: Account receiving every token in the batch
        count: Number of tokens to mint
        metadata_refs: One metadata reference per token, in mint order
        payment_amount: Amount attached to the call, in lovelace
        request_id: Unique identifier for log correlation
        created_at: When the request was constructed
        status: Current processing status
        error_message: Reason for failure, if any
    """

    recipient: str
    count: int
    metadata_refs: List[str] = field(default_factory=list)
    payment_amount: int = 0

    # Tracking
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    status: MintStatus = MintStatus.PENDING

    # Error tracking
    error_message: Optional[str] = None

    def __post_init__(self):
        """Normalize after initialization."""
        if isinstance(self.status, str):
            self.status = MintStatus(self.status)
        self.metadata_refs = list(self.metadata_refs)

    def mark_minted(self) -> None:
        """Mark request as fully minted."""
        self.status = MintStatus.MINTED
        self.updated_at = datetime.utcnow()

    def mark_failed(self, error: str) -> None:
        """Mark request as failed with error message."""
        self.status = MintStatus.FAILED
        self.error_message = error
        self.updated_at = datetime.utcnow()

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "request_id": self.request_id,
            "recipient": self.recipient,
            "count": self.count,
            "metadata_refs": list(self.metadata_refs),
            "payment_amount": self.payment_amount,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "status": self.status.value,
            "error_message": self.error_message,
        }


@dataclass
class MintResult:
    """
    Outcome of a successful batch mint.

    Token IDs are in allocation order: strictly increasing and contiguous.
    """

    request_id: str
    recipient: str
    token_ids: List[int] = field(default_factory=list)
    paid_amount: int = 0
    minted_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def first_token_id(self) -> Optional[int]:
        return self.token_ids[0] if self.token_ids else None

    @property
    def last_token_id(self) -> Optional[int]:
        return self.token_ids[-1] if self.token_ids else None

    def __len__(self) -> int:
        return len(self.token_ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self.token_ids)

    def __getitem__(self, index: int) -> int:
        return self.token_ids[index]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "request_id": self.request_id,
            "recipient": self.recipient,
            "token_ids": list(self.token_ids),
            "paid_amount": self.paid_amount,
            "minted_at": self.minted_at.isoformat(),
        }

    def __repr__(self) -> str:
        if not self.token_ids:
            return f"MintResult(recipient={self.recipient[:16]}..., empty)"
        return (
            f"MintResult(recipient={self.recipient[:16]}..., "
            f"tokens={self.first_token_id}..{self.last_token_id})"
        )
