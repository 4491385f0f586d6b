"""
Core minting components.

This module contains the token counter, request and result models, pricing,
events and the domain errors. The engine lives in minter.core.engine.
"""

from minter.core.counter import TokenCounter
from minter.core.errors import (
    BatchTooLarge,
    BindError,
    InsufficientPayment,
    InvalidCount,
    InvalidPrice,
    InvalidRecipient,
    MetadataCountMismatch,
    MintError,
    Overflow,
    TokenNotFound,
    Unauthorized,
)
from minter.core.events import (
    BaseURIUpdated,
    BatchMinted,
    EventBus,
    MintEvent,
    MintPriceUpdated,
)
from minter.core.pricing import PriceSchedule
from minter.core.request import MintRequest, MintResult, MintStatus

__all__ = [
    "TokenCounter",
    "MintError",
    "InvalidCount",
    "BatchTooLarge",
    "MetadataCountMismatch",
    "InsufficientPayment",
    "Overflow",
    "BindError",
    "TokenNotFound",
    "Unauthorized",
    "InvalidPrice",
    "InvalidRecipient",
    "MintEvent",
    "BatchMinted",
    "BaseURIUpdated",
    "MintPriceUpdated",
    "EventBus",
    "PriceSchedule",
    "MintRequest",
    "MintResult",
    "MintStatus",
]
