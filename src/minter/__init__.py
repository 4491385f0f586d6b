"""
Batch Minter

A batch-issuance ledger for unique, ownable tokens.
Allocates contiguous blocks of token IDs, records ownership and
enforces payment and batch-size limits in a single atomic call.
"""

__version__ = "0.1.0"

from minter.core.counter import TokenCounter
from minter.core.engine import BatchMintEngine
from minter.core.events import EventBus
from minter.core.request import MintRequest, MintResult, MintStatus
from minter.service import AdminAuthority, MintService

__all__ = [
    "TokenCounter",
    "BatchMintEngine",
    "EventBus",
    "MintRequest",
    "MintResult",
    "MintStatus",
    "AdminAuthority",
    "MintService",
]
