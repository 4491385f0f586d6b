"""
In-memory ownership registry.

Tracks token bindings with an owner index for efficient queries.
"""

import asyncio
from bisect import insort
from datetime import datetime
from typing import Dict, List, Optional

import structlog

from minter.core.errors import BindError
from minter.registry.interface import OwnershipRegistry, TokenBinding

logger = structlog.get_logger(__name__)


class InMemoryOwnershipRegistry(OwnershipRegistry):
    """
    Dict-backed ownership registry.

    Responsibilities:
    - Store one binding per token ID
    - Maintain a sorted per-owner index
    - Reject rebinding of an existing token ID
    """

    def __init__(self):
        # Binding storage by token ID
        self._bindings: Dict[int, TokenBinding] = {}

        # Index by owner, token IDs kept sorted
        self._by_owner: Dict[str, List[int]] = {}

        self._lock = asyncio.Lock()

        self._stats = {
            "total_bound": 0,
            "total_released": 0,
            "bind_conflicts": 0,
        }

    async def bind(self, token_id: int, owner: str, metadata_ref: str) -> TokenBinding:
        async with self._lock:
            if token_id in self._bindings:
                self._stats["bind_conflicts"] += 1
                logger.error("token_already_bound", token_id=token_id)
                raise BindError(f"Token {token_id} is already bound", token_id=token_id)

            binding = TokenBinding(
                token_id=token_id,
                owner=owner,
                metadata_ref=metadata_ref,
                bound_at=datetime.utcnow(),
            )
            self._bindings[token_id] = binding
            insort(self._by_owner.setdefault(owner, []), token_id)
            self._stats["total_bound"] += 1

            logger.debug("token_bound", token_id=token_id, owner=owner)
            return binding

    async def release(self, token_id: int) -> bool:
        async with self._lock:
            binding = self._bindings.pop(token_id, None)
            if binding is None:
                return False

            owned = self._by_owner.get(binding.owner, [])
            if token_id in owned:
                owned.remove(token_id)
            if not owned:
                self._by_owner.pop(binding.owner, None)

            self._stats["total_released"] += 1
            logger.debug("token_released", token_id=token_id)
            return True

    async def get_binding(self, token_id: int) -> Optional[TokenBinding]:
        async with self._lock:
            return self._bindings.get(token_id)

    async def tokens_of(self, owner: str) -> List[int]:
        async with self._lock:
            return list(self._by_owner.get(owner, []))

    async def total_supply(self) -> int:
        async with self._lock:
            return len(self._bindings)

    async def get_stats(self) -> dict:
        """Get registry statistics."""
        async with self._lock:
            return {
                "total_supply": len(self._bindings),
                "owners": len(self._by_owner),
                **self._stats,
            }
