"""
Abstract interface for token ownership storage.

Defines the contract the mint engine relies on to bind token IDs to owners.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from minter.core.errors import TokenNotFound


@dataclass
class TokenBinding:
    """Ownership and metadata for a single token."""
    token_id: int
    owner: str
    metadata_ref: str
    bound_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "token_id": self.token_id,
            "owner": self.owner,
            "metadata_ref": self.metadata_ref,
            "bound_at": self.bound_at.isoformat() if self.bound_at else None,
        }


class OwnershipRegistry(ABC):
    """
    Abstract interface for token ownership.

    A binding associates a token ID with its owner and metadata reference;
    both become visible together or not at all.
    """

    async def connect(self) -> None:
        """Prepare the registry for use."""
        pass

    async def disconnect(self) -> None:
        """Release registry resources."""
        pass

    @abstractmethod
    async def bind(self, token_id: int, owner: str, metadata_ref: str) -> TokenBinding:
        """
        Bind a token ID to an owner and metadata reference.

        Args:
            token_id: Newly allocated token ID
            owner: Account receiving the token
            metadata_ref: Per-token metadata reference

        Returns:
            The stored binding

        Raises:
            BindError: If the token ID is already bound or storage fails
        """
        pass

    @abstractmethod
    async def release(self, token_id: int) -> bool:
        """
        Remove a binding made earlier in a failed mint call.

        Only used to compensate a partially applied batch.

        Returns:
            True if a binding was removed
        """
        pass

    @abstractmethod
    async def get_binding(self, token_id: int) -> Optional[TokenBinding]:
        """Get the binding for a token, or None if unbound."""
        pass

    @abstractmethod
    async def tokens_of(self, owner: str) -> List[int]:
        """Get an owner's token IDs in ascending order."""
        pass

    @abstractmethod
    async def total_supply(self) -> int:
        """Number of bound tokens."""
        pass

    async def owner_of(self, token_id: int) -> str:
        """
        Get the owner of a token.

        Raises:
            TokenNotFound: If the token is unbound
        """
        binding = await self.get_binding(token_id)
        if binding is None:
            raise TokenNotFound(token_id)
        return binding.owner

    async def metadata_ref_of(self, token_id: int) -> str:
        """
        Get the metadata reference of a token.

        Raises:
            TokenNotFound: If the token is unbound
        """
        binding = await self.get_binding(token_id)
        if binding is None:
            raise TokenNotFound(token_id)
        return binding.metadata_ref

    async def balance_of(self, owner: str) -> int:
        """Number of tokens held by an owner."""
        return len(await self.tokens_of(owner))

    async def exists(self, token_id: int) -> bool:
        return await self.get_binding(token_id) is not None
