"""
Batch mint engine.

Validates mint requests, allocates token IDs and binds them to owners.
"""

import asyncio
from datetime import datetime
from typing import List, Optional, Sequence

import structlog

from minter.config import MinterConfig, get_config
from minter.core.counter import TokenCounter
from minter.core.errors import (
    BatchTooLarge,
    InsufficientPayment,
    InvalidCount,
    InvalidPrice,
    MetadataCountMismatch,
    MintError,
    Unauthorized,
)
from minter.core.events import BaseURIUpdated, BatchMinted, EventBus, MintPriceUpdated
from minter.core.pricing import PriceSchedule
from minter.core.request import MintRequest, MintResult
from minter.registry.interface import OwnershipRegistry

logger = structlog.get_logger(__name__)


class BatchMintEngine:
    """
    Allocation, ownership and payment engine behind batch minting.

    A call either mints every requested token or leaves no trace: bindings
    made before a failure are released and the counter is restored.

    Usage:
        ```python
        engine = BatchMintEngine(counter=TokenCounter(), registry=registry)
        result = await engine.batch_mint("addr1...", 2, ["a.json", "b.json"], 0)
        ```
    """

    def __init__(
        self,
        counter: TokenCounter,
        registry: OwnershipRegistry,
        prices: Optional[PriceSchedule] = None,
        bus: Optional[EventBus] = None,
        base_uri: str = "",
        max_batch_size: Optional[int] = None,
        config: Optional[MinterConfig] = None,
    ):
        """
        Initialize the engine.

        Args:
            counter: Token ID counter owned by the caller
            registry: Ownership registry receiving bindings
            prices: Price schedule (unit price from config if not provided)
            bus: Event bus for notifications
            base_uri: Shared prefix for token metadata references
            max_batch_size: Largest legal batch (from config if not provided)
            config: Minter configuration
        """
        self.config = config or get_config()
        self.counter = counter
        self.registry = registry
        self.prices = prices or PriceSchedule(self.config.unit_price)
        self.bus = bus or EventBus(self.config.event_history_size)
        self.max_batch_size = (
            max_batch_size if max_batch_size is not None else self.config.max_batch_size
        )

        self._base_uri = base_uri

        # Serializes mint and admin calls
        self._lock = asyncio.Lock()

        self._last_mint_time: Optional[datetime] = None
        self._stats = {
            "total_minted": 0,
            "batches_minted": 0,
            "batches_rejected": 0,
            "batches_rolled_back": 0,
        }

    # Queries

    def get_current_token_id(self) -> int:
        """Last allocated token ID (0 if none)."""
        return self.counter.current

    @property
    def unit_price(self) -> int:
        return self.prices.unit_price

    @property
    def base_uri(self) -> str:
        return self._base_uri

    async def token_uri(self, token_id: int) -> str:
        """
        Full metadata URI of a token.

        Raises:
            TokenNotFound: If the token does not exist
        """
        metadata_ref = await self.registry.metadata_ref_of(token_id)
        return f"{self._base_uri}{metadata_ref}"

    # Minting

    async def batch_mint(
        self,
        recipient: str,
        count: int,
        metadata_refs: Sequence[str],
        payment_amount: int,
    ) -> MintResult:
        """
        Mint `count` tokens to `recipient`.

        Args:
            recipient: Account receiving the tokens
            count: Number of tokens to mint
            metadata_refs: One metadata reference per token
            payment_amount: Amount attached to the call

        Returns:
            MintResult with token IDs in allocation order

        Raises:
            InvalidCount: If count is not positive
            BatchTooLarge: If count exceeds the maximum batch size
            MetadataCountMismatch: If the reference count differs from count
            InsufficientPayment: If payment is below unit price times count
            Overflow: If the price or counter overflows
            BindError: If the registry rejects a binding
        """
        request = MintRequest(
            recipient=recipient,
            count=count,
            metadata_refs=metadata_refs,
            payment_amount=payment_amount,
        )

        async with self._lock:
            try:
                self._validate(request)
            except MintError as e:
                request.mark_failed(str(e))
                self._stats["batches_rejected"] += 1
                logger.warning(
                    "batch_mint_rejected",
                    request_id=request.request_id,
                    error=type(e).__name__,
                    reason=str(e),
                )
                raise

            token_ids = await self._allocate(request)

            request.mark_minted()
            self._stats["total_minted"] += len(token_ids)
            self._stats["batches_minted"] += 1
            self._last_mint_time = datetime.utcnow()

            result = MintResult(
                request_id=request.request_id,
                recipient=request.recipient,
                token_ids=token_ids,
                paid_amount=request.payment_amount,
            )

            logger.info(
                "batch_minted",
                request_id=request.request_id,
                recipient=recipient,
                count=count,
                first_token_id=result.first_token_id,
                last_token_id=result.last_token_id,
            )

            self.bus.publish(BatchMinted(
                recipient=recipient,
                token_ids=tuple(token_ids),
            ))
            return result

    def _validate(self, request: MintRequest) -> None:
        """Check a request; the first failing rule wins."""
        if request.count <= 0:
            raise InvalidCount(request.count)

        if request.count > self.max_batch_size:
            raise BatchTooLarge(request.count, self.max_batch_size)

        if len(request.metadata_refs) != request.count:
            raise MetadataCountMismatch(request.count, len(request.metadata_refs))

        required = self.prices.quote(request.count)
        if request.payment_amount < required:
            raise InsufficientPayment(required, request.payment_amount)

    async def _allocate(self, request: MintRequest) -> List[int]:
        """Allocate and bind one token per metadata reference."""
        token_ids: List[int] = []
        leaked: List[int] = []

        try:
            with self.counter.transaction():
                try:
                    for metadata_ref in request.metadata_refs:
                        token_id = self.counter.next()
                        await self.registry.bind(token_id, request.recipient, metadata_ref)
                        token_ids.append(token_id)
                except BaseException:
                    # Runs to completion even if the call is being cancelled
                    leaked = await asyncio.shield(self._release(token_ids))
                    raise
        except BaseException as e:
            if leaked:
                self._skip_past(max(leaked))
            request.mark_failed(str(e) or type(e).__name__)
            self._stats["batches_rolled_back"] += 1
            logger.error(
                "batch_mint_rolled_back",
                request_id=request.request_id,
                bound_before_failure=len(token_ids),
                leaked_token_ids=leaked,
                error=type(e).__name__,
                reason=str(e),
            )
            raise

        return token_ids

    async def _release(self, token_ids: List[int]) -> List[int]:
        """
        Undo bindings made by a failed call, newest first.

        Every binding is attempted even if an earlier release fails.

        Returns:
            Token IDs whose binding could not be released
        """
        failed: List[int] = []
        for token_id in reversed(token_ids):
            try:
                await self.registry.release(token_id)
            except Exception as e:
                failed.append(token_id)
                logger.error("token_release_failed", token_id=token_id, error=str(e))
        return failed

    def _skip_past(self, token_id: int) -> None:
        """Advance the counter so a binding that could not be released is never reallocated."""
        while self.counter.current < token_id:
            self.counter.next()

    # Administrative operations

    async def set_unit_price(self, new_price: int, authorized: bool) -> None:
        """
        Replace the unit price.

        Args:
            new_price: New price per token
            authorized: Whether the hosting boundary authorized the caller

        Raises:
            Unauthorized: If the caller is not the administrative authority
            InvalidPrice: If the price is negative
        """
        if not authorized:
            logger.warning("unauthorized_admin_call", operation="set_unit_price")
            raise Unauthorized("set unit price")

        async with self._lock:
            if new_price < 0:
                raise InvalidPrice(new_price)
            old_price = self.prices.unit_price
            self.prices.unit_price = new_price

        logger.info("mint_price_updated", old_price=old_price, new_price=new_price)
        self.bus.publish(MintPriceUpdated(new_price=new_price))

    async def set_metadata_base_reference(self, new_base: str, authorized: bool) -> None:
        """
        Replace the shared metadata prefix.

        Raises:
            Unauthorized: If the caller is not the administrative authority
        """
        if not authorized:
            logger.warning("unauthorized_admin_call", operation="set_metadata_base_reference")
            raise Unauthorized("set metadata base reference")

        async with self._lock:
            self._base_uri = new_base

        logger.info("base_uri_updated", new_base=new_base)
        self.bus.publish(BaseURIUpdated(new_base=new_base))

    # Statistics and monitoring

    def get_stats(self) -> dict:
        """Get engine statistics."""
        return {
            "current_token_id": self.counter.current,
            "unit_price": self.prices.unit_price,
            "base_uri": self._base_uri,
            "max_batch_size": self.max_batch_size,
            "last_mint_time": self._last_mint_time.isoformat() if self._last_mint_time else None,
            **self._stats,
        }
