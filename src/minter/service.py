"""
Mint service.

Hosting boundary around the engine: resolves callers against the
administrative authority, validates recipient addresses and persists
ledger state between runs.
"""

from typing import List, Optional, Sequence

import structlog
from pycardano import Address, Network, PaymentVerificationKey

from minter.config import MinterConfig, NetworkType, get_config
from minter.core.counter import TokenCounter
from minter.core.engine import BatchMintEngine
from minter.core.errors import InvalidRecipient
from minter.core.events import EventBus
from minter.core.pricing import PriceSchedule
from minter.core.request import MintResult
from minter.registry.database import Database, DatabaseOwnershipRegistry, LedgerState
from minter.registry.interface import OwnershipRegistry
from minter.registry.memory import InMemoryOwnershipRegistry

logger = structlog.get_logger(__name__)


def parse_address(value: str) -> Address:
    """
    Parse a bech32 Cardano address.

    Raises:
        InvalidRecipient: If the value is not a valid address
    """
    if not value:
        raise InvalidRecipient(value, "empty address")
    try:
        return Address.from_primitive(value)
    except Exception as e:
        raise InvalidRecipient(value, str(e)) from e


class AdminAuthority:
    """
    The single account allowed to change pricing and metadata configuration.

    Callers are matched by payment key hash, so any address built from the
    admin's payment key is accepted regardless of its staking part.
    """

    def __init__(self, admin_address: Optional[str]):
        self._address: Optional[Address] = None
        if admin_address:
            self._address = parse_address(admin_address)

    @classmethod
    def from_verification_key(
        cls,
        verification_key: PaymentVerificationKey,
        network: NetworkType = NetworkType.PREPROD,
    ) -> "AdminAuthority":
        """Build an authority from the admin's payment verification key."""
        cardano_network = Network.MAINNET if network == NetworkType.MAINNET else Network.TESTNET
        address = Address(verification_key.hash(), network=cardano_network)
        return cls(str(address))

    @property
    def address_str(self) -> Optional[str]:
        return str(self._address) if self._address else None

    @property
    def is_configured(self) -> bool:
        return self._address is not None

    def is_authorized(self, caller: Optional[str]) -> bool:
        """Check whether `caller` is the administrative account."""
        if self._address is None or not caller:
            return False
        try:
            caller_address = Address.from_primitive(caller)
        except Exception:
            logger.debug("caller_address_unparseable", caller=caller[:30])
            return False
        return (
            caller_address.payment_part == self._address.payment_part
            and caller_address.network == self._address.network
        )


class MintService:
    """
    Runs the mint engine behind an authority check and persistence.

    Usage:
        ```python
        service = MintService(config)
        await service.initialize()
        result = await service.mint("addr_test1...", ["1.json", "2.json"], 20_000_000)
        await service.shutdown()
        ```
    """

    def __init__(
        self,
        config: Optional[MinterConfig] = None,
        registry: Optional[OwnershipRegistry] = None,
        bus: Optional[EventBus] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Minter configuration
            registry: Custom ownership registry (database-backed if not provided
                and a database URL is configured, in-memory otherwise)
            bus: Event bus shared with observers
        """
        self.config = config or get_config()
        self.authority = AdminAuthority(self.config.admin_address)
        self.bus = bus or EventBus(self.config.event_history_size)

        self._database: Optional[Database] = None
        if registry is not None:
            self.registry = registry
        elif self.config.database_url:
            self._database = Database(self.config)
            self.registry = DatabaseOwnershipRegistry(self._database)
        else:
            self.registry = InMemoryOwnershipRegistry()

        self._engine: Optional[BatchMintEngine] = None
        self._initialized = False

    @property
    def engine(self) -> BatchMintEngine:
        if not self._engine:
            raise RuntimeError("Mint service not initialized")
        return self._engine

    async def initialize(self) -> None:
        """
        Connect storage and build the engine from persisted state.

        Must be called before minting.
        """
        if self._initialized:
            return

        await self.registry.connect()

        state = LedgerState(
            unit_price=self.config.unit_price,
            base_uri=self.config.base_uri,
        )
        if self._database:
            stored = await self._database.load_ledger_state()
            if stored:
                state = stored
                logger.info(
                    "ledger_state_restored",
                    current_token_id=stored.current_token_id,
                    unit_price=stored.unit_price,
                )

            # Bindings can outlive a ledger-state save that never happened
            highest = await self._database.max_token_id()
            if highest > state.current_token_id:
                logger.warning(
                    "counter_behind_bindings",
                    stored_token_id=state.current_token_id,
                    highest_bound_id=highest,
                )
                state.current_token_id = highest

        self._engine = BatchMintEngine(
            counter=TokenCounter(
                start=state.current_token_id,
                max_value=self.config.max_token_id,
            ),
            registry=self.registry,
            prices=PriceSchedule(state.unit_price),
            bus=self.bus,
            base_uri=state.base_uri,
            config=self.config,
        )

        self._initialized = True
        logger.info(
            "mint_service_initialized",
            admin_configured=self.authority.is_configured,
            max_batch_size=self._engine.max_batch_size,
        )

    async def shutdown(self) -> None:
        """Release storage resources."""
        await self.registry.disconnect()
        self._initialized = False
        logger.info("mint_service_shutdown")

    async def _persist_state(self) -> None:
        if not self._database:
            return
        await self._database.save_ledger_state(LedgerState(
            current_token_id=self.engine.get_current_token_id(),
            unit_price=self.engine.unit_price,
            base_uri=self.engine.base_uri,
        ))

    # Public API methods

    async def mint(
        self,
        recipient: str,
        metadata_refs: Sequence[str],
        payment_amount: int,
        count: Optional[int] = None,
    ) -> MintResult:
        """
        Mint one token per metadata reference to `recipient`.

        Args:
            recipient: Bech32 address receiving the tokens
            metadata_refs: Per-token metadata references
            payment_amount: Amount attached, in lovelace
            count: Explicit count (defaults to the number of references)

        Raises:
            InvalidRecipient: If the recipient is not a valid address
            MintError: Any engine failure
        """
        parse_address(recipient)
        if count is None:
            count = len(metadata_refs)

        result = await self.engine.batch_mint(recipient, count, metadata_refs, payment_amount)
        await self._persist_state()
        return result

    async def set_mint_price(self, caller: str, new_price: int) -> None:
        """Replace the unit price if `caller` is the administrative authority."""
        await self.engine.set_unit_price(new_price, self.authority.is_authorized(caller))
        await self._persist_state()

    async def set_base_uri(self, caller: str, new_base: str) -> None:
        """Replace the metadata base reference if `caller` is the administrative authority."""
        await self.engine.set_metadata_base_reference(new_base, self.authority.is_authorized(caller))
        await self._persist_state()

    def get_current_token_id(self) -> int:
        return self.engine.get_current_token_id()

    async def owner_of(self, token_id: int) -> str:
        return await self.registry.owner_of(token_id)

    async def tokens_of(self, owner: str) -> List[int]:
        return await self.registry.tokens_of(owner)

    async def token_uri(self, token_id: int) -> str:
        return await self.engine.token_uri(token_id)

    async def get_stats(self) -> dict:
        """Get service statistics."""
        return {
            "initialized": self._initialized,
            "admin_address": self.authority.address_str,
            "total_supply": await self.registry.total_supply(),
            "engine": self.engine.get_stats() if self._engine else {},
            "events": self.bus.get_stats(),
        }
