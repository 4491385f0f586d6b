"""
Pytest configuration and shared fixtures for the test suite.
"""

import asyncio
from typing import Iterable, List, Optional

import pytest
from pycardano import Address, Network, PaymentSigningKey, PaymentVerificationKey

from minter.config import MinterConfig, NetworkType
from minter.core.counter import TokenCounter
from minter.core.engine import BatchMintEngine
from minter.core.errors import BindError
from minter.core.events import EventBus, MintEvent
from minter.core.pricing import PriceSchedule
from minter.registry.memory import InMemoryOwnershipRegistry


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> MinterConfig:
    """Create a test configuration without persistence."""
    return MinterConfig(
        network=NetworkType.PREPROD,
        max_batch_size=50,
        unit_price=0,
        base_uri="",
        database_url=None,
        log_level="DEBUG",
    )


# ============================================================================
# Test Data Generators
# ============================================================================

def generate_test_address(network: Network = Network.TESTNET) -> str:
    """Generate a bech32 address from a fresh payment key."""
    signing_key = PaymentSigningKey.generate()
    verification_key = PaymentVerificationKey.from_signing_key(signing_key)
    return str(Address(verification_key.hash(), network=network))


def generate_refs(count: int, prefix: str = "meta") -> List[str]:
    """Generate distinct metadata references."""
    return [f"{prefix}/{i}.json" for i in range(count)]


@pytest.fixture
def recipient() -> str:
    return generate_test_address()


@pytest.fixture
def other_recipient() -> str:
    return generate_test_address()


# ============================================================================
# Engine Fixtures
# ============================================================================

class EventRecorder:
    """Collects every event published on a bus."""

    def __init__(self, bus: EventBus):
        self.events: List[MintEvent] = []
        bus.subscribe(MintEvent, self.events.append)

    def of_type(self, event_type) -> List[MintEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


class FailingRegistry(InMemoryOwnershipRegistry):
    """Registry that rejects the n-th bind call (1-based) and, optionally, some releases."""

    def __init__(self, fail_on: Optional[int] = None, stuck: Iterable[int] = ()):
        super().__init__()
        self.fail_on = fail_on
        self.stuck = set(stuck)
        self.bind_calls = 0
        self.released: List[int] = []

    async def bind(self, token_id, owner, metadata_ref):
        self.bind_calls += 1
        if self.fail_on is not None and self.bind_calls == self.fail_on:
            raise BindError(f"Storage rejected token {token_id}", token_id=token_id)
        return await super().bind(token_id, owner, metadata_ref)

    async def release(self, token_id):
        self.released.append(token_id)
        if token_id in self.stuck:
            raise RuntimeError(f"Storage unavailable while releasing {token_id}")
        return await super().release(token_id)


class StallingRegistry(InMemoryOwnershipRegistry):
    """Registry whose n-th bind call (1-based) never returns."""

    def __init__(self, stall_on: int):
        super().__init__()
        self.stall_on = stall_on
        self.bind_calls = 0
        self.stalled = asyncio.Event()

    async def bind(self, token_id, owner, metadata_ref):
        self.bind_calls += 1
        if self.bind_calls == self.stall_on:
            self.stalled.set()
            await asyncio.sleep(3600)
        return await super().bind(token_id, owner, metadata_ref)


@pytest.fixture
def counter() -> TokenCounter:
    return TokenCounter()


@pytest.fixture
def registry() -> InMemoryOwnershipRegistry:
    return InMemoryOwnershipRegistry()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus) -> EventRecorder:
    return EventRecorder(bus)


@pytest.fixture
def engine(counter, registry, bus, test_config) -> BatchMintEngine:
    """Free-minting engine with the default batch limit."""
    return BatchMintEngine(
        counter=counter,
        registry=registry,
        prices=PriceSchedule(0),
        bus=bus,
        config=test_config,
    )


@pytest.fixture
def priced_engine(counter, registry, bus, test_config) -> BatchMintEngine:
    """Engine charging 10 ADA per token."""
    return BatchMintEngine(
        counter=counter,
        registry=registry,
        prices=PriceSchedule(10_000_000),
        bus=bus,
        config=test_config,
    )
