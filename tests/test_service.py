"""
Tests for the mint service hosting boundary.
"""

from datetime import datetime

import pytest
from pycardano import Address, Network, PaymentSigningKey, PaymentVerificationKey

from minter.config import MinterConfig, NetworkType
from minter.core.errors import BindError, InvalidRecipient, MetadataCountMismatch, Unauthorized
from minter.core.events import BatchMinted
from minter.registry.interface import TokenBinding
from minter.registry.memory import InMemoryOwnershipRegistry
from minter.service import MintService


def new_address() -> str:
    vkey = PaymentVerificationKey.from_signing_key(PaymentSigningKey.generate())
    return str(Address(vkey.hash(), network=Network.TESTNET))


@pytest.fixture
def admin_address() -> str:
    return new_address()


@pytest.fixture
def service_config(tmp_path, admin_address) -> MinterConfig:
    return MinterConfig(
        network=NetworkType.PREPROD,
        unit_price=1_000_000,
        base_uri="ipfs://collection/",
        admin_address=admin_address,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'minter.db'}",
        log_level="DEBUG",
    )


@pytest.fixture
async def service(service_config):
    svc = MintService(service_config)
    await svc.initialize()
    yield svc
    await svc.shutdown()


class TestMintService:
    """Tests for minting through the service."""

    @pytest.mark.asyncio
    async def test_mint_counts_references(self, service, recipient):
        result = await service.mint(recipient, ["1.json", "2.json"], 2_000_000)

        assert result.token_ids == [1, 2]
        assert service.get_current_token_id() == 2
        assert await service.tokens_of(recipient) == [1, 2]
        assert await service.owner_of(2) == recipient
        assert await service.token_uri(2) == "ipfs://collection/2.json"

    @pytest.mark.asyncio
    async def test_explicit_count_still_validated(self, service, recipient):
        with pytest.raises(MetadataCountMismatch):
            await service.mint(recipient, ["1.json"], 3_000_000, count=3)

        assert service.get_current_token_id() == 0

    @pytest.mark.asyncio
    async def test_invalid_recipient(self, service):
        with pytest.raises(InvalidRecipient):
            await service.mint("not-an-address", ["1.json"], 1_000_000)
        with pytest.raises(InvalidRecipient):
            await service.mint("", ["1.json"], 1_000_000)

        assert service.get_current_token_id() == 0

    @pytest.mark.asyncio
    async def test_events_reach_shared_bus(self, service, recipient):
        await service.mint(recipient, ["1.json"], 1_000_000)

        minted = service.bus.history(BatchMinted)
        assert len(minted) == 1
        assert minted[0].token_ids == (1,)

    @pytest.mark.asyncio
    async def test_engine_requires_initialize(self, service_config):
        svc = MintService(service_config)

        with pytest.raises(RuntimeError):
            svc.get_current_token_id()

    @pytest.mark.asyncio
    async def test_in_memory_without_database(self, recipient):
        config = MinterConfig(database_url=None, log_level="DEBUG")
        svc = MintService(config)
        await svc.initialize()

        assert isinstance(svc.registry, InMemoryOwnershipRegistry)
        result = await svc.mint(recipient, ["a", "b", "c"], 0)
        assert result.token_ids == [1, 2, 3]
        await svc.shutdown()


class TestServiceAdministration:
    """Tests for admin operations gated by the authority."""

    @pytest.mark.asyncio
    async def test_admin_sets_price(self, service, admin_address, recipient):
        await service.set_mint_price(admin_address, 5_000_000)

        assert service.engine.unit_price == 5_000_000
        result = await service.mint(recipient, ["1.json"], 5_000_000)
        assert len(result) == 1

    @pytest.mark.asyncio
    async def test_non_admin_cannot_set_price(self, service, recipient):
        with pytest.raises(Unauthorized):
            await service.set_mint_price(recipient, 0)

        assert service.engine.unit_price == 1_000_000

    @pytest.mark.asyncio
    async def test_admin_sets_base_uri(self, service, admin_address, recipient):
        await service.mint(recipient, ["1.json"], 1_000_000)
        await service.set_base_uri(admin_address, "ar://moved/")

        assert await service.token_uri(1) == "ar://moved/1.json"

    @pytest.mark.asyncio
    async def test_non_admin_cannot_set_base_uri(self, service, recipient):
        with pytest.raises(Unauthorized):
            await service.set_base_uri(recipient, "ar://moved/")

        assert service.engine.base_uri == "ipfs://collection/"


class TestServicePersistence:
    """Tests that ledger state survives a restart."""

    @pytest.mark.asyncio
    async def test_restart_resumes_allocation(self, service_config, admin_address, recipient):
        first = MintService(service_config)
        await first.initialize()
        await first.mint(recipient, ["1.json", "2.json", "3.json"], 3_000_000)
        await first.set_mint_price(admin_address, 2_000_000)
        await first.set_base_uri(admin_address, "ar://v2/")
        await first.shutdown()

        second = MintService(service_config)
        await second.initialize()
        try:
            assert second.get_current_token_id() == 3
            assert second.engine.unit_price == 2_000_000
            assert second.engine.base_uri == "ar://v2/"

            result = await second.mint(recipient, ["4.json"], 2_000_000)
            assert result.token_ids == [4]
            assert await second.tokens_of(recipient) == [1, 2, 3, 4]
        finally:
            await second.shutdown()

    @pytest.mark.asyncio
    async def test_failed_mint_not_persisted(self, service_config, recipient):
        first = MintService(service_config)
        await first.initialize()
        await first.mint(recipient, ["1.json"], 1_000_000)
        with pytest.raises(MetadataCountMismatch):
            await first.mint(recipient, ["2.json"], 5_000_000, count=2)
        await first.shutdown()

        second = MintService(service_config)
        await second.initialize()
        try:
            assert second.get_current_token_id() == 1
        finally:
            await second.shutdown()

    @pytest.mark.asyncio
    async def test_stats(self, service, recipient, admin_address):
        await service.mint(recipient, ["1.json", "2.json"], 2_000_000)

        stats = await service.get_stats()
        assert stats["initialized"] is True
        assert stats["admin_address"] == admin_address
        assert stats["total_supply"] == 2
        assert stats["engine"]["current_token_id"] == 2
        assert stats["events"]["published"] == 1

    @pytest.mark.asyncio
    async def test_restart_resumes_past_unsaved_bindings(self, service_config, recipient):
        """A binding stored without a ledger-state save is never reallocated."""
        first = MintService(service_config)
        await first.initialize()
        await first.mint(recipient, ["1.json", "2.json"], 2_000_000)
        await first._database.insert_binding(TokenBinding(
            token_id=5,
            owner=recipient,
            metadata_ref="5.json",
            bound_at=datetime.utcnow(),
        ))
        await first.shutdown()

        second = MintService(service_config)
        await second.initialize()
        try:
            assert second.get_current_token_id() == 5

            result = await second.mint(recipient, ["6.json"], 1_000_000)
            assert result.token_ids == [6]
            assert await second.tokens_of(recipient) == [1, 2, 5, 6]
        finally:
            await second.shutdown()


class TestServiceRollback:
    """Tests that a failed mint leaves the database untouched."""

    @pytest.mark.asyncio
    async def test_storage_failure_rolls_back_rows(self, service, monkeypatch, recipient):
        await service.mint(recipient, ["1.json"], 1_000_000)

        database = service._database
        insert_binding = database.insert_binding
        calls = []

        async def flaky_insert(binding):
            calls.append(binding.token_id)
            if len(calls) == 3:
                raise BindError("disk full", token_id=binding.token_id)
            await insert_binding(binding)

        monkeypatch.setattr(database, "insert_binding", flaky_insert)

        with pytest.raises(BindError):
            await service.mint(recipient, ["2.json", "3.json", "4.json"], 3_000_000)

        assert calls == [2, 3, 4]
        assert await database.count_tokens() == 1
        assert await service.tokens_of(recipient) == [1]
        assert service.get_current_token_id() == 1

        stored = await database.load_ledger_state()
        assert stored.current_token_id == 1

    @pytest.mark.asyncio
    async def test_collision_rolls_back_rows(self, service, recipient, other_recipient):
        await service.mint(recipient, ["1.json"], 1_000_000)
        await service._database.insert_binding(TokenBinding(
            token_id=3,
            owner=other_recipient,
            metadata_ref="taken.json",
            bound_at=datetime.utcnow(),
        ))

        with pytest.raises(BindError) as exc_info:
            await service.mint(recipient, ["2.json", "3.json"], 2_000_000)

        assert exc_info.value.token_id == 3
        assert await service.tokens_of(recipient) == [1]
        assert await service.owner_of(3) == other_recipient
        assert await service._database.count_tokens() == 2
        assert service.get_current_token_id() == 1
