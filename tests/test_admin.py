"""
Tests for administrative operations and the admin authority check.
"""

import asyncio

import pytest
from pycardano import Address, Network, PaymentSigningKey, PaymentVerificationKey

from minter.config import NetworkType
from minter.core.errors import InsufficientPayment, InvalidPrice, Unauthorized
from minter.core.events import BaseURIUpdated, MintPriceUpdated
from minter.service import AdminAuthority


def generate_key_pair():
    signing_key = PaymentSigningKey.generate()
    return signing_key, PaymentVerificationKey.from_signing_key(signing_key)


# ============================================================================
# Test Engine Admin Operations
# ============================================================================

class TestSetUnitPrice:
    """Tests for replacing the unit price."""

    @pytest.mark.asyncio
    async def test_authorized_update(self, engine, recorder):
        await engine.set_unit_price(5_000_000, authorized=True)

        assert engine.unit_price == 5_000_000
        events = recorder.of_type(MintPriceUpdated)
        assert len(events) == 1
        assert events[0].new_price == 5_000_000

    @pytest.mark.asyncio
    async def test_unauthorized_update(self, engine, recorder):
        with pytest.raises(Unauthorized):
            await engine.set_unit_price(5_000_000, authorized=False)

        assert engine.unit_price == 0
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_negative_price_rejected(self, engine):
        with pytest.raises(InvalidPrice):
            await engine.set_unit_price(-1, authorized=True)

        assert engine.unit_price == 0

    @pytest.mark.asyncio
    async def test_price_validated_under_lock(self, engine, recorder):
        """A rejected update waits its turn behind an in-flight call."""
        await engine._lock.acquire()
        task = asyncio.create_task(engine.set_unit_price(-1, authorized=True))
        await asyncio.sleep(0)

        assert not task.done()

        engine._lock.release()
        with pytest.raises(InvalidPrice):
            await task

        assert engine.unit_price == 0
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_price_change_affects_later_mints_only(self, engine, registry, recipient):
        """Raising the price changes thresholds but not completed mints."""
        first = await engine.batch_mint(recipient, 2, ["a", "b"], 0)

        await engine.set_unit_price(1_000_000, authorized=True)

        with pytest.raises(InsufficientPayment) as exc_info:
            await engine.batch_mint(recipient, 2, ["c", "d"], 1_000_000)
        assert exc_info.value.required == 2_000_000

        second = await engine.batch_mint(recipient, 2, ["c", "d"], 2_000_000)

        assert first.paid_amount == 0
        assert await registry.tokens_of(recipient) == first.token_ids + second.token_ids

    @pytest.mark.asyncio
    async def test_price_lowered_to_free(self, priced_engine, recipient):
        await priced_engine.set_unit_price(0, authorized=True)

        result = await priced_engine.batch_mint(recipient, 1, ["a"], 0)
        assert len(result) == 1


class TestSetBaseReference:
    """Tests for replacing the metadata base reference."""

    @pytest.mark.asyncio
    async def test_authorized_update(self, engine, recorder, recipient):
        result = await engine.batch_mint(recipient, 1, ["1.json"], 0)

        await engine.set_metadata_base_reference("ar://collection/", authorized=True)

        assert engine.base_uri == "ar://collection/"
        assert await engine.token_uri(result[0]) == "ar://collection/1.json"
        events = recorder.of_type(BaseURIUpdated)
        assert [e.new_base for e in events] == ["ar://collection/"]

    @pytest.mark.asyncio
    async def test_unauthorized_update(self, engine, recorder):
        with pytest.raises(Unauthorized):
            await engine.set_metadata_base_reference("evil://", authorized=False)

        assert engine.base_uri == ""
        assert recorder.events == []


# ============================================================================
# Test Admin Authority
# ============================================================================

class TestAdminAuthority:
    """Tests for resolving callers against the admin address."""

    def test_admin_is_authorized(self):
        _, vkey = generate_key_pair()
        authority = AdminAuthority.from_verification_key(vkey, NetworkType.PREPROD)

        assert authority.is_configured is True
        assert authority.is_authorized(authority.address_str) is True

    def test_other_account_not_authorized(self):
        _, admin_vkey = generate_key_pair()
        _, other_vkey = generate_key_pair()
        authority = AdminAuthority.from_verification_key(admin_vkey)
        other = str(Address(other_vkey.hash(), network=Network.TESTNET))

        assert authority.is_authorized(other) is False

    def test_same_key_with_stake_part_authorized(self):
        """Matching is by payment key, not the full address."""
        _, admin_vkey = generate_key_pair()
        _, stake_vkey = generate_key_pair()
        authority = AdminAuthority.from_verification_key(admin_vkey)
        based = str(Address(admin_vkey.hash(), stake_vkey.hash(), network=Network.TESTNET))

        assert authority.is_authorized(based) is True

    def test_other_network_not_authorized(self):
        _, vkey = generate_key_pair()
        authority = AdminAuthority.from_verification_key(vkey, NetworkType.PREPROD)
        mainnet = str(Address(vkey.hash(), network=Network.MAINNET))

        assert authority.is_authorized(mainnet) is False

    def test_malformed_caller_not_authorized(self):
        _, vkey = generate_key_pair()
        authority = AdminAuthority.from_verification_key(vkey)

        assert authority.is_authorized("not-an-address") is False
        assert authority.is_authorized("") is False
        assert authority.is_authorized(None) is False

    def test_unconfigured_authority_denies_everyone(self):
        _, vkey = generate_key_pair()
        authority = AdminAuthority(None)
        caller = str(Address(vkey.hash(), network=Network.TESTNET))

        assert authority.is_configured is False
        assert authority.is_authorized(caller) is False
