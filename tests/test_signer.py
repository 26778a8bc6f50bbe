"""Tests for offline signing."""

import pytest
from eth_account import Account

from swapbench.contracts import ContractRegistry
from swapbench.errors import SigningError
from swapbench.identity import NonceManager
from swapbench.operations import RequestBuilder
from swapbench.signer import OfflineSigner, fill_transaction

from .conftest import ENGINE, TOKEN_A, TOKEN_B, FakeChain


@pytest.fixture
def builder():
    return RequestBuilder(clock=lambda: 1_700_000_000)


@pytest.fixture
def signer(chain, nonces):
    return OfflineSigner(chain, ContractRegistry(), nonces, gas_price=255, gas_limit=1_000_000)


class TestFillTransaction:

    def test_sets_legacy_fields(self):
        tx = fill_transaction(
            {"to": TOKEN_A, "data": "0x", "value": 0, "maxFeePerGas": 5, "from": TOKEN_B},
            nonce=3, chain_id=1, gas_price=255, gas_limit=21000,
        )
        assert tx == {
            "to": TOKEN_A, "data": "0x", "value": 0,
            "nonce": 3, "chainId": 1, "gasPrice": 255, "gas": 21000,
        }

    def test_overrides_win(self):
        tx = fill_transaction({"to": TOKEN_A}, 0, 1, 255, 21000, {"gas": 500_000_000})
        assert tx["gas"] == 500_000_000


class TestOfflineSigner:

    def test_signed_by_identity(self, signer, builder, identities):
        funder = identities.funder
        request = builder.mint(TOKEN_A, funder, identities.get(1).address, 10 ** 18)

        raw = signer.sign_offline(funder, request)

        assert raw.startswith("0x")
        assert Account.recover_transaction(raw) == funder.address

    def test_nonce_seeded_once_then_counted(self, builder, identities, nonces):
        funder = identities.funder
        chain = FakeChain(counts={funder.address: 5})
        signer = OfflineSigner(chain, ContractRegistry(), nonces)

        for _ in range(3):
            signer.sign_offline(funder, builder.mint(TOKEN_A, funder, funder.address, 1))

        assert nonces.peek(funder.address) == 8
        assert chain.count_calls == [(funder.address, "pending")]

    def test_nonces_are_per_identity(self, signer, builder, identities, nonces):
        alice, bob = identities.get(1), identities.get(2)
        signer.sign_offline(alice, builder.transfer(TOKEN_A, alice, bob.address, 1))
        signer.sign_offline(alice, builder.transfer(TOKEN_A, alice, bob.address, 1))
        signer.sign_offline(bob, builder.approve(TOKEN_A, bob, alice.address, 1))

        assert nonces.peek(alice.address) == 2
        assert nonces.peek(bob.address) == 1

    def test_populate_applies_gas_settings(self, signer, identities):
        tx = signer.populate(identities.funder, {"to": TOKEN_A, "data": "0x", "value": 0})
        assert tx["gasPrice"] == 255
        assert tx["gas"] == 1_000_000
        assert tx["chainId"] == 31337
        assert tx["nonce"] == 0

    def test_node_gas_price_when_unset(self, chain, nonces, identities):
        signer = OfflineSigner(chain, ContractRegistry(), nonces, gas_price=None)
        tx = signer.populate(identities.funder, {"to": TOKEN_A, "value": 0})
        assert tx["gasPrice"] == chain.eth.gas_price

    def test_swap_request_signs(self, signer, builder, identities):
        alice = identities.get(1)
        request = builder.swap_queue(ENGINE, alice, TOKEN_A, TOKEN_B, 100)
        raw = signer.sign_offline(alice, request)
        assert Account.recover_transaction(raw) == alice.address

    def test_deterministic_for_same_state(self, builder, identities):
        funder = identities.funder
        request = builder.mint(TOKEN_A, funder, funder.address, 42)

        first = OfflineSigner(FakeChain(), ContractRegistry(), NonceManager()).sign_offline(funder, request)
        second = OfflineSigner(FakeChain(), ContractRegistry(), NonceManager()).sign_offline(funder, request)

        assert first == second

    def test_chain_failure_is_signing_error(self, builder, identities, nonces):
        class DownChain(FakeChain):
            def _get_transaction_count(self, address, block_identifier):
                raise ConnectionError("node unreachable")

        signer = OfflineSigner(DownChain(), ContractRegistry(), nonces)
        funder = identities.funder
        with pytest.raises(SigningError) as excinfo:
            signer.sign_offline(funder, builder.mint(TOKEN_A, funder, funder.address, 1))
        assert isinstance(excinfo.value.__cause__, ConnectionError)
