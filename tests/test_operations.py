"""Tests for operation param structs, the request builder and calldata encoding."""

import pytest
from web3 import Web3

from swapbench import config
from swapbench.amounts import split
from swapbench.contracts import ContractRegistry
from swapbench.operations import (
    LiquidityParams,
    MintParams,
    OperationKind,
    RequestBuilder,
    SwapParams,
)

from .conftest import ENGINE, POSITION_MANAGER, TOKEN_A, TOKEN_B

NOW = 1_700_000_000


def selector(signature):
    return Web3.to_hex(Web3.keccak(text=signature)[:4])


@pytest.fixture
def builder():
    return RequestBuilder(clock=lambda: NOW + 0.9)


class TestParamValidation:

    def test_rejects_non_checksum_address(self):
        with pytest.raises(ValueError):
            MintParams(to="0x" + "ab" * 20, amount=1)

    def test_rejects_negative_amount(self):
        with pytest.raises(ValueError):
            MintParams(to=TOKEN_A, amount=-1)

    def test_rejects_bool_amount(self):
        with pytest.raises(ValueError):
            MintParams(to=TOKEN_A, amount=True)

    def test_rejects_oversized_fee(self):
        with pytest.raises(ValueError):
            SwapParams(TOKEN_A, TOKEN_B, 2 ** 24, TOKEN_A, NOW, 1)

    def test_liquidity_requires_canonical_order(self):
        with pytest.raises(ValueError):
            LiquidityParams(TOKEN_B, TOKEN_A, 3000, -10, 10, 1, 1, 0, 0, TOKEN_A, NOW)

    def test_liquidity_tick_range(self):
        with pytest.raises(ValueError):
            LiquidityParams(TOKEN_A, TOKEN_B, 3000, 10, -10, 1, 1, 0, 0, TOKEN_A, NOW)

    def test_params_are_frozen(self):
        params = MintParams(to=TOKEN_A, amount=1)
        with pytest.raises(AttributeError):
            params.amount = 2


class TestRequestBuilder:

    def test_swap_queue_fields(self, builder, identities):
        sender = identities.get(1)
        request = builder.swap_queue(ENGINE, sender, TOKEN_A, TOKEN_B, 500)

        assert request.kind is OperationKind.SWAP_QUEUE
        assert request.target == ENGINE
        assert request.sender is sender
        params = request.params
        assert params.recipient == sender.address
        assert params.deadline == NOW + 600
        assert params.amount_in == 500
        assert params.amount_out_minimum == 0
        assert params.sqrt_price_limit_x96 == 0
        assert params.fee == config.FEE_TIER
        assert request.overrides == {"gasPrice": config.GAS_PRICE}

    def test_swap_without_gas_price_override(self, identities):
        builder = RequestBuilder(gas_price=None, clock=lambda: NOW)
        request = builder.swap_queue(ENGINE, identities.get(0), TOKEN_A, TOKEN_B, 1)
        assert request.overrides == {}

    def test_add_liquidity_fields(self, builder, identities):
        provider = identities.get(2)
        pair = split(TOKEN_B, TOKEN_A, 1000, 4)
        request = builder.add_liquidity(POSITION_MANAGER, provider, pair)

        params = request.params
        assert request.kind is OperationKind.LIQUIDITY_MINT
        assert (params.token0, params.token1) == (TOKEN_A, TOKEN_B)
        assert (params.amount0_desired, params.amount1_desired) == (250, 1000)
        assert params.deadline == NOW + 1200
        assert (params.tick_lower, params.tick_upper) == (-887220, 887220)
        assert params.recipient == provider.address
        assert request.overrides == {"gas": config.LIQUIDITY_GAS_LIMIT}

    def test_token_requests(self, builder, identities):
        funder, alice, bob = identities.get(0), identities.get(1), identities.get(2)

        mint = builder.mint(TOKEN_A, funder, alice.address, 5)
        pull = builder.transfer_from(TOKEN_A, alice, bob.address, alice.address, 5)

        assert mint.sender is funder
        assert mint.params.to == alice.address
        assert pull.kind is OperationKind.TRANSFER_FROM
        assert pull.params.owner == bob.address
        assert pull.params.to == alice.address

    def test_build_dispatches_by_kind(self, builder, identities):
        request = builder.build(
            OperationKind.APPROVE,
            token=TOKEN_A, owner=identities.get(1), spender=identities.get(0).address, amount=9,
        )
        assert request.kind is OperationKind.APPROVE
        assert request.params.spender == identities.get(0).address


class TestEncoding:

    def test_mint_calldata(self, builder, identities):
        registry = ContractRegistry()
        request = builder.mint(TOKEN_A, identities.funder, identities.get(1).address, 10)

        tx = registry.encode(request)

        assert tx["to"] == TOKEN_A
        assert tx["value"] == 0
        assert tx["data"].startswith(selector("mint(address,uint256)"))
        assert tx["data"].endswith(format(10, "064x"))

    def test_transfer_from_calldata(self, builder, identities):
        registry = ContractRegistry()
        request = builder.transfer_from(
            TOKEN_A, identities.get(0), identities.get(1).address, identities.get(0).address, 3
        )
        data = registry.encode(request)["data"]
        assert data.startswith(selector("transferFrom(address,address,uint256)"))

    def test_swap_calldata_is_struct(self, builder, identities):
        registry = ContractRegistry()
        request = builder.swap_queue(ENGINE, identities.get(1), TOKEN_A, TOKEN_B, 77)

        data = registry.encode(request)["data"]

        assert data.startswith(selector(
            "queueSwapRequest((address,address,uint24,address,uint256,uint256,uint256,uint160))"
        ))
        # selector + 8 static words
        assert len(data) == 2 + 8 + 8 * 64

    def test_liquidity_calldata(self, builder, identities):
        registry = ContractRegistry()
        pair = split(TOKEN_A, TOKEN_B, 1000, 4)
        data = registry.encode(builder.add_liquidity(POSITION_MANAGER, identities.get(0), pair))["data"]
        assert data.startswith(selector(
            "mint((address,address,uint24,int24,int24,uint256,uint256,uint256,uint256,address,uint256))"
        ))
