"""Shared fixtures for the swapbench test suite."""

import asyncio
from types import SimpleNamespace

import pytest

from swapbench.config import BenchmarkConfig
from swapbench.context import RunContext
from swapbench.contracts import Deployment
from swapbench.identity import IdentityManager, NonceManager

# Hardhat's well-known development keys
KEYS = [
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
    "0x7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6",
]

TOKEN_A = "0x" + "1" * 40
TOKEN_B = "0x" + "2" * 40
TOKEN_C = "0x" + "3" * 40
ROUTER = "0x" + "4" * 40
ENGINE = "0x" + "5" * 40
POSITION_MANAGER = "0x" + "6" * 40
POOL = "0x" + "7" * 40


class FakeChain:
    """Stands in for ``Web3`` where the signer reads chain id and nonces."""

    def __init__(self, chain_id=31337, counts=None, gas_price=7):
        self.counts = dict(counts or {})
        self.count_calls = []
        self.eth = SimpleNamespace(
            chain_id=chain_id,
            gas_price=gas_price,
            get_transaction_count=self._get_transaction_count,
        )

    def _get_transaction_count(self, address, block_identifier):
        self.count_calls.append((address, block_identifier))
        return self.counts.get(address, 0)


class FakeDispatcher:
    """Records submitted requests and resolves them to successful receipts."""

    def __init__(self, balances=None):
        self.submitted = []
        self.balance_queries = []
        self.balances = balances or {}

    async def submit(self, request):
        self.submitted.append(request)
        await asyncio.sleep(0)
        return {"status": 1, "blockNumber": len(self.submitted)}

    async def query_balance(self, request):
        self.balance_queries.append(request)
        return self.balances.get(request.sender.address, 0)


@pytest.fixture
def identities():
    return IdentityManager.from_keys(KEYS)


@pytest.fixture
def deployment():
    return Deployment.from_dict({
        "tokens": [TOKEN_A, TOKEN_B, TOKEN_C],
        "router": ROUTER,
        "nettingEngine": ENGINE,
        "positionManager": POSITION_MANAGER,
        "pools": [POOL],
    })


@pytest.fixture
def context(identities, deployment):
    return RunContext.build(identities, deployment)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def nonces():
    return NonceManager()


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides):
        values = {"data_dir": tmp_path / "data"}
        values.update(overrides)
        return BenchmarkConfig(**values)
    return _make
