"""
Operation requests for swapbench.
Typed parameter structs per contract method and the builder that assembles them.
"""
import time
import typing as t
from dataclasses import dataclass, field, fields
from enum import Enum

from web3 import Web3

from . import config
from .amounts import SplitResult
from .identity import Identity

UINT24_MAX = 2 ** 24 - 1
UINT160_MAX = 2 ** 160 - 1
UINT256_MAX = 2 ** 256 - 1
INT24_MIN = -(2 ** 23)
INT24_MAX = 2 ** 23 - 1


class OperationKind(Enum):
    MINT = "mint"
    TRANSFER = "transfer"
    APPROVE = "approve"
    TRANSFER_FROM = "transferFrom"
    SWAP_QUEUE = "swapQueue"
    LIQUIDITY_MINT = "liquidityMint"
    POOL_INIT = "poolInit"
    BALANCE_QUERY = "balanceQuery"

    @property
    def contract_name(self) -> str:
        return _CONTRACT_FOR_KIND[self]


_CONTRACT_FOR_KIND = {
    OperationKind.MINT: "Token",
    OperationKind.TRANSFER: "Token",
    OperationKind.APPROVE: "Token",
    OperationKind.TRANSFER_FROM: "Token",
    OperationKind.BALANCE_QUERY: "Token",
    OperationKind.SWAP_QUEUE: "NettingEngine",
    OperationKind.LIQUIDITY_MINT: "NonfungiblePositionManager",
    OperationKind.POOL_INIT: "UniswapV3Pool",
}


def _check_address(name: str, value: str) -> None:
    if not isinstance(value, str) or not Web3.is_checksum_address(value):
        raise ValueError(f"{name} must be a checksummed address, got {value!r}")


def _check_uint(name: str, value: int, upper: int = UINT256_MAX) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if not 0 <= value <= upper:
        raise ValueError(f"{name} out of range: {value}")


def _check_int24(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not INT24_MIN <= value <= INT24_MAX:
        raise ValueError(f"{name} must be an int24, got {value!r}")


class _Params:
    """Common ABI plumbing: positional args follow field order."""
    method: t.ClassVar[str]

    def as_args(self) -> t.List[t.Any]:
        return [getattr(self, f.name) for f in fields(self)]


class _StructParams(_Params):
    """Params passed to the contract as a single tuple argument."""

    def as_args(self) -> t.List[t.Any]:
        return [tuple(getattr(self, f.name) for f in fields(self))]


@dataclass(frozen=True)
class MintParams(_Params):
    method: t.ClassVar[str] = "mint"
    to: str
    amount: int

    def __post_init__(self) -> None:
        _check_address("to", self.to)
        _check_uint("amount", self.amount)


@dataclass(frozen=True)
class TransferParams(_Params):
    method: t.ClassVar[str] = "transfer"
    to: str
    amount: int

    def __post_init__(self) -> None:
        _check_address("to", self.to)
        _check_uint("amount", self.amount)


@dataclass(frozen=True)
class ApproveParams(_Params):
    method: t.ClassVar[str] = "approve"
    spender: str
    amount: int

    def __post_init__(self) -> None:
        _check_address("spender", self.spender)
        _check_uint("amount", self.amount)


@dataclass(frozen=True)
class TransferFromParams(_Params):
    method: t.ClassVar[str] = "transferFrom"
    owner: str
    to: str
    amount: int

    def __post_init__(self) -> None:
        _check_address("owner", self.owner)
        _check_address("to", self.to)
        _check_uint("amount", self.amount)


@dataclass(frozen=True)
class BalanceQueryParams(_Params):
    method: t.ClassVar[str] = "balanceOf"
    owner: str

    def __post_init__(self) -> None:
        _check_address("owner", self.owner)


@dataclass(frozen=True)
class PoolInitParams(_Params):
    method: t.ClassVar[str] = "initialize"
    sqrt_price_x96: int

    def __post_init__(self) -> None:
        _check_uint("sqrt_price_x96", self.sqrt_price_x96, UINT160_MAX)


@dataclass(frozen=True)
class SwapParams(_StructParams):
    """
    ``NettingEngine.queueSwapRequest`` argument.

    ``amount_out_minimum`` and ``sqrt_price_limit_x96`` stay 0: no slippage
    protection and no price limit.
    """
    method: t.ClassVar[str] = "queueSwapRequest"
    token_in: str
    token_out: str
    fee: int
    recipient: str
    deadline: int
    amount_in: int
    amount_out_minimum: int = 0
    sqrt_price_limit_x96: int = 0

    def __post_init__(self) -> None:
        _check_address("token_in", self.token_in)
        _check_address("token_out", self.token_out)
        _check_address("recipient", self.recipient)
        _check_uint("fee", self.fee, UINT24_MAX)
        _check_uint("deadline", self.deadline)
        _check_uint("amount_in", self.amount_in)
        _check_uint("amount_out_minimum", self.amount_out_minimum)
        _check_uint("sqrt_price_limit_x96", self.sqrt_price_limit_x96, UINT160_MAX)


@dataclass(frozen=True)
class LiquidityParams(_StructParams):
    """``NonfungiblePositionManager.mint`` argument."""
    method: t.ClassVar[str] = "mint"
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount0_desired: int
    amount1_desired: int
    amount0_min: int
    amount1_min: int
    recipient: str
    deadline: int

    def __post_init__(self) -> None:
        _check_address("token0", self.token0)
        _check_address("token1", self.token1)
        _check_address("recipient", self.recipient)
        if self.token0.lower() >= self.token1.lower():
            raise ValueError("token0 must sort before token1")
        _check_uint("fee", self.fee, UINT24_MAX)
        _check_int24("tick_lower", self.tick_lower)
        _check_int24("tick_upper", self.tick_upper)
        if self.tick_lower >= self.tick_upper:
            raise ValueError("tick_lower must be below tick_upper")
        for name in ("amount0_desired", "amount1_desired", "amount0_min", "amount1_min", "deadline"):
            _check_uint(name, getattr(self, name))


Params = t.Union[
    MintParams, TransferParams, ApproveParams, TransferFromParams,
    BalanceQueryParams, PoolInitParams, SwapParams, LiquidityParams,
]


@dataclass(frozen=True)
class OperationRequest:
    """
    One contract call originated by ``sender``. Consumed exactly once.
    """
    kind: OperationKind
    target: str
    params: Params
    sender: Identity
    overrides: t.Mapping[str, int] = field(default_factory=dict)

    def describe(self) -> str:
        return f"{self.kind.value}@{self.target[:10]} from slot {self.sender.slot}"


class RequestBuilder:
    """
    Assembles OperationRequests. Makes no network calls.

    Deadlines are wall-clock relative at build time; the contract rejects
    anything executed after them.
    """

    def __init__(
        self,
        fee: int = config.FEE_TIER,
        gas_price: t.Optional[int] = config.GAS_PRICE,
        clock: t.Callable[[], float] = time.time,
    ) -> None:
        self.fee = fee
        self.gas_price = gas_price
        self.clock = clock

    def _deadline(self, window: int) -> int:
        return int(self.clock()) + window

    def _price_override(self) -> t.Dict[str, int]:
        return {} if self.gas_price is None else {"gasPrice": self.gas_price}

    # ---------- Token operations ----------
    def mint(self, token: str, funder: Identity, to: str, amount: int) -> OperationRequest:
        return OperationRequest(OperationKind.MINT, token, MintParams(to, amount), funder)

    def transfer(self, token: str, sender: Identity, to: str, amount: int) -> OperationRequest:
        return OperationRequest(OperationKind.TRANSFER, token, TransferParams(to, amount), sender)

    def approve(self, token: str, owner: Identity, spender: str, amount: int) -> OperationRequest:
        return OperationRequest(OperationKind.APPROVE, token, ApproveParams(spender, amount), owner)

    def transfer_from(
        self, token: str, spender: Identity, owner: str, to: str, amount: int
    ) -> OperationRequest:
        return OperationRequest(
            OperationKind.TRANSFER_FROM, token, TransferFromParams(owner, to, amount), spender
        )

    def balance_query(self, token: str, owner: Identity) -> OperationRequest:
        return OperationRequest(
            OperationKind.BALANCE_QUERY, token, BalanceQueryParams(owner.address), owner
        )

    # ---------- Pool operations ----------
    def swap_queue(
        self, engine: str, sender: Identity, token_in: str, token_out: str, amount_in: int
    ) -> OperationRequest:
        params = SwapParams(
            token_in=token_in,
            token_out=token_out,
            fee=self.fee,
            recipient=sender.address,
            deadline=self._deadline(config.SWAP_DEADLINE),
            amount_in=amount_in,
        )
        return OperationRequest(
            OperationKind.SWAP_QUEUE, engine, params, sender, self._price_override()
        )

    def add_liquidity(
        self, position_manager: str, provider: Identity, pair: SplitResult
    ) -> OperationRequest:
        params = LiquidityParams(
            token0=pair.token0,
            token1=pair.token1,
            fee=self.fee,
            tick_lower=config.TICK_LOWER,
            tick_upper=config.TICK_UPPER,
            amount0_desired=pair.amount0,
            amount1_desired=pair.amount1,
            amount0_min=0,
            amount1_min=0,
            recipient=provider.address,
            deadline=self._deadline(config.LIQUIDITY_DEADLINE),
        )
        return OperationRequest(
            OperationKind.LIQUIDITY_MINT, position_manager, params, provider,
            {"gas": config.LIQUIDITY_GAS_LIMIT},
        )

    def init_pool(self, pool: str, funder: Identity, sqrt_price_x96: int) -> OperationRequest:
        return OperationRequest(
            OperationKind.POOL_INIT, pool, PoolInitParams(sqrt_price_x96), funder
        )

    def build(self, kind: OperationKind, **fields_: t.Any) -> OperationRequest:
        """
        Build a request by kind, e.g. ``build(OperationKind.MINT, token=..., funder=..., to=..., amount=...)``.
        """
        builders = {
            OperationKind.MINT: self.mint,
            OperationKind.TRANSFER: self.transfer,
            OperationKind.APPROVE: self.approve,
            OperationKind.TRANSFER_FROM: self.transfer_from,
            OperationKind.BALANCE_QUERY: self.balance_query,
            OperationKind.SWAP_QUEUE: self.swap_queue,
            OperationKind.LIQUIDITY_MINT: self.add_liquidity,
            OperationKind.POOL_INIT: self.init_pool,
        }
        return builders[kind](**fields_)
