"""
Contract handles for swapbench.
ABIs for the external contracts, deployment registry & calldata encoding.
"""
import json
import typing as t
from dataclasses import dataclass, field
from pathlib import Path

from web3 import Web3
from web3.types import TxParams

from .errors import ConfigError

if t.TYPE_CHECKING:
    from .operations import OperationRequest


def _fn(name: str, inputs: t.List[t.Dict[str, t.Any]], outputs=None) -> t.Dict[str, t.Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs or [],
        "stateMutability": "nonpayable",
    }


def _arg(name: str, type_: str) -> t.Dict[str, str]:
    return {"name": name, "type": type_}


TOKEN_ABI: t.List[t.Dict[str, t.Any]] = [
    _fn("mint", [_arg("account", "address"), _arg("amount", "uint256")]),
    _fn("transfer", [_arg("to", "address"), _arg("amount", "uint256")],
        [_arg("", "bool")]),
    _fn("approve", [_arg("spender", "address"), _arg("amount", "uint256")],
        [_arg("", "bool")]),
    _fn("transferFrom", [_arg("from", "address"), _arg("to", "address"), _arg("amount", "uint256")],
        [_arg("", "bool")]),
    _fn("balanceOf", [_arg("account", "address")], [_arg("", "uint256")]),
    {
        "type": "event",
        "name": "BalanceQuery",
        "anonymous": False,
        "inputs": [{"name": "value", "type": "uint256", "indexed": False}],
    },
]

SWAP_PARAMS_COMPONENTS = [
    _arg("tokenIn", "address"),
    _arg("tokenOut", "address"),
    _arg("fee", "uint24"),
    _arg("recipient", "address"),
    _arg("deadline", "uint256"),
    _arg("amountIn", "uint256"),
    _arg("amountOutMinimum", "uint256"),
    _arg("sqrtPriceLimitX96", "uint160"),
]

NETTING_ENGINE_ABI: t.List[t.Dict[str, t.Any]] = [
    _fn("queueSwapRequest", [
        {"name": "params", "type": "tuple", "components": SWAP_PARAMS_COMPONENTS},
    ]),
]

MINT_PARAMS_COMPONENTS = [
    _arg("token0", "address"),
    _arg("token1", "address"),
    _arg("fee", "uint24"),
    _arg("tickLower", "int24"),
    _arg("tickUpper", "int24"),
    _arg("amount0Desired", "uint256"),
    _arg("amount1Desired", "uint256"),
    _arg("amount0Min", "uint256"),
    _arg("amount1Min", "uint256"),
    _arg("recipient", "address"),
    _arg("deadline", "uint256"),
]

POSITION_MANAGER_ABI: t.List[t.Dict[str, t.Any]] = [
    _fn("mint", [
        {"name": "params", "type": "tuple", "components": MINT_PARAMS_COMPONENTS},
    ]),
]

POOL_ABI: t.List[t.Dict[str, t.Any]] = [
    _fn("initialize", [_arg("sqrtPriceX96", "uint160")]),
]

DEFAULT_ABIS: t.Dict[str, t.List[t.Dict[str, t.Any]]] = {
    "Token": TOKEN_ABI,
    "NettingEngine": NETTING_ENGINE_ABI,
    "NonfungiblePositionManager": POSITION_MANAGER_ABI,
    "UniswapV3Pool": POOL_ABI,
}


@dataclass(frozen=True)
class TokenHandle:
    """Address of a deployed token plus its display index."""
    address: str
    index: int

    @property
    def label(self) -> str:
        return f"token{self.index}"


@dataclass
class Deployment:
    """
    Addresses of the contracts a run drives.

    Deployment itself happens elsewhere; this only records the result.
    """
    tokens: t.List[TokenHandle]
    router: t.Optional[str] = None
    netting_engine: t.Optional[str] = None
    position_manager: t.Optional[str] = None
    pools: t.List[str] = field(default_factory=list)
    abis: t.Dict[str, t.List[t.Dict[str, t.Any]]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: t.Mapping[str, t.Any]) -> "Deployment":
        def checksum(value: t.Optional[str]) -> t.Optional[str]:
            if value is None:
                return None
            try:
                return Web3.to_checksum_address(value)
            except ValueError as e:
                raise ConfigError(f"Invalid address in deployment: {value!r}") from e

        tokens = [
            TokenHandle(address=checksum(addr), index=i)
            for i, addr in enumerate(data.get("tokens", []))
        ]
        if not tokens:
            raise ConfigError("Deployment lists no tokens")
        return cls(
            tokens=tokens,
            router=checksum(data.get("router")),
            netting_engine=checksum(data.get("nettingEngine")),
            position_manager=checksum(data.get("positionManager")),
            pools=[checksum(p) for p in data.get("pools", [])],
            abis=dict(data.get("abis", {})),
        )

    @classmethod
    def load(cls, path: t.Union[str, Path]) -> "Deployment":
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read deployment file {path}: {e}") from e
        return cls.from_dict(data)

    def require(self, attr: str) -> str:
        value = getattr(self, attr)
        if not value:
            raise ConfigError(f"Deployment has no {attr} address")
        return value


class ContractRegistry:
    """
    Turns an OperationRequest into ``{to, data, value}``.

    Encoding uses a provider-less Web3 so the same calldata feeds both the
    offline signer and the live dispatcher.
    """

    def __init__(self, abis: t.Optional[t.Mapping[str, t.List[t.Dict[str, t.Any]]]] = None) -> None:
        self._abis = dict(DEFAULT_ABIS)
        if abis:
            self._abis.update(abis)
        self._codec = Web3()

    def abi(self, contract_name: str) -> t.List[t.Dict[str, t.Any]]:
        try:
            return self._abis[contract_name]
        except KeyError:
            raise ConfigError(f"No ABI registered for {contract_name}") from None

    def encode(self, request: "OperationRequest") -> TxParams:
        contract = self._codec.eth.contract(
            address=request.target, abi=self.abi(request.kind.contract_name)
        )
        data = contract.encode_abi(request.params.method, args=request.params.as_args())
        return {"to": request.target, "data": data, "value": 0}
