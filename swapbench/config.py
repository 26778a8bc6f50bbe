"""
Configuration module for swapbench.
Single source of truth for workload constants & network settings.
"""
import json
import typing as t
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

# Constants
UNIT: int = 10 ** 18                 # one whole token with 18 decimals
FEE_TIER: int = 3000                 # 0.3% pool
GAS_PRICE: int = 255                 # fixed gas price keeps bundles reproducible
TX_GAS_LIMIT: int = 5_000_000
LIQUIDITY_GAS_LIMIT: int = 500_000_000
RECEIPT_TIMEOUT: int = 120           # seconds
RECEIPT_POLL_LATENCY: float = 0.5

# Workload
TOKEN_COUNT: int = 10
POOL_STYLE: int = 2                  # 2 - (A B) (C D), 1 - (A B) (B C) (C D)
FLUSH_THRESHOLD: int = 100
SQRT_PRICE_RATE: int = 2             # sqrtPriceX96 = 2^96 * rate, price = rate^2
RANDOM_SEED: int = 7
HD_ACCOUNT_COUNT: int = 20           # hardhat default for mnemonic accounts

# Swap / liquidity parameters
SWAP_DEADLINE: int = 60 * 10
LIQUIDITY_DEADLINE: int = 60 * 20
TICK_LOWER: int = -887220
TICK_UPPER: int = 887220
LIQUIDITY_NOMINAL: int = 80_000_000 * UNIT
Q96: int = 2 ** 96

# Output
DATA_DIR: str = "data"
LOG_DIR: str = "logs"

MODES = ("live", "offline")
WORKLOADS = ("token", "swap")


@dataclass(frozen=True)
class NetworkConfig:
    """Endpoint and signing accounts for one named network."""
    name: str
    url: str
    keys: t.Tuple[str, ...] = ()
    mnemonic: t.Optional[str] = None
    count: int = 0


@dataclass
class BenchmarkConfig:
    """
    Workload parameters for one run.

    Defaults come from the module constants; the CLI overrides them.
    """
    workload: str = "token"
    mode: str = "offline"
    token_count: int = TOKEN_COUNT
    participant_count: t.Optional[int] = None  # None: every configured key
    pool_style: int = POOL_STYLE
    flush_threshold: int = FLUSH_THRESHOLD
    sqrt_price_rate: int = SQRT_PRICE_RATE
    fee: int = FEE_TIER
    unit: int = UNIT
    gas_price: t.Optional[int] = GAS_PRICE
    gas_limit: int = TX_GAS_LIMIT
    liquidity_nominal: int = LIQUIDITY_NOMINAL
    receipt_timeout: float = RECEIPT_TIMEOUT
    phase_barrier: bool = False
    init_pools: bool = False
    provision_liquidity: bool = False
    report_balances: bool = False
    seed: int = RANDOM_SEED
    data_dir: Path = field(default_factory=lambda: Path(DATA_DIR))

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ConfigError(f"Unknown mode {self.mode!r}, expected one of {MODES}")
        if self.workload not in WORKLOADS:
            raise ConfigError(f"Unknown workload {self.workload!r}, expected one of {WORKLOADS}")
        if self.pool_style not in (1, 2):
            raise ConfigError(f"pool_style must be 1 or 2, got {self.pool_style}")
        if self.flush_threshold < 1:
            raise ConfigError("flush_threshold must be at least 1")
        if self.sqrt_price_rate < 1:
            raise ConfigError("sqrt_price_rate must be at least 1")
        self.data_dir = Path(self.data_dir)

    @property
    def price_ratio(self) -> int:
        return self.sqrt_price_rate * self.sqrt_price_rate

    @property
    def sqrt_price_x96(self) -> int:
        return Q96 * self.sqrt_price_rate


def load_network(path: t.Union[str, Path], name: str) -> NetworkConfig:
    """
    Load a named network entry from a hardhat style ``network.json``.

    Expected layout, with either a key list or hardhat's HD account form::

        {"<name>": {"url": "http://...", "accounts": ["0x<private key>", ...]}}
        {"<name>": {"url": "http://...", "accounts": {"mnemonic": "...", "count": 20}}}
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            nets = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read network file {path}: {e}") from e

    if name not in nets:
        raise ConfigError(f"Network {name!r} not found in {path} (have: {sorted(nets)})")
    entry = nets[name]
    url = entry.get("url")
    accounts = entry.get("accounts") or []
    if not url:
        raise ConfigError(f"Network {name!r} has no url")

    if isinstance(accounts, dict):
        mnemonic = accounts.get("mnemonic")
        count = accounts.get("count", HD_ACCOUNT_COUNT)
        if not mnemonic:
            raise ConfigError(f"Network {name!r} has an accounts object without a mnemonic")
        if not isinstance(count, int) or count < 1:
            raise ConfigError(f"Network {name!r} account count must be a positive integer, got {count!r}")
        return NetworkConfig(name=name, url=url, mnemonic=mnemonic, count=count)

    if not accounts:
        raise ConfigError(f"Network {name!r} has no accounts")
    return NetworkConfig(name=name, url=url, keys=tuple(accounts))
