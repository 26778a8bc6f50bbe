"""
Identity management for swapbench.
Deterministic Account & Nonce Management.
"""
import threading
import typing as t
from collections import defaultdict
from dataclasses import dataclass

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .errors import ConfigError

if t.TYPE_CHECKING:
    from .config import NetworkConfig

Account.enable_unaudited_hdwallet_features()


@dataclass(frozen=True)
class Identity:
    """A signing credential plus its on-chain address."""
    slot: int
    account: LocalAccount

    @property
    def address(self) -> str:
        return self.account.address

    def __repr__(self) -> str:
        return f"Identity(slot={self.slot}, address={self.address})"


# Nonce Manager
class NonceManager:
    """
    Local nonce counting, seeded once per address from the chain.

    Seed-and-increment runs under a per-address lock so two signing steps for
    the same identity never receive the same nonce.
    """

    def __init__(self) -> None:
        self._nonces: t.Dict[str, int] = {}
        self._locks: t.Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._guard = threading.Lock()

    def _lock_for(self, address: str) -> threading.Lock:
        with self._guard:
            return self._locks[address]

    def is_seeded(self, address: str) -> bool:
        return address in self._nonces

    def seed(self, address: str, nonce: int) -> None:
        """
        Record the on-chain nonce for address. A second seed is ignored.
        """
        with self._lock_for(address):
            self._nonces.setdefault(address, nonce)

    def reserve(self, address: str, fetch: t.Optional[t.Callable[[str], int]] = None) -> int:
        """
        Return the next nonce for address, then increment it.

        If the address was never seeded, ``fetch(address)`` supplies the
        starting value (0 when no fetch is given).
        """
        with self._lock_for(address):
            if address not in self._nonces:
                self._nonces[address] = fetch(address) if fetch is not None else 0
            nonce = self._nonces[address]
            self._nonces[address] = nonce + 1
            return nonce

    def peek(self, address: str) -> t.Optional[int]:
        """
        Return current nonce without incrementing.
        """
        return self._nonces.get(address)

    def release(self, address: str, nonce: int) -> bool:
        """
        Give back a nonce whose transaction never reached the node.

        Only the most recently reserved nonce can be returned; otherwise the
        counter is left alone and False is returned.
        """
        with self._lock_for(address):
            if self._nonces.get(address) != nonce + 1:
                return False
            self._nonces[address] = nonce
            return True


# Identity Manager
class IdentityManager:
    """
    Ordered set of identities indexed by participant slot.

    Slot 0 is the funding identity that mints tokens.
    """

    def __init__(self, accounts: t.Sequence[LocalAccount]) -> None:
        if not accounts:
            raise ConfigError("At least one signing key is required")
        self._identities = [Identity(slot=i, account=acct) for i, acct in enumerate(accounts)]

    @classmethod
    def from_keys(cls, keys: t.Iterable[str]) -> "IdentityManager":
        return cls([Account.from_key(key) for key in keys])

    @classmethod
    def from_mnemonic(cls, mnemonic: str, count: int) -> "IdentityManager":
        """
        Derive ``count`` accounts at m/44'/60'/0'/0/{index}.
        """
        accounts = [
            Account.from_mnemonic(mnemonic, account_path=f"m/44'/60'/0'/0/{index}")
            for index in range(count)
        ]
        return cls(accounts)

    @classmethod
    def from_network(cls, net: "NetworkConfig") -> "IdentityManager":
        """Identities for a network entry, from its key list or its HD mnemonic."""
        if net.mnemonic:
            return cls.from_mnemonic(net.mnemonic, net.count)
        return cls.from_keys(net.keys)

    @property
    def funder(self) -> Identity:
        return self._identities[0]

    def get(self, slot: int) -> Identity:
        try:
            return self._identities[slot]
        except IndexError:
            raise ConfigError(
                f"No identity for slot {slot}; only {len(self._identities)} keys configured"
            ) from None

    def __len__(self) -> int:
        return len(self._identities)

    def __iter__(self) -> t.Iterator[Identity]:
        return iter(self._identities)
