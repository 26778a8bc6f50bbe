"""
Offline signing for swapbench.
Populates and signs transactions locally without broadcasting them.
"""
import logging
import typing as t

from web3 import Web3
from web3.types import TxParams

from . import config
from .contracts import ContractRegistry
from .errors import SigningError
from .identity import Identity, NonceManager
from .operations import OperationRequest

logger = logging.getLogger(__name__)


def fill_transaction(
    tx: TxParams,
    nonce: int,
    chain_id: int,
    gas_price: int,
    gas_limit: int,
    overrides: t.Optional[t.Mapping[str, int]] = None,
) -> TxParams:
    """
    Return a legacy transaction with every field set.

    Explicit overrides win over the defaults passed in.
    """
    filled = dict(tx)
    filled.update({
        "nonce": nonce,
        "chainId": chain_id,
        "gasPrice": gas_price,
        "gas": gas_limit,
    })
    filled.update(overrides or {})
    # Legacy format only
    filled.pop("maxFeePerGas", None)
    filled.pop("maxPriorityFeePerGas", None)
    filled.pop("from", None)
    return {k: v for k, v in filled.items() if v is not None}


class OfflineSigner:
    """
    Produces signed raw transactions for later replay.

    Nonces come from the shared NonceManager: seeded from the pending
    transaction count the first time an identity signs, then counted locally,
    so a bundle holds consecutive nonces per identity.
    """

    def __init__(
        self,
        web3: Web3,
        registry: ContractRegistry,
        nonces: NonceManager,
        gas_price: t.Optional[int] = config.GAS_PRICE,
        gas_limit: int = config.TX_GAS_LIMIT,
    ) -> None:
        self.web3 = web3
        self.registry = registry
        self.nonces = nonces
        self.gas_price = gas_price
        self.gas_limit = gas_limit
        self._chain_id: t.Optional[int] = None

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.web3.eth.chain_id
        return self._chain_id

    def _pending_count(self, address: str) -> int:
        return self.web3.eth.get_transaction_count(address, "pending")

    def populate(
        self,
        identity: Identity,
        tx: TxParams,
        overrides: t.Optional[t.Mapping[str, int]] = None,
    ) -> TxParams:
        try:
            gas_price = self.gas_price if self.gas_price is not None else self.web3.eth.gas_price
            nonce = self.nonces.reserve(identity.address, self._pending_count)
            return fill_transaction(tx, nonce, self.chain_id, gas_price, self.gas_limit, overrides)
        except Exception as e:
            raise SigningError(f"Cannot populate transaction for {identity}: {e}") from e

    def sign(self, identity: Identity, tx: TxParams) -> str:
        try:
            signed = identity.account.sign_transaction(tx)
        except Exception as e:
            raise SigningError(f"Cannot sign transaction for {identity}: {e}") from e
        return Web3.to_hex(signed.raw_transaction)

    def sign_offline(self, identity: Identity, request: OperationRequest) -> str:
        """
        Encode, populate and sign ``request`` as ``identity``.
        """
        try:
            tx = self.registry.encode(request)
        except Exception as e:
            raise SigningError(f"Cannot encode {request.describe()}: {e}") from e
        full = self.populate(identity, tx, request.overrides)
        raw = self.sign(identity, full)
        logger.debug("Signed %s nonce=%s", request.describe(), full["nonce"])
        return raw
