"""
Live transaction dispatch for swapbench.
Local signing, raw submission and receipt waiting over AsyncWeb3.
"""
import asyncio
import logging
import typing as t
from collections import defaultdict

from hexbytes import HexBytes
from web3 import AsyncWeb3, Web3
from web3.exceptions import TimeExhausted
from web3.types import TxReceipt

from . import config
from .contracts import ContractRegistry
from .errors import OperationFailed
from .identity import Identity, NonceManager
from .operations import OperationRequest
from .receipts import extract_event
from .signer import fill_transaction

logger = logging.getLogger(__name__)


class LiveDispatcher:
    """
    Submits OperationRequests and resolves to their receipts.

    Only ``send_raw_transaction`` and receipt polling hit the node per
    operation; nonces are counted locally. Reserving a nonce and sending the
    raw transaction happen under one lock per identity, so an identity's
    transactions reach the node in nonce order even when many of them share a
    batch window.
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        registry: ContractRegistry,
        nonces: NonceManager,
        gas_price: t.Optional[int] = config.GAS_PRICE,
        gas_limit: int = config.TX_GAS_LIMIT,
        receipt_timeout: float = config.RECEIPT_TIMEOUT,
        poll_latency: float = config.RECEIPT_POLL_LATENCY,
    ) -> None:
        self.web3 = web3
        self.registry = registry
        self.nonces = nonces
        self.gas_price = gas_price
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency
        self._locks: t.Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._chain_id: t.Optional[int] = None

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self.web3.eth.chain_id
        return self._chain_id

    async def _next_nonce(self, identity: Identity) -> int:
        if not self.nonces.is_seeded(identity.address):
            pending = await self.web3.eth.get_transaction_count(identity.address, "pending")
            self.nonces.seed(identity.address, pending)
        return self.nonces.reserve(identity.address)

    async def send(self, request: OperationRequest) -> HexBytes:
        """
        Sign and broadcast ``request``; return the transaction hash.
        """
        identity = request.sender
        tx = self.registry.encode(request)
        chain_id = await self._get_chain_id()
        gas_price = self.gas_price if self.gas_price is not None else await self.web3.eth.gas_price

        async with self._locks[identity.address]:
            nonce = await self._next_nonce(identity)
            try:
                full = fill_transaction(tx, nonce, chain_id, gas_price, self.gas_limit, request.overrides)
                signed = identity.account.sign_transaction(full)
                tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
            except Exception:
                # the node never took this nonce; hand it to the next send
                if not self.nonces.release(identity.address, nonce):
                    logger.warning("Could not release nonce %d for %s", nonce, identity.address)
                raise
        logger.debug("Sent %s nonce=%d hash=%s", request.describe(), nonce, Web3.to_hex(tx_hash))
        return tx_hash

    async def submit(self, request: OperationRequest) -> TxReceipt:
        """
        Send ``request`` and wait for its receipt.

        A receipt that never shows up is reported as OperationFailed; a
        reverted receipt is returned as is for the classifier.
        """
        tx_hash = await self.send(request)
        try:
            return await self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout, poll_latency=self.poll_latency
            )
        except TimeExhausted as e:
            raise OperationFailed(f"{request.describe()} timed out: {e}") from e

    async def query_balance(self, request: OperationRequest) -> t.Optional[int]:
        """
        Send a ``balanceOf`` transaction and read the BalanceQuery event.

        Returns None when the event is missing.
        """
        receipt = await self.submit(request)
        data = extract_event(receipt, "BalanceQuery", self.registry.abi("Token"))
        if not data or data == "0x":
            return None
        return int(data, 16)
