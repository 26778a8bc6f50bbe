"""
Benchmark driver for swapbench.
Walks the (token × participant) workload matrix in live or offline mode.
"""
import asyncio
import logging
import random
import typing as t

from tqdm import tqdm
from web3 import Web3

from .amounts import compute_mint_amounts, split
from .batcher import BatchWindow, ConcurrentBatcher
from .bundle import SWAP_SINKS, TOKEN_SINKS, BundleWriter
from .config import BenchmarkConfig
from .contracts import TokenHandle
from .context import RunContext
from .dispatcher import LiveDispatcher
from .errors import ConfigError
from .identity import Identity
from .operations import OperationRequest, RequestBuilder
from .signer import OfflineSigner

logger = logging.getLogger(__name__)

TOKEN_PHASES = ("mint", "transfer", "approve", "transferFrom")


def pair_slots(token_count: int, pool_style: int) -> t.List[t.Tuple[int, int]]:
    """
    Token slots grouped into trading pairs.

    pool_style 2 gives disjoint pairs (0,1) (2,3) ...; pool_style 1 gives
    chained pairs (0,1) (1,2) (2,3) ...
    """
    return [(i, i + 1) for i in range(0, token_count - 1, pool_style)]


def participant_pairs(count: int) -> t.List[t.Tuple[int, int]]:
    """Participant slots paired as (0,1) (2,3) ..."""
    return [(j, j + 1) for j in range(0, count - 1, 2)]


class BenchmarkDriver:
    """
    Top-level control flow for one run.

    Live mode submits through a LiveDispatcher and a ConcurrentBatcher.
    Offline mode signs through an OfflineSigner and writes a BundleWriter
    sink per operation kind.
    """

    def __init__(
        self,
        context: RunContext,
        cfg: BenchmarkConfig,
        builder: t.Optional[RequestBuilder] = None,
        dispatcher: t.Optional[LiveDispatcher] = None,
        signer: t.Optional[OfflineSigner] = None,
        writer: t.Optional[BundleWriter] = None,
        batcher: t.Optional[ConcurrentBatcher] = None,
        show_progress: bool = True,
    ) -> None:
        self.context = context
        self.cfg = cfg
        self.builder = builder or RequestBuilder(fee=cfg.fee, gas_price=cfg.gas_price)
        self.batcher = batcher or ConcurrentBatcher(cfg.flush_threshold)
        self.writer = writer or BundleWriter(cfg.data_dir)
        self._dispatcher = dispatcher
        self._signer = signer
        self.show_progress = show_progress
        self.rng = random.Random(cfg.seed)

        self.participant_count = cfg.participant_count or len(context.identities)
        if self.participant_count > len(context.identities):
            raise ConfigError(
                f"{self.participant_count} participants requested, "
                f"only {len(context.identities)} keys configured"
            )
        if cfg.token_count > len(context.tokens):
            raise ConfigError(
                f"{cfg.token_count} tokens requested, deployment has {len(context.tokens)}"
            )
        self.tokens: t.List[TokenHandle] = context.tokens[:cfg.token_count]

    # ---------- Collaborators ----------
    @property
    def dispatcher(self) -> LiveDispatcher:
        if self._dispatcher is None:
            if self.context.network is None:
                raise ConfigError("Live dispatch needs a network connection")
            self._dispatcher = LiveDispatcher(
                self.context.network.get_async_web3(),
                self.context.registry,
                self.context.nonces,
                gas_price=self.cfg.gas_price,
                gas_limit=self.cfg.gas_limit,
                receipt_timeout=self.cfg.receipt_timeout,
            )
        return self._dispatcher

    @property
    def signer(self) -> OfflineSigner:
        if self._signer is None:
            if self.context.network is None:
                raise ConfigError("Offline signing needs a network connection for nonces")
            self._signer = OfflineSigner(
                self.context.network.get_web3(),
                self.context.registry,
                self.context.nonces,
                gas_price=self.cfg.gas_price,
                gas_limit=self.cfg.gas_limit,
            )
        return self._signer

    @property
    def funder(self) -> Identity:
        return self.context.identities.funder

    def _pairs(self) -> t.List[t.Tuple[Identity, Identity]]:
        ids = self.context.identities
        return [(ids.get(j), ids.get(k)) for j, k in participant_pairs(self.participant_count)]

    def _token_pairs(self) -> t.List[t.Tuple[TokenHandle, TokenHandle]]:
        return [(self.tokens[i], self.tokens[k]) for i, k in pair_slots(len(self.tokens), self.cfg.pool_style)]

    # ---------- Entry point ----------
    def run(self) -> None:
        logger.info(
            "Running %s workload in %s mode: %d tokens, %d participants",
            self.cfg.workload, self.cfg.mode, len(self.tokens), self.participant_count,
        )
        if not self._pairs():
            logger.warning("Fewer than two participants; the matrix is empty")
        if self.cfg.mode == "live":
            asyncio.run(self.run_live())
        else:
            self.run_offline()

    async def run_live(self) -> None:
        if self.cfg.workload == "swap":
            await self.setup_pools()
            await self.run_swap_live()
        else:
            await self.run_token_live()
        if self.cfg.report_balances:
            await self.report_balances()

    def run_offline(self) -> None:
        if self.cfg.workload == "swap":
            if self.cfg.init_pools or self.cfg.provision_liquidity:
                asyncio.run(self.setup_pools())
            self.run_swap_offline()
        else:
            self.run_token_offline()

    # ---------- Shared phase helpers ----------
    async def _push(self, window: BatchWindow, request: OperationRequest) -> BatchWindow:
        return await self.batcher.push(window, self.dispatcher.submit(request))

    async def _run_phase(self, name: str, requests: t.Iterable[OperationRequest]) -> None:
        """Dispatch a whole phase and wait for it before returning."""
        logger.info("=========== start %s ===========", name)
        window: BatchWindow = []
        for request in requests:
            window = await self._push(window, request)
        await self.batcher.flush(window)

    def _sign_to(self, sink: str, request: OperationRequest) -> None:
        self.writer.append(sink, self.signer.sign_offline(request.sender, request))

    def _progress(self, total: int, desc: str) -> tqdm:
        return tqdm(total=total, desc=desc, disable=not self.show_progress)

    # ---------- Token workload ----------
    def token_amount(self, slot: int) -> int:
        return self.cfg.unit * (slot % 4 + 1)

    def token_request(
        self, phase: str, token: TokenHandle, sender: Identity, receiver: Identity
    ) -> OperationRequest:
        """
        One token operation for participant pair (sender, receiver).

        mint: funder -> sender; transfer: sender -> receiver; approve: receiver
        lets sender spend; transferFrom: sender pulls from receiver.
        """
        amount = self.token_amount(sender.slot)
        address = token.address
        if phase == "mint":
            return self.builder.mint(address, self.funder, sender.address, amount)
        if phase == "transfer":
            return self.builder.transfer(address, sender, receiver.address, amount)
        if phase == "approve":
            return self.builder.approve(address, receiver, sender.address, amount)
        if phase == "transferFrom":
            return self.builder.transfer_from(address, sender, receiver.address, sender.address, amount)
        raise ValueError(f"Unknown token phase {phase!r}")

    async def run_token_live(self) -> None:
        window: BatchWindow = []
        for phase in TOKEN_PHASES:
            logger.info("=========== start %s token ===========", phase)
            for token in self.tokens:
                for sender, receiver in self._pairs():
                    window = await self._push(window, self.token_request(phase, token, sender, receiver))
            if self.cfg.phase_barrier:
                window = await self.batcher.flush(window)
            else:
                window = await self.batcher.push(window)
        await self.batcher.flush(window)

    def run_token_offline(self) -> None:
        """
        Sign every combination phase by phase.

        An identity signs in several sinks (slot 0 both funds and trades), so
        signing all mints before all transfers keeps its nonces ascending when
        the sinks are replayed one kind after another.
        """
        self.writer.create_all(TOKEN_SINKS)
        pairs = self._pairs()
        with self._progress(len(TOKEN_PHASES) * len(self.tokens) * len(pairs), "token txs") as pbar:
            for phase in TOKEN_PHASES:
                for token in self.tokens:
                    for sender, receiver in pairs:
                        self._sign_to(phase, self.token_request(phase, token, sender, receiver))
                        pbar.update(1)
        logger.info("Wrote token bundles under %s", self.writer.data_dir)

    # ---------- Swap workload ----------
    def _swap_requests(
        self,
        token_a: TokenHandle,
        token_b: TokenHandle,
        first: Identity,
        second: Identity,
        nominal: int,
        approve_factor: int = 1,
    ) -> t.Dict[str, t.List[OperationRequest]]:
        deployment = self.context.deployment
        router = deployment.require("router")
        engine = deployment.require("netting_engine")
        amount_a, amount_b = compute_mint_amounts(
            token_a.address, token_b.address, nominal, self.cfg.price_ratio
        )
        b = self.builder
        return {
            "mint": [
                b.mint(token_a.address, self.funder, first.address, amount_a),
                b.mint(token_b.address, self.funder, second.address, amount_b),
            ],
            "approve": [
                b.approve(token_a.address, first, router, amount_a * approve_factor),
                b.approve(token_b.address, second, router, amount_b * approve_factor),
            ],
            "swap": [
                b.swap_queue(engine, first, token_a.address, token_b.address, amount_a),
                b.swap_queue(engine, second, token_b.address, token_a.address, amount_b),
            ],
        }

    async def setup_pools(self) -> None:
        """
        Initialize pool prices and add liquidity, waiting after each phase.
        """
        deployment = self.context.deployment
        token_pairs = self._token_pairs()
        if self.cfg.init_pools:
            await self._run_phase("init pools", [
                self.builder.init_pool(pool, self.funder, self.cfg.sqrt_price_x96)
                for pool in deployment.pools[:len(token_pairs)]
            ])
        if not self.cfg.provision_liquidity:
            return

        manager = deployment.require("position_manager")
        provisions = []
        for slot, (token_a, token_b) in zip(pair_slots(len(self.tokens), self.cfg.pool_style), token_pairs):
            provider = self.context.identities.get(slot[0] % self.participant_count)
            amount_a, amount_b = compute_mint_amounts(
                token_a.address, token_b.address, self.cfg.liquidity_nominal, self.cfg.price_ratio
            )
            provisions.append((provider, token_a, token_b, amount_a, amount_b))

        await self._run_phase("liquidity mint", [
            req
            for provider, token_a, token_b, amount_a, amount_b in provisions
            for req in (
                self.builder.mint(token_a.address, self.funder, provider.address, amount_a),
                self.builder.mint(token_b.address, self.funder, provider.address, amount_b),
            )
        ])
        await self._run_phase("liquidity approve", [
            req
            for provider, token_a, token_b, amount_a, amount_b in provisions
            for req in (
                self.builder.approve(token_a.address, provider, manager, amount_a),
                self.builder.approve(token_b.address, provider, manager, amount_b),
            )
        ])
        await self._run_phase("add liquidity", [
            self.builder.add_liquidity(
                manager, provider,
                split(token_a.address, token_b.address, self.cfg.liquidity_nominal, self.cfg.price_ratio),
            )
            for provider, token_a, token_b, _, _ in provisions
        ])

    async def run_swap_live(self) -> None:
        phases: t.Dict[str, t.List[OperationRequest]] = {"mint": [], "approve": [], "swap": []}
        for token_a, token_b in self._token_pairs():
            for first, second in self._pairs():
                nominal = self.cfg.unit * (first.slot + 1)
                requests = self._swap_requests(token_a, token_b, first, second, nominal, approve_factor=2)
                for phase, reqs in requests.items():
                    phases[phase].extend(reqs)
        for phase, reqs in phases.items():
            await self._run_phase(f"{phase} ({len(reqs)} txs)", reqs)

    def run_swap_offline(self) -> None:
        self.writer.create_all(SWAP_SINKS)
        phases: t.Dict[str, t.List[OperationRequest]] = {sink: [] for sink in SWAP_SINKS}
        for token_a, token_b in self._token_pairs():
            for first, second in self._pairs():
                nominal = self.cfg.unit * self.rng.randint(1, 4)
                logger.debug("swap nominal %d for %s/%s slots %d,%d",
                             nominal, token_a.label, token_b.label, first.slot, second.slot)
                for sink, reqs in self._swap_requests(token_a, token_b, first, second, nominal).items():
                    phases[sink].extend(reqs)

        total = sum(len(reqs) for reqs in phases.values())
        with self._progress(total, "swap txs") as pbar:
            for sink, reqs in phases.items():
                for request in reqs:
                    self._sign_to(sink, request)
                    pbar.update(1)
        logger.info("Wrote swap bundles under %s", self.writer.data_dir)

    # ---------- Reporting ----------
    async def report_balances(self) -> None:
        for token in self.tokens:
            for slot in range(self.participant_count):
                identity = self.context.identities.get(slot)
                balance = await self.dispatcher.query_balance(
                    self.builder.balance_query(token.address, identity)
                )
                shown = "unknown" if balance is None else Web3.from_wei(balance, "ether")
                logger.info("Balance of account %s: %s %s", identity.address, shown, token.label)
