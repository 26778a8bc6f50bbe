"""
Command line entry point for swapbench.
"""
import argparse
import logging
import sys
import typing as t
from datetime import datetime
from pathlib import Path

from . import config
from .config import BenchmarkConfig, load_network
from .context import RunContext
from .contracts import Deployment
from .driver import BenchmarkDriver
from .errors import BenchmarkError
from .identity import IdentityManager
from .network import ConnectionManager

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_dir: t.Optional[str] = config.LOG_DIR) -> None:
    """Log to stderr and, when ``log_dir`` is set, to a timestamped file."""
    handlers: t.List[logging.Handler] = [logging.StreamHandler()]
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        handlers.append(logging.FileHandler(Path(log_dir) / f"swapbench_{timestamp}.log"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def build_parser(workload: t.Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Drive token / netting-engine workloads live or as pre-signed bundles"
    )
    parser.add_argument("--network", default="localhost", help="Entry name in the network file")
    parser.add_argument("--network-file", default="network.json", help="Hardhat style network.json")
    parser.add_argument("--deployment", default="deployment.json", help="Deployed contract addresses")
    parser.add_argument("--workload", choices=config.WORKLOADS, default=workload or "token")
    parser.add_argument("--mode", choices=config.MODES, default="offline")
    parser.add_argument("--tokens", type=int, default=config.TOKEN_COUNT, help="Number of tokens to use")
    parser.add_argument("--participants", type=int, default=None, help="Number of signing identities to use")
    parser.add_argument("--pool-style", type=int, choices=(1, 2), default=config.POOL_STYLE)
    parser.add_argument("--threshold", type=int, default=config.FLUSH_THRESHOLD, help="Flush threshold")
    parser.add_argument("--sqrt-price-rate", type=int, default=config.SQRT_PRICE_RATE)
    parser.add_argument("--gas-price", type=int, default=config.GAS_PRICE)
    parser.add_argument("--gas-limit", type=int, default=config.TX_GAS_LIMIT)
    parser.add_argument("--phase-barrier", action="store_true", help="Flush between token phases")
    parser.add_argument("--init-pools", action="store_true")
    parser.add_argument("--provision-liquidity", action="store_true")
    parser.add_argument("--report-balances", action="store_true")
    parser.add_argument("--seed", type=int, default=config.RANDOM_SEED)
    parser.add_argument("--data-dir", default=config.DATA_DIR)
    parser.add_argument("--log-dir", default=config.LOG_DIR)
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--no-progress", action="store_true")
    return parser


def config_from_args(args: argparse.Namespace) -> BenchmarkConfig:
    return BenchmarkConfig(
        workload=args.workload,
        mode=args.mode,
        token_count=args.tokens,
        participant_count=args.participants,
        pool_style=args.pool_style,
        flush_threshold=args.threshold,
        sqrt_price_rate=args.sqrt_price_rate,
        gas_price=args.gas_price,
        gas_limit=args.gas_limit,
        phase_barrier=args.phase_barrier,
        init_pools=args.init_pools,
        provision_liquidity=args.provision_liquidity,
        report_balances=args.report_balances,
        seed=args.seed,
        data_dir=Path(args.data_dir),
    )


def main(argv: t.Optional[t.Sequence[str]] = None, workload: t.Optional[str] = None) -> int:
    args = build_parser(workload).parse_args(argv)
    setup_logging(args.log_level, args.log_dir)

    network = None
    try:
        cfg = config_from_args(args)
        net_cfg = load_network(args.network_file, args.network)
        deployment = Deployment.load(args.deployment)
        identities = IdentityManager.from_network(net_cfg)

        network = ConnectionManager(net_cfg.url)
        network.wait_until_ready()
        context = RunContext.build(identities, deployment, network)

        BenchmarkDriver(context, cfg, show_progress=not args.no_progress).run()
    except BenchmarkError as e:
        logger.error("%s", e)
        return 1
    except Exception:
        logger.exception("Benchmark run failed")
        return 1
    finally:
        if network is not None:
            network.close()
    logger.info("Benchmark completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
