"""
swapbench: load generation for token and netting-engine contracts.
"""

from .batcher import ConcurrentBatcher
from .driver import BenchmarkDriver
from .signer import OfflineSigner

__all__ = ["BenchmarkDriver", "ConcurrentBatcher", "OfflineSigner"]
