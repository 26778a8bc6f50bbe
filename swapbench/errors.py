"""
Exception taxonomy for swapbench.
"""
import typing as t


class BenchmarkError(Exception):
    """Base class for every error raised by the harness."""


class ConfigError(BenchmarkError):
    """Invalid network, deployment or workload configuration."""


class OperationFailed(BenchmarkError):
    """
    A dispatched operation did not complete normally.

    ``receipt`` carries whatever partial result the transport returned so the
    batcher can still classify it.
    """

    def __init__(self, reason: str, receipt: t.Optional[t.Mapping[str, t.Any]] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.receipt = receipt


class SigningError(BenchmarkError):
    """Populating or signing an offline transaction failed."""
