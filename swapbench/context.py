"""
Run context threaded through every component of a benchmark run.
"""
import typing as t
from dataclasses import dataclass, field

from .contracts import ContractRegistry, Deployment, TokenHandle
from .identity import IdentityManager, NonceManager

if t.TYPE_CHECKING:
    from .network import ConnectionManager


@dataclass
class RunContext:
    """
    Everything a run needs, built once by the launcher.

    Components receive it explicitly; nothing reads accounts or addresses
    from module state.
    """
    identities: IdentityManager
    deployment: Deployment
    registry: ContractRegistry
    nonces: NonceManager = field(default_factory=NonceManager)
    network: t.Optional["ConnectionManager"] = None

    @classmethod
    def build(
        cls,
        identities: IdentityManager,
        deployment: Deployment,
        network: t.Optional["ConnectionManager"] = None,
    ) -> "RunContext":
        return cls(
            identities=identities,
            deployment=deployment,
            registry=ContractRegistry(deployment.abis),
            network=network,
        )

    @property
    def tokens(self) -> t.List[TokenHandle]:
        return self.deployment.tokens
