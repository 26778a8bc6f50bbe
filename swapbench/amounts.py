"""
Token pair canonicalization and amount splitting.

Pools order their tokens by address, so liquidity and mint amounts have to be
permuted along with the pair. Division is integer floor division, which is
what ``uint256`` division yields on-chain.
"""
import typing as t
from dataclasses import dataclass


def _key(address: str) -> str:
    return address.lower()


@dataclass(frozen=True)
class SplitResult:
    token0: str
    token1: str
    amount0: int
    amount1: int

    def amount_for(self, token: str) -> int:
        """Amount assigned to ``token``, whichever slot it landed in."""
        if _key(token) == _key(self.token0):
            return self.amount0
        if _key(token) == _key(self.token1):
            return self.amount1
        raise KeyError(token)


def canonical_pair(token_a: str, token_b: str) -> t.Tuple[str, str]:
    """Return the pair as (token0, token1) with token0 < token1."""
    if _key(token_a) == _key(token_b):
        raise ValueError(f"identical token addresses {token_a}")
    if _key(token_a) < _key(token_b):
        return token_a, token_b
    return token_b, token_a


def compute_mint_amounts(token_a: str, token_b: str, nominal: int, ratio: int) -> t.Tuple[int, int]:
    """
    Split ``nominal`` for the pair in declared order.

    The token with the lower address gets ``nominal // ratio``, the other
    keeps ``nominal``.
    """
    if ratio < 1:
        raise ValueError(f"price ratio must be >= 1, got {ratio}")
    if nominal < 0:
        raise ValueError(f"nominal amount must be >= 0, got {nominal}")
    if canonical_pair(token_a, token_b)[0] == token_a:
        return nominal // ratio, nominal
    return nominal, nominal // ratio


def split(token_a: str, token_b: str, nominal: int, ratio: int) -> SplitResult:
    token0, token1 = canonical_pair(token_a, token_b)
    amount0, amount1 = compute_mint_amounts(token0, token1, nominal, ratio)
    return SplitResult(token0, token1, amount0, amount1)
