"""
Receipt classification for swapbench.
"""
import typing as t
from dataclasses import dataclass

from eth_utils import event_abi_to_log_topic
from hexbytes import HexBytes
from web3 import Web3

from .errors import OperationFailed

STATUS_SUCCESS = 1


class Outcome:
    """Result of one operation: ``Success`` or ``Failure``."""
    succeeded: t.ClassVar[bool]
    ordinal: t.Optional[int]


@dataclass(frozen=True)
class Success(Outcome):
    succeeded: t.ClassVar[bool] = True
    ordinal: t.Optional[int]


@dataclass(frozen=True)
class Failure(Outcome):
    succeeded: t.ClassVar[bool] = False
    reason: str
    ordinal: t.Optional[int] = None


MISSING_STATUS = Failure(reason="missing status")


def classify(raw: t.Any) -> Outcome:
    """
    Reduce a completed operation to an Outcome.

    ``raw`` is a receipt mapping, or the exception the operation ended with.
    A receipt without a ``status`` field is a failure, never an error.
    """
    if isinstance(raw, OperationFailed):
        if raw.receipt is None:
            return Failure(reason=raw.reason)
        return classify(raw.receipt)
    if isinstance(raw, BaseException):
        return Failure(reason=str(raw) or type(raw).__name__)
    if not isinstance(raw, t.Mapping) or raw.get("status") is None:
        return MISSING_STATUS

    ordinal = raw.get("blockNumber")
    if raw["status"] == STATUS_SUCCESS:
        return Success(ordinal=ordinal)
    return Failure(reason="reverted", ordinal=ordinal)


def format_outcome(outcome: Outcome) -> str:
    if outcome.succeeded:
        status = "1"
    elif outcome.ordinal is not None:
        status = "0"
    else:
        status = ""
    height = "" if outcome.ordinal is None else outcome.ordinal
    line = f"Tx Status:{status} Height:{height}"
    if isinstance(outcome, Failure) and outcome.reason != "reverted":
        line += f" ({outcome.reason})"
    return line


def _event_topic(abi: t.Sequence[t.Mapping[str, t.Any]], event_name: str) -> bytes:
    for entry in abi:
        if entry.get("type") == "event" and entry.get("name") == event_name:
            return event_abi_to_log_topic(entry)
    raise KeyError(f"Event {event_name} not in ABI")


def extract_event(
    receipt: t.Any, event_name: str, abi: t.Sequence[t.Mapping[str, t.Any]]
) -> str:
    """
    Return the hex ``data`` of the first ``event_name`` log in a successful receipt.

    Returns ``""`` when the receipt failed or holds no such event.
    """
    if not isinstance(receipt, t.Mapping) or receipt.get("status") != STATUS_SUCCESS:
        return ""
    topic = _event_topic(abi, event_name)
    for log in receipt.get("logs") or []:
        topics = log.get("topics") or []
        if topics and HexBytes(topics[0]) == topic:
            return Web3.to_hex(HexBytes(log["data"]))
    return ""
