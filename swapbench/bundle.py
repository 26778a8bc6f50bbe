"""
Pre-signed transaction bundles.
One append-only sink per operation kind, one ``<raw tx>,`` record per line.
"""
import typing as t
from pathlib import Path

TOKEN_SINKS: t.Dict[str, str] = {
    "mint": "token-mint/token-mint.out",
    "transfer": "token-transfer/token-transfer.out",
    "approve": "token-approve/token-approve.out",
    "transferFrom": "token-transfer-from/token-transfer-from.out",
}

SWAP_SINKS: t.Dict[str, str] = {
    "mint": "swap-mint/swap-token-mint.out",
    "approve": "swap-approve/swap-token-approve.out",
    "swap": "swap/swap.out",
}


class BundleWriter:
    """
    Writes signed transactions under ``data_dir``.

    Lines within one sink are in generation order, which is the replay order
    for that kind. Nothing orders lines across sinks.
    """

    def __init__(self, data_dir: t.Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)
        self._sinks: t.Dict[str, Path] = {}

    def create(self, kind: str, relpath: str) -> Path:
        """
        Register a sink for ``kind`` and start it empty.
        """
        path = self.data_dir / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")
        self._sinks[kind] = path
        return path

    def create_all(self, layout: t.Mapping[str, str]) -> t.Dict[str, Path]:
        return {kind: self.create(kind, relpath) for kind, relpath in layout.items()}

    def path(self, kind: str) -> Path:
        try:
            return self._sinks[kind]
        except KeyError:
            raise KeyError(f"No sink created for {kind!r}") from None

    def append(self, kind: str, encoded: str) -> None:
        with open(self.path(kind), "a", encoding="utf-8") as f:
            f.write(encoded + ",\n")


def read_bundle(path: t.Union[str, Path]) -> t.List[str]:
    """Return the raw transactions in a sink, in file order."""
    with open(path, "r", encoding="utf-8") as f:
        return [line.rstrip("\n").rstrip(",") for line in f if line.strip()]
