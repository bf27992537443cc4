"""Durable key/value store handing agent results to their dependents."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Union

from hiveai.core.errors import CorruptStateError

logger = logging.getLogger(__name__)


class SharedStateStore:
    """Results of previous agents keyed by agent name, mirrored to a JSON file.

    Every write rewrites the whole snapshot. A snapshot that cannot be read
    back on construction is discarded and the store starts empty.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        try:
            self._values: Dict[str, Any] = self._read_snapshot()
        except CorruptStateError as exc:
            logger.debug("Discarding shared state snapshot: %s", exc)
            self._values = {}

    @property
    def path(self) -> Path:
        return self._path

    def get(self, name: str, default: Any = None) -> Any:
        """Return the stored result for ``name``, or ``default`` when absent."""
        return self._values.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value
        self._persist()

    def delete(self, name: str) -> None:
        self._values.pop(name, None)
        self._persist()

    def clear(self) -> None:
        self._values = {}
        self._persist()

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def _read_snapshot(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CorruptStateError(f"{self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise CorruptStateError(f"{self._path}: snapshot root is not an object")
        return data

    def _persist(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._values, indent=2, default=str), encoding="utf-8")
