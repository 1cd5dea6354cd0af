from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, MutableMapping

from relayer_loader.loader.document import Document

_MISSING = object()


class GlobalNamespace:
    """A single named slot inside the page-wide globals mapping.

    The page owns the mapping; the loader only reads, writes and clears the
    one key it was configured with.
    """

    def __init__(self, globals_: MutableMapping[str, Any], key: str) -> None:
        if not key:
            raise ValueError("namespace key is required")
        self._globals = globals_
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    @property
    def globals(self) -> MutableMapping[str, Any]:
        return self._globals

    def present(self) -> bool:
        return self._key in self._globals

    def get(self, default: Any = None) -> Any:
        return self._globals.get(self._key, default)

    def set(self, value: Any) -> None:
        self._globals[self._key] = value

    def clear(self) -> bool:
        return self._globals.pop(self._key, _MISSING) is not _MISSING


@dataclass
class PageContext:
    """Everything a loader needs from the hosting page."""

    document: Document
    globals: MutableMapping[str, Any] = field(default_factory=dict)

    def namespace(self, key: str) -> GlobalNamespace:
        return GlobalNamespace(self.globals, key)
