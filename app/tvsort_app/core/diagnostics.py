from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

log = logging.getLogger("tvsort.diagnostics")

DiagnosticKind = Literal["clump_unresolved", "clump_mismatch", "overlap", "start_after_stop"]


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    channel: str
    message: str
    context: dict[str, Any] = field(default_factory=dict, compare=False)

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "channel": self.channel, "message": self.message, "context": self.context}


class Diagnostics:
    """Advisory warnings raised while normalizing one batch of programmes.

    Every warning is logged as it happens and kept so callers can report it
    afterwards. Nothing here ever aborts processing.
    """

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[Diagnostic]:
        return list(self._items)

    def warn(self, kind: DiagnosticKind, channel: str, message: str, **context: Any) -> None:
        self._items.append(Diagnostic(kind=kind, channel=channel, message=message, context=context))
        log.warning("%s [%s]: %s", kind, channel, message)

    def extend(self, other: Diagnostics) -> None:
        self._items.extend(other._items)

    def count(self, kind: DiagnosticKind) -> int:
        return sum(1 for d in self._items if d.kind == kind)
