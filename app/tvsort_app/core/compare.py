from __future__ import annotations

from datetime import UTC, datetime, tzinfo

from tvsort_app.core.diagnostics import Diagnostics
from tvsort_app.core.models import ClumpIndex
from tvsort_app.core.util import to_instant


def _sign(a: datetime, b: datetime) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def compare_times(a: datetime | None, b: datetime | None, *, local_tz: tzinfo = UTC) -> int:
    # A missing time (unknown stop) sorts before any known one.
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    return _sign(to_instant(a, local_tz), to_instant(b, local_tz))


class TimeComparator:
    """``compare_times`` with a memo of resolved instants.

    One instance belongs to one normalization run; the memo is never shared.
    """

    def __init__(self, local_tz: tzinfo = UTC) -> None:
        self.local_tz = local_tz
        self._instants: dict[datetime, datetime] = {}

    def instant(self, value: datetime) -> datetime:
        if value.tzinfo is not None and value.utcoffset() is not None:
            return value
        cached = self._instants.get(value)
        if cached is None:
            cached = to_instant(value, self.local_tz)
            self._instants[value] = cached
        return cached

    def __call__(self, a: datetime | None, b: datetime | None) -> int:
        if a is None and b is None:
            return 0
        if a is None:
            return -1
        if b is None:
            return 1
        return _sign(self.instant(a), self.instant(b))


def compare_clump_idx(
    a: ClumpIndex | None,
    b: ClumpIndex | None,
    *,
    diagnostics: Diagnostics | None = None,
    channel: str = "",
) -> int | None:
    """Three-way compare of clump positions.

    Returns None when the two markers cannot be compared: one record is in a
    clump and the other is not, or the clump sizes disagree.
    """
    if a is None and b is None:
        return 0
    if a is None or b is None:
        if diagnostics is not None:
            present = a or b
            diagnostics.warn(
                "clump_unresolved",
                channel,
                f"clumpidx {present} compared against a programme without clumpidx",
                clumpidx=str(present),
            )
        return None
    if a.size != b.size:
        if diagnostics is not None:
            diagnostics.warn(
                "clump_mismatch",
                channel,
                f"clumpidx {a} and {b} disagree on clump size",
                first=str(a),
                second=str(b),
            )
        return None
    if a.position < b.position:
        return -1
    if a.position > b.position:
        return 1
    return 0
