from __future__ import annotations

import logging
from functools import cmp_to_key
from typing import Sequence

from tvsort_app.core.compare import TimeComparator
from tvsort_app.core.models import ClumpIndex, Programme

log = logging.getLogger("tvsort.sorting")


class SortOrderError(RuntimeError):
    """Sorted output is not monotonic. Always an engine bug, never bad data."""


def _clump_sort_key(idx: ClumpIndex | None) -> tuple[int, int, int]:
    # Total order for sorting only; inconsistent clumps are reported by the
    # overlap check, which compares with compare_clump_idx.
    if idx is None:
        return (0, 0, 0)
    return (1, idx.position, idx.size)


class SortContext:
    """Comparator bound to one list being sorted.

    The tie-break on original position makes any sort stable, which keeps a
    second run over already sorted output from reordering anything.
    """

    def __init__(
        self,
        programmes: Sequence[Programme],
        times: TimeComparator,
        *,
        with_channel: bool = False,
    ) -> None:
        self.times = times
        self.with_channel = with_channel
        self._position = {id(p): i for i, p in enumerate(programmes)}

    def compare(self, a: Programme, b: Programme) -> int:
        c = self.times(a.start, b.start)
        if c:
            return c
        c = self.times(a.stop, b.stop)
        if c:
            return c
        if self.with_channel and a.channel != b.channel:
            return -1 if a.channel < b.channel else 1
        ka = _clump_sort_key(a.clumpidx)
        kb = _clump_sort_key(b.clumpidx)
        if ka != kb:
            return -1 if ka < kb else 1
        return 0

    def compare_stable(self, a: Programme, b: Programme) -> int:
        c = self.compare(a, b)
        if c:
            return c
        pa = self._position[id(a)]
        pb = self._position[id(b)]
        return (pa > pb) - (pa < pb)


def check_sorted(programmes: Sequence[Programme], ctx: SortContext, *, stage: str) -> None:
    for i in range(1, len(programmes)):
        a = programmes[i - 1]
        b = programmes[i]
        if ctx.compare(a, b) > 0:
            raise SortOrderError(
                f"{stage}: programmes out of order at position {i} "
                f"(channel={b.channel}): {a.describe()} > {b.describe()}"
            )


def stable_sort(
    programmes: Sequence[Programme],
    times: TimeComparator,
    *,
    with_channel: bool = False,
    stage: str = "sort",
) -> list[Programme]:
    ctx = SortContext(programmes, times, with_channel=with_channel)
    out = sorted(programmes, key=cmp_to_key(ctx.compare_stable))
    check_sorted(out, ctx, stage=stage)
    log.debug("%s: sorted %s programmes", stage, len(out))
    return out
