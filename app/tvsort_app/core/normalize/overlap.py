from __future__ import annotations

import logging

from tvsort_app.core.compare import TimeComparator, compare_clump_idx
from tvsort_app.core.diagnostics import Diagnostics
from tvsort_app.core.models import Programme

log = logging.getLogger("tvsort.overlap")


def _same_record(a: Programme, b: Programme) -> bool:
    # Aware datetimes compare by instant; the written offset is part of the record too.
    if a != b:
        return False
    return (a.start.utcoffset(), a.stop and a.stop.utcoffset()) == (b.start.utcoffset(), b.stop and b.stop.utcoffset())


def overlaps(
    a: Programme,
    b: Programme,
    times: TimeComparator,
    *,
    diagnostics: Diagnostics | None = None,
) -> bool:
    """Whether two neighbouring programmes share airtime.

    ``a`` is expected to sort no later than ``b``; the reverse is handled
    too. With too little information the answer is False, except that two
    programmes on the same slot count as overlapping unless their clump
    indexes prove they are distinct parts of one clump.
    """
    if a.stop is None and b.stop is None:
        return False

    if a.stop is None or b.stop is None:
        timed, other = (b, a) if a.stop is None else (a, b)
        return times(timed.start, other.start) < 0 and times(other.start, timed.stop) < 0

    c = times(a.start, b.start)
    if c == 0:
        if times(a.start, a.stop) >= 0 or times(b.start, b.stop) >= 0:
            return False
        order = compare_clump_idx(a.clumpidx, b.clumpidx, diagnostics=diagnostics, channel=b.channel)
        return order is None or order == 0
    if c < 0:
        return times(a.stop, b.start) > 0
    return times(a.start, b.stop) < 0


def dedupe_and_check(
    programmes: list[Programme],
    times: TimeComparator,
    diagnostics: Diagnostics,
) -> list[Programme]:
    for prog in programmes:
        if prog.stop is not None and times(prog.start, prog.stop) > 0:
            diagnostics.warn(
                "start_after_stop",
                prog.channel,
                f"start {prog.start.isoformat()} is after stop {prog.stop.isoformat()} ({prog.title!r})",
                start=prog.start.isoformat(),
                stop=prog.stop.isoformat(),
                title=prog.title,
            )

    out: list[Programme] = []
    dropped = 0
    for prog in programmes:
        if not out:
            out.append(prog)
            continue
        prev = out[-1]
        if _same_record(prog, prev):
            dropped += 1
            continue
        if overlaps(prev, prog, times, diagnostics=diagnostics):
            diagnostics.warn(
                "overlap",
                prog.channel,
                f"{prev.describe()} overlaps {prog.describe()}",
                first_title=prev.title,
                first_start=prev.start.isoformat(),
                first_stop=prev.stop.isoformat() if prev.stop else None,
                second_title=prog.title,
                second_start=prog.start.isoformat(),
                second_stop=prog.stop.isoformat() if prog.stop else None,
            )
        out.append(prog)

    if dropped:
        log.debug("Dropped %s duplicate programmes", dropped)
    return out
