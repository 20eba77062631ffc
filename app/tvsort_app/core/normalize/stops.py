from __future__ import annotations

import logging

from tvsort_app.core.compare import TimeComparator
from tvsort_app.core.models import Programme

log = logging.getLogger("tvsort.stops")


def _infer_pass(programmes: list[Programme], times: TimeComparator) -> int:
    assigned = 0
    for i in range(len(programmes) - 1):
        prog = programmes[i]
        if prog.stop is not None:
            continue
        nxt = programmes[i + 1]
        c = times(nxt.start, prog.start)
        if c > 0:
            prog.stop = nxt.start
            assigned += 1
        elif c == 0 and nxt.stop is not None:
            # Same start: take the clump's stop rather than make a zero-length programme.
            prog.stop = nxt.stop
            assigned += 1
    return assigned


def infer_stop_times(programmes: list[Programme], times: TimeComparator) -> int:
    """Fill missing stop times of one sorted channel in place.

    Runs full passes until one assigns nothing, since filling a programme can
    unblock the one before it in a same-start clump. Returns how many stop
    times were assigned.
    """
    total = 0
    passes = 0
    while True:
        passes += 1
        assigned = _infer_pass(programmes, times)
        total += assigned
        if not assigned:
            break

    if programmes and programmes[-1].stop is None:
        last = programmes[-1]
        log.info("No stop time for last programme on %s: %s", last.channel, last.describe())

    unresolved = sum(1 for p in programmes[:-1] if p.stop is None)
    if unresolved:
        log.debug("%s programmes left without stop after %s passes", unresolved, passes)
    return total
