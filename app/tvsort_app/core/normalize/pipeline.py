from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, tzinfo
from typing import Iterable

from tvsort_app.core.compare import TimeComparator
from tvsort_app.core.diagnostics import Diagnostic, Diagnostics
from tvsort_app.core.models import Listing, Programme, validate_programme
from tvsort_app.core.normalize.overlap import dedupe_and_check
from tvsort_app.core.normalize.sorting import stable_sort
from tvsort_app.core.normalize.stops import infer_stop_times

log = logging.getLogger("tvsort.pipeline")


@dataclass(frozen=True)
class NormalizeResult:
    programmes: list[Programme]
    diagnostics: list[Diagnostic]


@dataclass(frozen=True)
class _ChannelResult:
    channel: str
    programmes: list[Programme]
    diagnostics: Diagnostics
    inferred: int
    dropped: int


def partition_by_channel(programmes: Iterable[Programme]) -> dict[str, list[Programme]]:
    by_channel: dict[str, list[Programme]] = {}
    for prog in programmes:
        by_channel.setdefault(prog.channel, []).append(prog)
    return by_channel


def _process_channel(channel: str, programmes: list[Programme], local_tz: tzinfo) -> _ChannelResult:
    times = TimeComparator(local_tz)
    diagnostics = Diagnostics()

    ordered = stable_sort(programmes, times, stage=f"sort {channel}")
    inferred = infer_stop_times(ordered, times)
    # Stop is part of the sort key, so filled stops may move things.
    ordered = stable_sort(ordered, times, stage=f"re-sort {channel}")
    kept = dedupe_and_check(ordered, times, diagnostics)

    return _ChannelResult(
        channel=channel,
        programmes=kept,
        diagnostics=diagnostics,
        inferred=inferred,
        dropped=len(ordered) - len(kept),
    )


def merge_channels(
    processed: dict[str, list[Programme]],
    *,
    by_channel: bool,
    local_tz: tzinfo = UTC,
) -> list[Programme]:
    concatenated: list[Programme] = []
    for channel in sorted(processed):
        concatenated.extend(processed[channel])
    if by_channel:
        return concatenated
    return stable_sort(concatenated, TimeComparator(local_tz), with_channel=True, stage="merge")


def normalize_programmes(
    programmes: Iterable[Programme],
    *,
    by_channel: bool = False,
    workers: int = 1,
    local_tz: tzinfo = UTC,
) -> NormalizeResult:
    """Sort, fill stop times, drop exact duplicates and report overlaps.

    Programmes are processed per channel (optionally on a thread pool, since
    channels share nothing) and merged either grouped by channel or into one
    time-ordered sequence. Stop times of the given objects are filled in
    place.
    """
    items = list(programmes)
    for prog in items:
        validate_programme(prog)

    parts = partition_by_channel(items)
    channels = sorted(parts)

    if workers > 1 and len(channels) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda ch: _process_channel(ch, parts[ch], local_tz), channels))
    else:
        results = [_process_channel(ch, parts[ch], local_tz) for ch in channels]

    processed: dict[str, list[Programme]] = {}
    diagnostics = Diagnostics()
    inferred = 0
    dropped = 0
    for res in results:
        processed[res.channel] = res.programmes
        diagnostics.extend(res.diagnostics)
        inferred += res.inferred
        dropped += res.dropped

    merged = merge_channels(processed, by_channel=by_channel, local_tz=local_tz)
    log.info(
        "Normalized %s programmes on %s channels: %s stop times inferred, %s duplicates dropped, %s warnings",
        len(merged),
        len(channels),
        inferred,
        dropped,
        len(diagnostics),
    )
    return NormalizeResult(programmes=merged, diagnostics=diagnostics.items)


def normalize_listing(
    listing: Listing,
    *,
    by_channel: bool = False,
    workers: int = 1,
    local_tz: tzinfo = UTC,
) -> tuple[Listing, list[Diagnostic]]:
    result = normalize_programmes(
        listing.programmes,
        by_channel=by_channel,
        workers=workers,
        local_tz=local_tz,
    )
    return Listing(header=listing.header, programmes=result.programmes), result.diagnostics
