from __future__ import annotations

from datetime import UTC, datetime

from tvsort_app.core.models import ClumpIndex, Programme

DAY = datetime(2024, 3, 4, tzinfo=UTC)


def at(hhmm: str) -> datetime:
    hh, mm = hhmm.split(":")
    return DAY.replace(hour=int(hh), minute=int(mm))


def make(
    title: str,
    start: str,
    stop: str | None = None,
    *,
    channel: str = "C1",
    clump: tuple[int, int] | None = None,
) -> Programme:
    return Programme(
        channel=channel,
        start=at(start),
        stop=at(stop) if stop else None,
        clumpidx=ClumpIndex(*clump) if clump else None,
        title=title,
    )


def titles(programmes) -> list[str]:  # type: ignore[no-untyped-def]
    return [p.title for p in programmes]
