from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import NewType

ChannelId = NewType("ChannelId", str)


class InputContractError(ValueError):
    pass


@dataclass(frozen=True)
class ClumpIndex:
    position: int
    size: int

    def __post_init__(self) -> None:
        if self.size < 1 or not (0 <= self.position < self.size):
            raise ValueError(f"Invalid clump index {self.position}/{self.size}")

    def __str__(self) -> str:
        return f"{self.position}/{self.size}"


@dataclass
class Programme:
    channel: ChannelId
    start: datetime
    stop: datetime | None = None
    clumpidx: ClumpIndex | None = None
    title: str | None = None
    # Everything below is carried through untouched.
    attrs: tuple[tuple[str, str], ...] = ()
    payload: tuple[str, ...] = ()

    def describe(self) -> str:
        title = self.title or "(no title)"
        stop = self.stop.isoformat() if self.stop else "?"
        return f"{title!r} {self.start.isoformat()}..{stop}"


@dataclass(frozen=True)
class ListingHeader:
    encoding: str | None = "UTF-8"
    attrs: tuple[tuple[str, str], ...] = ()
    channels: tuple[str, ...] = ()


@dataclass
class Listing:
    header: ListingHeader
    programmes: list[Programme] = field(default_factory=list)


def validate_programme(prog: Programme) -> None:
    if not prog.channel:
        raise InputContractError(f"Programme without channel: {prog.title!r}")
    if prog.start is None:
        raise InputContractError(f"Programme without start: channel={prog.channel} title={prog.title!r}")
