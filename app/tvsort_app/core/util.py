from __future__ import annotations

import html
import re
from datetime import UTC, datetime, timedelta, timezone, tzinfo

_XMLTV_TIME_RE = re.compile(
    r"^\s*(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?"
    r"\s*(?:(Z|UTC|GMT)|([+-])(\d{2}):?(\d{2}))?\s*$",
    re.IGNORECASE,
)


def clean_text(text: str) -> str:
    if not text:
        return ""
    text = html.unescape(text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def _wall_time_exists(local: datetime) -> bool:
    round_trip = local.astimezone(UTC).astimezone(local.tzinfo)
    return round_trip.replace(tzinfo=None, fold=0) == local.replace(tzinfo=None, fold=0)


def resolve_local_time(wall: datetime, tz: tzinfo) -> datetime:
    """Attach ``tz`` to a wall-clock time and pin it to a fixed UTC offset.

    A time that falls into a spring-forward gap does not exist locally. It is
    read as standard (winter) time instead of raising. Ambiguous fall-back
    times take the first occurrence.
    """
    wall = wall.replace(tzinfo=None, fold=0)
    local = wall.replace(tzinfo=tz)
    if _wall_time_exists(local):
        offset = local.utcoffset()
    else:
        offset = None
        for fold in (0, 1):
            candidate = local.replace(fold=fold)
            if not candidate.dst():
                offset = candidate.utcoffset()
                break
        if offset is None:
            offset = local.utcoffset()
    return wall.replace(tzinfo=timezone(offset or timedelta(0)))


def to_instant(value: datetime, local_tz: tzinfo) -> datetime:
    if value.tzinfo is None:
        return resolve_local_time(value, local_tz)
    if value.utcoffset() is None:
        return resolve_local_time(value, value.tzinfo)
    return value


def parse_xmltv_time(text: str, local_tz: tzinfo) -> datetime | None:
    m = _XMLTV_TIME_RE.match(text or "")
    if not m:
        return None
    year, month, day, hour, minute, second, utc_name, sign, off_h, off_m = m.groups()
    try:
        wall = datetime(
            int(year),
            int(month or 1),
            int(day or 1),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
        )
    except ValueError:
        return None

    if utc_name:
        return wall.replace(tzinfo=UTC)
    if sign:
        hh = int(off_h)
        mm = int(off_m)
        if hh > 23 or mm > 59:
            return None
        delta = timedelta(hours=hh, minutes=mm)
        return wall.replace(tzinfo=timezone(-delta if sign == "-" else delta))
    return resolve_local_time(wall, local_tz)


def format_xmltv_time(value: datetime) -> str:
    if value.tzinfo is None:
        return value.strftime("%Y%m%d%H%M%S")
    return value.strftime("%Y%m%d%H%M%S %z")
