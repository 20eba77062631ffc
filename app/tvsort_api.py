from __future__ import annotations

import logging
from datetime import UTC, datetime, tzinfo

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

import tvsort_config as config
from tvsort_app.core.models import ChannelId, Programme
from tvsort_app.core.normalize.pipeline import normalize_listing, normalize_programmes
from tvsort_app.core.normalize.sorting import SortOrderError
from tvsort_app.core.util import to_instant
from tvsort_app.core.xmltv import parse_clumpidx, read_listing, write_listing

log = logging.getLogger("tvsort.api")

app = FastAPI(title="tvsort")

_MAX_PROGRAMMES = 200_000


class ProgrammeIn(BaseModel):
    channel: str = Field(min_length=1, max_length=200)
    start: datetime
    stop: datetime | None = None
    clumpidx: str | None = Field(default=None, max_length=20)
    title: str | None = None
    attrs: dict[str, str] = Field(default_factory=dict)
    payload: list[str] = Field(default_factory=list)


class NormalizeRequest(BaseModel):
    by_channel: bool = Field(default=config.BY_CHANNEL)
    timezone: str = Field(default=config.TIMEZONE, max_length=64)
    programmes: list[ProgrammeIn] = Field(max_length=_MAX_PROGRAMMES)


def _to_programme(item: ProgrammeIn, local_tz: tzinfo) -> Programme:
    return Programme(
        channel=ChannelId(item.channel.strip()),
        start=to_instant(item.start, local_tz),
        stop=to_instant(item.stop, local_tz) if item.stop is not None else None,
        clumpidx=parse_clumpidx(item.clumpidx),
        title=item.title,
        attrs=tuple(item.attrs.items()),
        payload=tuple(item.payload),
    )


def _programme_out(prog: Programme) -> dict:
    return {
        "channel": prog.channel,
        "start": prog.start.isoformat(),
        "stop": prog.stop.isoformat() if prog.stop else None,
        "clumpidx": str(prog.clumpidx) if prog.clumpidx else None,
        "title": prog.title,
        "attrs": dict(prog.attrs),
        "payload": list(prog.payload),
    }


@app.get("/health")
def health() -> dict:
    return {"ok": True, "time": datetime.now(UTC).isoformat()}


@app.post("/normalize")
def normalize(req: NormalizeRequest) -> dict:
    try:
        local_tz = config.load_timezone(req.timezone)
        programmes = [_to_programme(it, local_tz) for it in req.programmes]
        result = normalize_programmes(
            programmes,
            by_channel=req.by_channel,
            workers=config.WORKERS,
            local_tz=local_tz,
        )
    except ValueError as e:
        return JSONResponse(status_code=400, content={"detail": str(e)})
    except SortOrderError as e:
        log.exception("Sort postcondition failed")
        return JSONResponse(status_code=500, content={"detail": "Internal sort error", "error": str(e)})

    return {
        "programmes": [_programme_out(p) for p in result.programmes],
        "diagnostics": [d.as_dict() for d in result.diagnostics],
    }


@app.post("/normalize/xmltv")
async def normalize_xmltv(
    request: Request,
    by_channel: bool = Query(default=config.BY_CHANNEL),
    timezone: str = Query(default=config.TIMEZONE, max_length=64),
) -> Response:
    body = await request.body()
    try:
        data, warnings = await run_in_threadpool(_normalize_document, body, by_channel, timezone)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"detail": str(e)})
    except SortOrderError as e:
        log.exception("Sort postcondition failed")
        return JSONResponse(status_code=500, content={"detail": "Internal sort error", "error": str(e)})

    return Response(
        content=data,
        media_type="application/xml",
        headers={"X-Tvsort-Warnings": str(warnings)},
    )


def _normalize_document(body: bytes, by_channel: bool, timezone: str) -> tuple[bytes, int]:
    local_tz = config.load_timezone(timezone)
    listing = read_listing(body, local_tz=local_tz)
    normalized, diagnostics = normalize_listing(
        listing,
        by_channel=by_channel,
        workers=config.WORKERS,
        local_tz=local_tz,
    )
    return write_listing(normalized), len(diagnostics)
