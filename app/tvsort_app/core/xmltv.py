from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import UTC, tzinfo
from typing import Iterable

from tvsort_app.core.models import (
    ChannelId,
    ClumpIndex,
    InputContractError,
    Listing,
    ListingHeader,
    Programme,
)
from tvsort_app.core.util import clean_text, format_xmltv_time, parse_xmltv_time

_ENCODING_RE = re.compile(rb"""^\s*<\?xml[^>]*\bencoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")
_DOCTYPE = '<!DOCTYPE tv SYSTEM "xmltv.dtd">'
_KNOWN_ATTRS = ("start", "stop", "channel", "clumpidx")


class XmltvFormatError(ValueError):
    pass


def _strip_layout(el: ET.Element) -> ET.Element:
    # Indentation is not content; drop it so equal programmes serialize equally.
    for node in el.iter():
        if len(node) and node.text is not None and not node.text.strip():
            node.text = None
        if node.tail is not None and not node.tail.strip():
            node.tail = None
    el.tail = None
    return el


def _serialize(el: ET.Element) -> str:
    return ET.tostring(_strip_layout(el), encoding="unicode")


def _detect_encoding(data: bytes) -> str | None:
    m = _ENCODING_RE.match(data[:200])
    if not m:
        return None
    return m.group(1).decode("ascii")


def parse_clumpidx(value: str | None) -> ClumpIndex | None:
    if value is None:
        return None
    m = re.match(r"^\s*(\d+)\s*/\s*(\d+)\s*$", value)
    if not m:
        raise XmltvFormatError(f"Invalid clumpidx: {value!r}")
    try:
        return ClumpIndex(position=int(m.group(1)), size=int(m.group(2)))
    except ValueError as e:
        raise XmltvFormatError(str(e)) from e


def _parse_programme(el: ET.Element, local_tz: tzinfo) -> Programme:
    channel = (el.get("channel") or "").strip()
    start_raw = el.get("start")
    if not channel:
        raise InputContractError(f"<programme start={start_raw!r}> has no channel")
    if not start_raw:
        raise InputContractError(f"<programme channel={channel!r}> has no start")

    start = parse_xmltv_time(start_raw, local_tz)
    if start is None:
        raise XmltvFormatError(f"Bad start time {start_raw!r} on channel {channel}")

    stop = None
    stop_raw = el.get("stop")
    if stop_raw is not None:
        stop = parse_xmltv_time(stop_raw, local_tz)
        if stop is None:
            raise XmltvFormatError(f"Bad stop time {stop_raw!r} on channel {channel}")

    title_el = el.find("title")
    title = clean_text(title_el.text or "") if title_el is not None else ""

    return Programme(
        channel=ChannelId(channel),
        start=start,
        stop=stop,
        clumpidx=parse_clumpidx(el.get("clumpidx")),
        title=title or None,
        attrs=tuple((k, v) for k, v in el.attrib.items() if k not in _KNOWN_ATTRS),
        payload=tuple(_serialize(child) for child in el),
    )


def read_listing(data: bytes | str, *, local_tz: tzinfo = UTC) -> Listing:
    """Parse an XMLTV document.

    Times without an explicit offset are taken in ``local_tz``.
    """
    raw = data.encode("utf-8") if isinstance(data, str) else data
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise XmltvFormatError(f"Invalid XML: {e}") from e
    if root.tag != "tv":
        raise XmltvFormatError(f"Expected <tv> root element, got <{root.tag}>")

    channels: list[str] = []
    programmes: list[Programme] = []
    for child in root:
        if child.tag == "channel":
            channels.append(_serialize(child))
        elif child.tag == "programme":
            programmes.append(_parse_programme(child, local_tz))

    header = ListingHeader(
        encoding=_detect_encoding(raw) or "UTF-8",
        attrs=tuple(root.attrib.items()),
        channels=tuple(channels),
    )
    return Listing(header=header, programmes=programmes)


def _channel_id(serialized: str) -> str:
    return ET.fromstring(serialized).get("id") or ""


def merge_listings(listings: Iterable[Listing]) -> Listing:
    listings = list(listings)
    if not listings:
        return Listing(header=ListingHeader())

    first = listings[0].header
    seen: set[str] = set()
    channels: list[str] = []
    programmes: list[Programme] = []
    for listing in listings:
        for ch in listing.header.channels:
            cid = _channel_id(ch)
            if cid in seen:
                continue
            seen.add(cid)
            channels.append(ch)
        programmes.extend(listing.programmes)

    header = ListingHeader(encoding=first.encoding, attrs=first.attrs, channels=tuple(channels))
    return Listing(header=header, programmes=programmes)


def _programme_element(prog: Programme) -> ET.Element:
    el = ET.Element("programme")
    el.set("start", format_xmltv_time(prog.start))
    if prog.stop is not None:
        el.set("stop", format_xmltv_time(prog.stop))
    el.set("channel", prog.channel)
    if prog.clumpidx is not None:
        el.set("clumpidx", str(prog.clumpidx))
    for k, v in prog.attrs:
        el.set(k, v)
    for child in prog.payload:
        el.append(ET.fromstring(child))
    if not prog.payload and prog.title:
        title = ET.SubElement(el, "title")
        title.text = prog.title
    return el


def write_listing(listing: Listing) -> bytes:
    encoding = listing.header.encoding or "UTF-8"
    root = ET.Element("tv")
    for k, v in listing.header.attrs:
        root.set(k, v)
    for ch in listing.header.channels:
        root.append(ET.fromstring(ch))
    for prog in listing.programmes:
        root.append(_programme_element(prog))
    ET.indent(root, space="  ")

    body = ET.tostring(root, encoding=encoding, xml_declaration=False)
    prolog = f'<?xml version="1.0" encoding="{encoding}"?>\n{_DOCTYPE}\n'.encode("ascii")
    return prolog + body + b"\n"
