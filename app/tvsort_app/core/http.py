from __future__ import annotations

import gzip
import logging
import threading

import requests

log = logging.getLogger("tvsort.http")

_GZIP_MAGIC = b"\x1f\x8b"


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def maybe_gunzip(data: bytes) -> bytes:
    if data[:2] == _GZIP_MAGIC:
        return gzip.decompress(data)
    return data


class HttpClient:
    def __init__(self, *, user_agent: str, timeout_seconds: float = 20.0) -> None:
        self._local = threading.local()
        self._timeout_seconds = timeout_seconds
        self._session_headers = {
            "User-Agent": user_agent,
            "Accept": "application/xml, text/xml;q=0.9, */*;q=0.5",
        }

    def _get_session(self) -> requests.Session:
        # requests.Session is not guaranteed to be thread-safe, so keep one session per thread.
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = requests.Session()
            sess.headers.update(self._session_headers)
            self._local.session = sess
        return sess

    def get_bytes(self, url: str) -> bytes:
        # Listings are XML, so the document's own encoding declaration is
        # authoritative; hand the parser bytes instead of resp.text.
        resp = self._get_session().get(url, timeout=self._timeout_seconds)
        resp.raise_for_status()
        log.info("Fetched %s (%s bytes)", url, len(resp.content))
        return maybe_gunzip(resp.content)
