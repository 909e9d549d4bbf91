from __future__ import annotations

import logging
import threading
import typing as tp

from ._models import CacheEntry

__all__ = ("ResponseCache",)

logger = logging.getLogger("rawfetch.cache")


class ResponseCache:
    """
    Remembers the last response body and validators for every request URL.

    Keys are the request URLs exactly as given, so ``https://a.com/x`` and
    ``https://a.com/x/`` are separate entries. Entries never expire; freshness is
    decided by the server answering conditional requests.
    """

    def __init__(self) -> None:
        self._entries: tp.Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, url: str) -> tp.Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(url)

    def put(self, url: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[url] = entry
        logger.debug(f"Stored {len(entry.body)} bytes for {url}")

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
