# utils.py
# Helpers: never-raising timeout wrapper, dedupe, seeded shuffle, cursors, in-memory TTL cache

from __future__ import annotations

import asyncio
import hashlib
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Hashable, Iterable, List, Optional, Sequence, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


# timeout wrapper for external calls
# returns (result, errstr) and never raises
async def run_with_timeout(coro: Awaitable[T], seconds: float, label: str, default: Any = None):
    try:
        result = await asyncio.wait_for(coro, timeout=seconds)
        return result, None
    except asyncio.TimeoutError:
        msg = f"{label} timed out after {seconds}s"
        log.warning(msg)
        return default, msg
    except Exception as e:
        msg = f"{label} error: {e}"
        log.warning(msg)
        return default, msg


def dedupe(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """First occurrence wins."""
    seen = set()
    out: List[T] = []
    for it in items:
        k = key(it)
        if k not in seen:
            seen.add(k)
            out.append(it)
    return out


def shuffle(items: Sequence[T], rng: random.Random) -> List[T]:
    """Fisher-Yates on a copy."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def session_key(
    lat: float,
    lng: float,
    moods: Sequence[str],
    time_of_day: str,
    radius_m: int,
    curated_only: bool,
    college: Optional[str] = None,
    day: Optional[str] = None,
) -> str:
    """
    Stable key for one logical browsing session (same place, vibe and day).
    Origin is rounded to ~100m so GPS jitter does not start a new session.
    """
    day = day or datetime.now(timezone.utc).strftime("%Y-%m-%d")
    raw = "|".join([
        f"{lat:.3f}",
        f"{lng:.3f}",
        ",".join(sorted(moods)),
        time_of_day,
        str(radius_m),
        "curated" if curated_only else "all",
        (college or "").strip().lower(),
        day,
    ])
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def seeded_rng(key: str) -> random.Random:
    return random.Random(int(key[:16], 16))


def parse_cursor(cursor: Optional[str]) -> int:
    """Offset encoded as a string. Garbage or negative -> 0."""
    if not cursor:
        return 0
    try:
        return max(0, int(cursor))
    except (TypeError, ValueError):
        return 0


@dataclass
class CacheEntry:
    expires: float
    data: Any


class TTLCache:
    """
    Per-process session store. Entries expire after ttl_seconds; expired
    ones are swept on every write, and the oldest are evicted once
    max_entries is reached, so abandoned sessions never pile up.
    """

    def __init__(self, ttl_seconds: int = 600, max_entries: int = 512):
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._store: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._store)

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.expires <= time.monotonic():
            del self._store[key]
            return None
        return entry.data

    def purge(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = time.monotonic()
        stale = [k for k, e in self._store.items() if e.expires <= now]
        for k in stale:
            del self._store[k]
        return len(stale)

    def set(self, key: str, value: Any) -> None:
        self.purge()
        self._store.pop(key, None)
        # dicts keep insertion order, so the first keys are the oldest writes
        while self.max_entries > 0 and len(self._store) >= self.max_entries:
            del self._store[next(iter(self._store))]
        self._store[key] = CacheEntry(expires=time.monotonic() + self.ttl, data=value)
