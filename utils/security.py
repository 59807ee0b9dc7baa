"""Security helpers for headers, hashing, and request throttling."""
import hashlib
import secrets
import threading
import time
from collections import deque

from flask import request


def apply_security_headers(response, force_https: bool = False):
    """Apply headers suitable for a JSON-only API."""
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    response.headers.setdefault("Cache-Control", "no-store")
    if force_https or request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
    return response


def generate_token(length: int = 32) -> str:
    return secrets.token_urlsafe(length)


def hash_value(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def password_meets_policy(password: str) -> tuple[bool, str | None]:
    """Enforce the minimum password baseline."""
    if len(password) < 8:
        return False, "Password must be at least 8 characters long."
    if not any(c.isalpha() for c in password):
        return False, "Include at least one letter."
    if not any(c.isdigit() for c in password):
        return False, "Include at least one digit."
    return True, None


class SlidingWindowRateLimiter:
    """Per-key sliding window counter shared across requests.

    Each key keeps the timestamps of its recent hits. Timestamps older than the
    window are evicted on every access, and keys idle for longer than ``ttl`` are
    dropped by :meth:`purge_expired`, which runs opportunistically on writes.
    """

    def __init__(self, limit: int, window_seconds: float, ttl: float | None = None, clock=time.monotonic):
        self.limit = limit
        self.window = float(window_seconds)
        self.ttl = float(ttl if ttl is not None else window_seconds)
        self._clock = clock
        self._hits: dict[str, deque] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()
        self._writes = 0

    def _evict(self, key: str, now: float, create: bool = True) -> deque:
        hits = self._hits.setdefault(key, deque()) if create else self._hits.get(key, deque())
        cutoff = now - self.window
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def hit(self, key: str) -> bool:
        """Record an attempt; return False when the key is over its limit."""
        with self._lock:
            now = self._clock()
            hits = self._evict(key, now)
            if len(hits) >= self.limit:
                self._last_seen[key] = now
                return False
            hits.append(now)
            self._last_seen[key] = now
            self._writes += 1
            if self._writes % 256 == 0:
                self._purge_locked(now)
            return True

    def is_limited(self, key: str) -> bool:
        with self._lock:
            return len(self._evict(key, self._clock(), create=False)) >= self.limit

    def count(self, key: str) -> int:
        with self._lock:
            return len(self._evict(key, self._clock(), create=False))

    def release(self, key: str) -> None:
        """Drop the most recent hit for ``key``, for attempts that did not go through."""
        with self._lock:
            hits = self._hits.get(key)
            if hits:
                hits.pop()

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)
            self._last_seen.pop(key, None)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: float) -> int:
        stale = [key for key, seen in self._last_seen.items() if now - seen > self.ttl]
        for key in stale:
            self._hits.pop(key, None)
            self._last_seen.pop(key, None)
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)
