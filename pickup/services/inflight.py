"""Per-caller in-flight request tracking.

A request claims ``(user_id, operation)`` for its duration. A second claim on
the same key while the first is still running (and younger than the TTL) is
refused, which blocks double-submits from one client without serializing
unrelated callers. Claims older than the TTL are treated as abandoned.
"""
import itertools
import threading
import time
from contextlib import contextmanager

from pickup.errors import Conflict


class InFlightRequests:

    def __init__(self, ttl_seconds=10, clock=time.monotonic):
        self.ttl_seconds = max(1, int(ttl_seconds))
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        # key -> (expires_at, token)
        self._claims = {}

    def _prune(self, now):
        expired = [key for key, (expires_at, _) in self._claims.items() if expires_at <= now]
        for key in expired:
            del self._claims[key]

    def acquire(self, user_id, operation):
        """Claim the key.

        Returns ``(token, None)`` on success, where ``token`` identifies this
        claim for :meth:`release`, or ``(None, seconds_until_retry)``.
        """
        key = (str(user_id), str(operation))
        with self._lock:
            now = self._clock()
            self._prune(now)
            current = self._claims.get(key)
            if current is not None:
                return None, max(1, int(current[0] - now) + 1)
            token = next(self._tokens)
            self._claims[key] = (now + self.ttl_seconds, token)
            return token, None

    def release(self, user_id, operation, token):
        """Drop the claim only if it is still the one identified by ``token``."""
        key = (str(user_id), str(operation))
        with self._lock:
            current = self._claims.get(key)
            if current is not None and current[1] == token:
                del self._claims[key]

    def in_flight(self, user_id, operation):
        with self._lock:
            self._prune(self._clock())
            return (str(user_id), str(operation)) in self._claims

    @contextmanager
    def claim(self, user_id, operation):
        token, retry_after = self.acquire(user_id, operation)
        if token is None:
            raise Conflict(
                'Request already in progress, please wait',
                code='request_in_progress',
                retry_after_seconds=retry_after,
            )
        try:
            yield
        finally:
            self.release(user_id, operation, token)
