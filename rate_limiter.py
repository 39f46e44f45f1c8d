"""
Per-IP submission rate limiting
A fixed-window counter per client, kept in process memory.
"""

import hashlib
import ipaddress
import threading
import time

import config

# Checked in order; the first public address wins
IP_HEADERS = (
    'CF-Connecting-IP',
    'Client-IP',
    'X-Forwarded-For',
    'X-Forwarded',
    'X-Cluster-Client-IP',
    'Forwarded-For',
    'Forwarded',
)


def _is_public_ip(value: str) -> bool:
    try:
        ip = ipaddress.ip_address(value)
    except ValueError:
        return False
    return not (ip.is_private or ip.is_reserved or ip.is_loopback or ip.is_link_local)


def get_client_ip(headers, remote_addr: str = '') -> str:
    """Pick the client address from proxy headers, falling back to the socket address."""
    for key in IP_HEADERS:
        raw = headers.get(key)
        if not raw:
            continue
        candidate = str(raw).split(',')[0].strip()
        if candidate.lower().startswith('for='):
            candidate = candidate[4:].strip('"')
        if _is_public_ip(candidate):
            return candidate
    return remote_addr or '127.0.0.1'


class RateLimiter:
    """Allow at most max_attempts per window_seconds for each key."""

    def __init__(self, max_attempts: int = None, window_seconds: int = None, clock=time.monotonic):
        self.max_attempts = config.MAX_SUBMISSIONS_PER_HOUR if max_attempts is None else max_attempts
        self.window_seconds = config.RATE_LIMIT_WINDOW_SECONDS if window_seconds is None else window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._counters = {}  # key -> (attempts, window expiry)

    @staticmethod
    def _key(ip: str) -> str:
        return hashlib.md5(ip.encode('utf-8')).hexdigest()

    def check(self, ip: str) -> bool:
        """Record an attempt. Returns False once the client has used up its window."""
        key = self._key(ip)
        now = self._clock()
        with self._lock:
            attempts, expires_at = self._counters.get(key, (0, 0))
            if expires_at <= now:
                attempts, expires_at = 0, now + self.window_seconds
            if attempts >= self.max_attempts:
                return False
            self._counters[key] = (attempts + 1, expires_at)
            self._purge(now)
            return True

    def remaining(self, ip: str) -> int:
        with self._lock:
            attempts, expires_at = self._counters.get(self._key(ip), (0, 0))
        if expires_at <= self._clock():
            return self.max_attempts
        return max(self.max_attempts - attempts, 0)

    def reset(self, ip: str = None):
        with self._lock:
            if ip is None:
                self._counters.clear()
            else:
                self._counters.pop(self._key(ip), None)

    def _purge(self, now: float):
        if len(self._counters) < 1024:
            return
        expired = [k for k, (_, exp) in self._counters.items() if exp <= now]
        for k in expired:
            del self._counters[k]
