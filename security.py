import hmac
import secrets
import threading
from collections import defaultdict
from time import time

from fastapi import Request

from config import CSRF_COOKIE_NAME


class _SlidingWindow:
    """Per-IP attempt counter over a sliding window; in memory, lost on restart."""

    def __init__(self, window: int, max_attempts: int):
        self.window = window
        self.max_attempts = max_attempts
        self._lock = threading.Lock()
        self._hits: dict[str, list[float]] = defaultdict(list)

    def allow(self, ip: str) -> bool:
        now = time()
        with self._lock:
            recent = [t for t in self._hits[ip] if now - t < self.window]
            allowed = len(recent) < self.max_attempts
            if allowed:
                recent.append(now)
            self._hits[ip] = recent
            return allowed

    def reset(self):
        with self._lock:
            self._hits.clear()


# Per client IP: 10 logins per 5 minutes, 5 signups per hour.
_login_limiter = _SlidingWindow(window=300, max_attempts=10)
_signup_limiter = _SlidingWindow(window=3600, max_attempts=5)


def _is_login_allowed(ip: str) -> bool:
    return _login_limiter.allow(ip)


def _is_signup_allowed(ip: str) -> bool:
    return _signup_limiter.allow(ip)


def _reset_rate_limits():
    _login_limiter.reset()
    _signup_limiter.reset()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _request_origin_host(request: Request) -> str:
    header = request.headers.get("origin") or request.headers.get("referer") or ""
    if "://" not in header:
        return ""
    return header.split("://", 1)[1].split("/", 1)[0].lower()


def _is_same_origin(request: Request) -> bool:
    origin_host = _request_origin_host(request)
    if not origin_host:
        return False
    return origin_host == request.url.netloc.lower()


def _ensure_csrf_cookie(request: Request, response):
    if request.cookies.get(CSRF_COOKIE_NAME):
        return response
    response.set_cookie(
        CSRF_COOKIE_NAME,
        secrets.token_urlsafe(32),
        httponly=False,
        samesite="lax",
        secure=request.url.scheme == "https",
    )
    return response


def _csrf_header_valid(request: Request) -> bool:
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME, "")
    header_token = request.headers.get("x-csrf-token", "")
    return bool(cookie_token) and hmac.compare_digest(cookie_token, header_token)
