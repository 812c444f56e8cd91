from __future__ import annotations

from flask import Request

# Checked in order; the first non-empty value wins.
_IP_HEADERS = ("CF-Connecting-IP", "X-Real-IP", "X-Forwarded-For")


def _first_hop(value: str) -> str | None:
    hops = [p.strip() for p in value.split(",") if p.strip()]
    return hops[0] if hops else None


def get_client_ip(request: Request) -> str | None:
    """Best-effort client address for connection logs."""
    for header in _IP_HEADERS:
        raw = request.headers.get(header)
        if raw:
            ip = _first_hop(raw)
            if ip:
                return ip
    return request.remote_addr or None
