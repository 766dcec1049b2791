"""Caller address used as the per-IP rate-limit key."""

from __future__ import annotations

from fastapi import Request


# Checked in order; X-Forwarded-For may hold a chain, the first hop is the caller
PROXY_HEADERS = ("CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP")


def get_client_ip(request: Request) -> str:
    for header in PROXY_HEADERS:
        value = request.headers.get(header, "").split(",")[0].strip()
        if value:
            return value
    return request.client.host if request.client else "unknown"
