from __future__ import annotations

from flask import Request


FORWARDING_HEADERS = ("CF-Connecting-IP", "X-Real-IP")


def client_ip(request: Request, trust_proxy: bool = False) -> str | None:
    """Best-effort caller address; forwarding headers count only behind a trusted proxy."""
    if trust_proxy:
        for header in FORWARDING_HEADERS:
            value = (request.headers.get(header) or "").strip()
            if value:
                return value

        forwarded = [p.strip() for p in (request.headers.get("X-Forwarded-For") or "").split(",")]
        forwarded = [p for p in forwarded if p]
        if forwarded:
            return forwarded[0]

    return request.remote_addr or None
