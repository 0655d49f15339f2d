"""Shared network utilities for client identification."""

from __future__ import annotations

from typing import Sequence

from starlette.requests import Request

from bistro.core.logging import get_logger

logger = get_logger(__name__)

# Single-address headers set by CDNs / reverse proxies, most specific first.
_SINGLE_IP_HEADERS: tuple[str, ...] = ("cf-connecting-ip", "x-real-ip")


def get_client_ip(
    request: Request,
    trusted_proxies: Sequence[str] = (),
) -> str:
    """Return the real client IP address.

    Proxy headers are only trusted when the *immediate* connection
    (``request.client.host``) comes from a known trusted proxy.
    When untrusted, the headers are ignored entirely.
    """
    direct_ip = request.client.host if request.client else "unknown"

    if direct_ip not in trusted_proxies:
        return direct_ip

    for header in _SINGLE_IP_HEADERS:
        value = request.headers.get(header, "").strip()
        if value:
            return value

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return direct_ip


def get_client_identifier(
    request: Request,
    trusted_proxies: Sequence[str] = (),
    preview_host_suffix: str = "",
) -> str:
    """Derive the rate-limit key for *request*.

    Preview deployments share one egress address across testers, so they
    are keyed by host instead of IP.
    """
    host = request.headers.get("host", "").strip().lower()
    if preview_host_suffix and host.endswith(preview_host_suffix):
        return f"preview-{host}"
    return get_client_ip(request, trusted_proxies=trusted_proxies)
