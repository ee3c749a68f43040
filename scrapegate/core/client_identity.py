"""Client identity extraction for admission control.

The key is taken from a caller-supplied forwarded-for header and is therefore
spoofable. It partitions quotas for fairness and abuse mitigation only; it is
not an authenticated identity.
"""

from __future__ import annotations

from fastapi import Request

from scrapegate.core.config import settings

UNKNOWN_CLIENT = "unknown"

MAX_CLIENT_KEY_LENGTH = 256


def parse_forwarded_for(value: str | None) -> str | None:
    """Return the first address of a forwarded-for style header value.

    Examples:
        >>> parse_forwarded_for("1.2.3.4, 10.0.0.1")
        '1.2.3.4'
        >>> parse_forwarded_for("  ") is None
        True
    """
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first[:MAX_CLIENT_KEY_LENGTH] or None


def get_client_key(
    request: Request,
    *,
    header_name: str | None = None,
    trust_peer_address: bool | None = None,
) -> str:
    """Derive the best-effort client key for a request.

    Args:
        request: Incoming request.
        header_name: Header to read; defaults to the configured client header.
        trust_peer_address: Fall back to the socket peer when the header is
            missing; defaults to configuration.

    Returns:
        The client key, or ``UNKNOWN_CLIENT`` when nothing identifies the caller.
    """
    header = header_name or settings.app.rate_limit_client_header
    use_peer = (
        settings.app.rate_limit_trust_peer_address
        if trust_peer_address is None
        else trust_peer_address
    )

    client_key = parse_forwarded_for(request.headers.get(header))
    if client_key:
        return client_key

    if use_peer and request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT


def build_admission_key(scope: str, client_key: str) -> str:
    """Namespace a client key by route scope so quotas are per endpoint."""
    return f"{scope}:{client_key}"
