"""Client identity derivation for per-client throttling.

The identity is a best-effort bucket key, not an authenticated principal:
``X-Forwarded-For`` is trivially spoofable when the service is reachable
without a trusted proxy in front of it.
"""

from __future__ import annotations

import hashlib

from fastapi import Request

UNKNOWN_CLIENT = "unknown"
FORWARDED_FOR_HEADER = "X-Forwarded-For"


def resolve_client_identity(request: Request, *, trust_forwarded_for: bool = True) -> str:
    """Derive the client identity for the current request.

    Resolution order: first entry of ``X-Forwarded-For`` (when trusted), the
    transport peer address, then the shared ``"unknown"`` bucket.

    Examples:
        X-Forwarded-For: "203.0.113.7, 10.0.0.1" -> "203.0.113.7"
        no header, peer 127.0.0.1                -> "127.0.0.1"
    """

    if trust_forwarded_for:
        forwarded = request.headers.get(FORWARDED_FOR_HEADER)
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT


def hash_client_identity(identity: str) -> str:
    """Hash the identity for logging without exposing client addresses."""
    return hashlib.sha256(identity.encode()).hexdigest()[:16]
