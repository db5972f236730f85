"""
Authentication utilities for the CardDAV transport.

The server tells us in the WWW-Authenticate header which schemes it
accepts; we pick the best one we can do with the credentials at hand.
"""

from __future__ import annotations


def extract_auth_types(header: str) -> set[str]:
    """
    Extract authentication types from WWW-Authenticate header.

    Parses the WWW-Authenticate header value and extracts the
    authentication scheme names (e.g., "basic", "digest", "bearer").
    Auth-params (realm="...", nonce="..." etc.) are skipped.

    Args:
        header: WWW-Authenticate header value from server response.

    Returns:
        Set of lowercase auth type strings.

    Example:
        >>> sorted(extract_auth_types('Basic realm="test", Digest realm="test"'))
        ['basic', 'digest']

    Reference:
        https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/WWW-Authenticate#syntax
    """
    types = set()
    for challenge in header.lower().split(","):
        challenge = challenge.strip()
        if not challenge:
            continue
        first = challenge.split()[0]
        ## a digest challenge is followed by comma-separated auth-params,
        ## those end up here as 'nonce="..."' and are no schemes
        if "=" in first:
            continue
        types.add(first)
    return types


def select_auth_type(
    auth_types: set[str] | list[str],
    has_username: bool,
    has_password: bool,
    prefer_digest: bool = True,
) -> str | None:
    """
    Select the best authentication type from available options.

    Args:
        auth_types: Available authentication types from server.
        has_username: Whether a username is configured.
        has_password: Whether a password is configured.
        prefer_digest: Whether to prefer Digest over Basic auth.

    Returns:
        Selected auth type string, or None if no suitable type found.

    Selection logic:
        - If username is set: prefer Digest (more secure) or Basic
        - If only password is set: use Bearer token auth
        - Otherwise: return None
    """
    auth_types_set = set(auth_types) if not isinstance(auth_types, set) else auth_types

    if has_username:
        if prefer_digest and "digest" in auth_types_set:
            return "digest"
        if "basic" in auth_types_set:
            return "basic"
    elif has_password:
        # Password without username suggests bearer token
        if "bearer" in auth_types_set:
            return "bearer"

    return None
