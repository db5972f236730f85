"""
This file serves as a database of the server peculiarities we have to
work around.  Everything in here is process-wide and read-only.
"""
from types import MappingProxyType

## Providers that don't publish SRV records for their mail domains.
## Maps the domain part of a user's address to the host serving CardDAV.
KNOWN_SERVERS = MappingProxyType(
    {
        "gmail.com": "www.googleapis.com",
        "googlemail.com": "www.googleapis.com",
    }
)

## Google rejects a sync-collection REPORT sent with Depth: 0, although
## RFC 6578 mandates exactly that.
SYNC_COLLECTION_DEPTH_ONE_HOSTS = frozenset(["www.googleapis.com"])

## Context paths tried for every server after those published in DNS TXT
## records.  "/co" is where some hosted SabreDAV installations live
## without redirecting from /.well-known/carddav.
DEFAULT_CONTEXT_PATHS = ("/.well-known/carddav", "/", "/co")
