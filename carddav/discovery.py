#!/usr/bin/env python
"""
RFC 6764 - Locating Services for Calendaring and Contacts (CardDAV)

Turns the minimal input of a user (a domain, or a URL) plus credentials
into the addressbooks of that user.

Discovery goes through these steps:
1. The servers to try: DNS SRV records (_carddavs._tcp, and _carddav._tcp
   if plain http is acceptable), a builtin table for providers lacking
   SRV records, and finally the host the user gave us.
2. For each server, the context paths to try: paths from DNS TXT records
   (only for servers found per SRV), then /.well-known/carddav, / and /co.
3. For each context path: current-user-principal, then the
   addressbook-home-set of the principal, then the addressbooks in the
   home.  The first combination yielding addressbooks wins.

DNS failures are treated as "no records", and any failure in step 3 moves
on to the next context path or server.  Discovery never raises due to
the server's behaviour - if nothing is found, the result is empty.

SECURITY CONSIDERATIONS:
    DNS-based discovery is vulnerable to attacks if DNS is not secured with
    DNSSEC.  Plain http servers published per DNS are only considered if
    the user explicitly asked for http.

See: https://datatracker.ietf.org/doc/html/rfc6764
"""
import logging
import re
from dataclasses import dataclass
from typing import List
from typing import Optional
from typing import TYPE_CHECKING

import dns.exception
import dns.resolver

from carddav.compatibility_hints import DEFAULT_CONTEXT_PATHS
from carddav.compatibility_hints import KNOWN_SERVERS
from carddav.lib.error import ValidationError
from carddav.protocol.types import ServerCandidate

if TYPE_CHECKING:
    from carddav.account import Account
    from carddav.collection import AddressbookCollection

log = logging.getLogger(__name__)

_TARGET = re.compile(r"^(([^:]+)://)?(([^/:]+)(:([0-9]+))?)(/?.*)$")


@dataclass(frozen=True)
class DiscoveryTarget:
    """What the user asked us to look at"""

    scheme: str
    host: str
    port: int
    force_ssl: bool


def parse_target(url: str) -> DiscoveryTarget:
    """
    Split the discovery URI into scheme, host and port.  https on port
    443 is assumed unless the URI explicitly says http, in which case
    plain http (default port 80) is acceptable as well.

    Raises:
        ValidationError: if there is no host in the URI
    """
    m = _TARGET.match(url.strip()) if url else None
    if not m:
        raise ValidationError(
            url, "the discovery URI must contain a hostname"
        )
    scheme = (m.group(2) or "").lower()
    force_ssl = scheme != "http"
    if not scheme:
        scheme = "https"
    port = int(m.group(6)) if m.group(6) else (443 if force_ssl else 80)
    return DiscoveryTarget(scheme=scheme, host=m.group(4), port=port, force_ssl=force_ssl)


def _srv_lookup(rrname: str) -> list:
    """
    Perform DNS SRV record lookup.

    Returns:
        List of tuples: (hostname, port, priority, weight), unsorted
    """
    log.debug(f"Performing SRV lookup for {rrname}")

    try:
        answers = dns.resolver.resolve(rrname, "SRV")
    except dns.exception.DNSException as e:
        log.debug(f"SRV lookup failed for {rrname}: {e}")
        return []

    results = []
    for rdata in answers:
        hostname = str(rdata.target).rstrip(".")
        port = int(rdata.port)
        priority = int(rdata.priority)
        weight = int(rdata.weight)
        log.debug(
            f"Found SRV record: {hostname}:{port} (priority={priority}, weight={weight})"
        )
        results.append((hostname, port, priority, weight))
    return results


def _parse_txt_record(txt_data: str) -> Optional[str]:
    """
    Extract the path attribute of a TXT record.

    Examples:
        >>> _parse_txt_record('path=/dav/')
        '/dav/'
        >>> _parse_txt_record('other=value')
    """
    m = re.match(r"^path=(.+)", txt_data)
    if m:
        return m.group(1).strip()
    return None


def _txt_lookup(rrname: str) -> List[str]:
    """
    Perform DNS TXT record lookup.

    Returns:
        The paths from all TXT records with a path attribute, in the order received
    """
    log.debug(f"Performing TXT lookup for {rrname}")

    try:
        answers = dns.resolver.resolve(rrname, "TXT")
    except dns.exception.DNSException as e:
        log.debug(f"TXT lookup failed for {rrname}: {e}")
        return []

    paths = []
    for rdata in answers:
        # TXT records can have multiple strings; join them
        txt_data = "".join(
            [s.decode("utf-8") if isinstance(s, bytes) else s for s in rdata.strings]
        )
        log.debug(f"Found TXT record: {txt_data}")
        path = _parse_txt_record(txt_data)
        if path:
            log.info(f"Discovered context path {path} per DNS TXT record {rrname}")
            paths.append(path)
    return paths


def resolve_server_candidates(
    host: str,
    force_ssl: bool = True,
    port: Optional[int] = None,
    scheme: Optional[str] = None,
) -> List[ServerCandidate]:
    """
    The servers to try for host, highest precedence first.

    SRV records are sorted by ascending priority, ties by ascending
    weight, without the weighted random choice of RFC 2782.
    Then follow the builtin server for the domain, if any, and last the
    host itself with the given port and scheme.
    """
    if scheme is None:
        scheme = "https" if force_ssl else "http"
    if port is None:
        port = 443 if scheme == "https" else 80

    candidates = []

    rrnames_and_schemes = [(f"_carddavs._tcp.{host}", "https")]
    if not force_ssl:
        rrnames_and_schemes.append((f"_carddav._tcp.{host}", "http"))

    for rrname, srv_scheme in rrnames_and_schemes:
        records = _srv_lookup(rrname)
        if records:
            records.sort(key=lambda r: (r[2], r[3]))
            for target, srv_port, _priority, _weight in records:
                log.info(f"Found server per DNS SRV {rrname}: {target}:{srv_port}")
                candidates.append(
                    ServerCandidate(
                        host=target, port=srv_port, scheme=srv_scheme, dnsrr=rrname
                    )
                )
            break

    known = KNOWN_SERVERS.get(host.lower())
    if known:
        candidates.append(ServerCandidate(host=known, port=port, scheme=scheme))

    candidates.append(ServerCandidate(host=host, port=port, scheme=scheme))
    return candidates


def resolve_context_paths(candidate: ServerCandidate) -> List[str]:
    """
    The context paths to try on a server: the paths published in DNS
    TXT records for servers found per SRV, then the fixed fallbacks.
    """
    paths = []
    if candidate.dnsrr:
        paths.extend(_txt_lookup(candidate.dnsrr))
    paths.extend(DEFAULT_CONTEXT_PATHS)
    return paths


def discover_addressbooks(account: "Account") -> List["AddressbookCollection"]:
    """
    Find the addressbooks of the account.  The base URL of the account
    is set to the server currently probed, so after a successful
    discovery it points to the server the addressbooks live on.

    Raises:
        ValidationError: if the discovery URI of the account has no host

    Returns:
        The addressbooks found, possibly none
    """
    from carddav.collection import AddressbookCollection

    target = parse_target(account.discovery_uri)
    candidates = resolve_server_candidates(
        target.host, target.force_ssl, target.port, target.scheme
    )

    for candidate in candidates:
        account.base_url = candidate.base_url
        for context_path in resolve_context_paths(candidate):
            log.debug(f"Trying context path {context_path} on {candidate.base_url}")
            principal = account.find_current_user_principal(context_path)
            if not principal:
                continue
            home = account.find_addressbook_home(principal)
            if not home:
                continue
            addressbooks = [
                AddressbookCollection(uri, account)
                for uri in account.find_addressbooks(home)
            ]
            if addressbooks:
                log.info(
                    f"Found {len(addressbooks)} addressbooks in {home} on {candidate.base_url}"
                )
                return addressbooks

    log.info(f"No addressbooks found for {account.discovery_uri}")
    return []
