#!/usr/bin/env python
"""
Synchronization of an addressbook with a local cache.

The changes since the last synchronization are determined in the best
way the server offers:

1. a sync-collection REPORT (RFC 6578), if the server advertises it,
2. otherwise (or if the server fails on it), the sync-token or ctag of
   the collection; if it is unchanged, so is the addressbook,
3. otherwise the etags of all cards are compared against those the
   local cache knows of.

The changed cards are then fetched with an addressbook-multiget REPORT
if possible, the remaining ones with individual GETs.

The local cache is represented by a SyncHandler.  All URIs passed to and
received from the handler are URL paths.
"""
import logging
from abc import ABC
from abc import abstractmethod
from typing import Any
from typing import Dict
from typing import Iterable
from typing import Optional
from typing import TYPE_CHECKING

from carddav.collection import parse_vcard
from carddav.lib import error
from carddav.lib.url import compare_url_paths
from carddav.lib.url import concat_url
from carddav.lib.url import url_path
from carddav.protocol.types import AddressObject
from carddav.protocol.types import PropertyName
from carddav.protocol.types import SyncBatchResult

if TYPE_CHECKING:
    from carddav.collection import AddressbookCollection

log = logging.getLogger(__name__)

## A server truncating the sync-collection result each time must not
## keep us busy forever
MAX_SYNC_BATCHES = 10


class SyncHandler(ABC):
    """
    The local side of a synchronization.  Per batch, on_deleted() is
    called for all deleted cards first, then on_changed() for all new
    and changed ones, and finally on_finalize() exactly once.
    """

    @abstractmethod
    def get_existing_etags(self) -> Dict[str, str]:
        """URI path -> etag of all cards in the local cache"""

    @abstractmethod
    def on_changed(self, uri: str, etag: str, card: Optional[Any]) -> None:
        """
        A card was added or changed on the server.  card is the parsed
        vobject component, None if the card could not be fetched or
        parsed.
        """

    @abstractmethod
    def on_deleted(self, uri: str) -> None:
        """A card was deleted on the server"""

    @abstractmethod
    def on_finalize(self) -> None:
        """The batch is complete"""


def synchronize(
    abook: "AddressbookCollection",
    handler: SyncHandler,
    requested_vcard_props: Iterable[str] = (),
    prev_sync_token: str = "",
) -> str:
    """
    Synchronize until the server reports no more changes.

    Args:
        abook: the addressbook
        handler: the local cache
        requested_vcard_props: fetch only these vCard properties (all if empty)
        prev_sync_token: token returned by the previous synchronization,
            empty for the initial one

    Returns:
        The sync token to pass in next time
    """
    requested_vcard_props = list(requested_vcard_props)
    sync_token = prev_sync_token
    for _ in range(MAX_SYNC_BATCHES):
        result = sync_batch(abook, handler, requested_vcard_props, sync_token)
        sync_token = result.sync_token
        if not result.truncated:
            return sync_token
        log.debug(f"sync result for {abook.uri} truncated by the server, continuing")
    log.warning(
        f"sync of {abook.uri} still truncated after {MAX_SYNC_BATCHES} batches, stopping"
    )
    return sync_token


def sync_batch(
    abook: "AddressbookCollection",
    handler: SyncHandler,
    requested_vcard_props: Iterable[str] = (),
    prev_sync_token: str = "",
) -> SyncBatchResult:
    """
    Determine the changes since prev_sync_token once, fetch the changed
    cards and hand everything over to the handler.
    """
    result = None
    if abook.supports_sync_collection():
        try:
            result = _changes_by_sync_collection(abook, prev_sync_token)
        except Exception as e:
            log.warning(
                f"sync-collection REPORT failed on {abook.uri}, falling back to etag comparison: {e}",
                exc_info=True,
            )
    if result is None:
        result = _changes_by_etags(abook, handler, prev_sync_token)

    for uri in result.deleted_objects:
        handler.on_deleted(uri)

    if result.changed_objects:
        _fetch_cards(abook, result, requested_vcard_props)
        for obj in result.changed_objects:
            handler.on_changed(obj.uri, obj.etag, obj.vcard)

    handler.on_finalize()
    return result


def _changes_by_sync_collection(
    abook: "AddressbookCollection", prev_sync_token: str
) -> SyncBatchResult:
    multistatus = abook.client.sync_collection(abook.uri, prev_sync_token)
    result = SyncBatchResult(sync_token=multistatus.sync_token)

    for entry in multistatus.status_entries:
        for href in entry.hrefs:
            if compare_url_paths(concat_url(abook.uri, href), abook.uri):
                if entry.status_code == 507:
                    result.truncated = True
            elif entry.status_code == 404:
                result.deleted_objects.append(url_path(concat_url(abook.uri, href)))
            else:
                error.weirdness(f"unexpected status {entry.status} for {href}")

    for entry in multistatus.propstat_entries:
        uri = concat_url(abook.uri, entry.href)
        if compare_url_paths(uri, abook.uri) or not entry.ok:
            continue
        etag = entry.properties.get(PropertyName.GETETAG) or ""
        result.changed_objects.append(AddressObject(uri=url_path(uri), etag=etag))

    log.debug(
        f"sync-collection on {abook.uri}: {len(result.changed_objects)} changed, "
        f"{len(result.deleted_objects)} deleted, truncated={result.truncated}"
    )
    return result


def _collection_token(abook: "AddressbookCollection") -> str:
    """The current sync-token of the collection, or its ctag; empty if it has neither"""
    for uri, props in abook.client.find_properties(
        abook.uri, [PropertyName.SYNC_TOKEN, PropertyName.GETCTAG]
    ):
        if compare_url_paths(uri, abook.uri):
            ## sync-token is preferred, the ctag is its non-standard predecessor
            return (
                props.get(PropertyName.SYNC_TOKEN)
                or props.get(PropertyName.GETCTAG)
                or ""
            )
    return ""


def _changes_by_etags(
    abook: "AddressbookCollection", handler: SyncHandler, prev_sync_token: str
) -> SyncBatchResult:
    sync_token = _collection_token(abook)
    if not sync_token:
        log.info(f"{abook.uri} has neither sync-token nor ctag, comparing all etags")
    elif sync_token == prev_sync_token:
        log.debug(f"{abook.uri} is unchanged since {prev_sync_token}")
        return SyncBatchResult(sync_token=sync_token)

    members = abook.client.find_properties(abook.uri, [PropertyName.GETETAG], depth=1)
    result = SyncBatchResult(sync_token=sync_token)
    ## working copy, the handler's data is not ours to modify
    known_etags = dict(handler.get_existing_etags())

    for uri, props in members:
        if compare_url_paths(uri, abook.uri):
            continue
        path = url_path(uri)
        etag = props.get(PropertyName.GETETAG)
        if not etag:
            log.warning(f"Server did not report an etag for {path}, ignoring it")
            known_etags.pop(path, None)
            continue
        if known_etags.pop(path, None) != etag:
            result.changed_objects.append(AddressObject(uri=path, etag=etag))

    result.deleted_objects = list(known_etags)
    return result


def _fetch_cards(
    abook: "AddressbookCollection",
    result: SyncBatchResult,
    requested_vcard_props: Iterable[str],
) -> None:
    """Fill in vcf, etag and vcard of the changed objects"""
    by_path = {obj.uri: obj for obj in result.changed_objects}

    if abook.supports_multiget():
        try:
            fetched = abook.client.multiget(
                abook.uri, list(by_path), requested_vcard_props
            )
        except error.DAVError as e:
            log.warning(f"addressbook-multiget failed on {abook.uri}: {e}")
            fetched = {}
        for uri, fetched_obj in fetched.items():
            obj = by_path.get(url_path(uri))
            if obj is None:
                log.warning(f"addressbook-multiget returned unrequested {uri}")
                continue
            obj.etag = fetched_obj.etag
            obj.vcf = fetched_obj.vcf

    for obj in result.changed_objects:
        if obj.vcf is None:
            if abook.supports_multiget():
                log.warning(f"{obj.uri} missing from multiget result, fetching it separately")
            try:
                obj.etag, obj.vcf = abook.client.get_address_object(obj.uri)
            except error.DAVError as e:
                log.warning(f"Could not fetch {obj.uri}: {e}")
                continue
        obj.vcard = parse_vcard(obj.vcf, obj.uri)
