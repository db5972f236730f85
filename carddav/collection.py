#!/usr/bin/env python
"""
Thin domain objects on top of CardDAVClient: WebDAV resources and
collections, and the addressbook with its card operations.

Properties are fetched lazily with the first access and cached;
refresh_properties() fetches them again.
"""
import logging
import posixpath
import uuid
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple
from typing import TYPE_CHECKING
from typing import Union

import vobject

from carddav.davclient import CardDAVClient
from carddav.elements import cdav
from carddav.filter import Filter
from carddav.lib import error
from carddav.lib.namespace import ns
from carddav.lib.url import url_path
from carddav.protocol.types import AddressObject
from carddav.protocol.types import PropertyName
from carddav.protocol.types import ResourceProperties

if TYPE_CHECKING:
    from carddav.account import Account
    from carddav.sync import SyncHandler

log = logging.getLogger(__name__)

REPORT_SYNC_COLLECTION = ns("DAV", "sync-collection")
REPORT_MULTIGET = ns("CARDDAV", "addressbook-multiget")
RESOURCETYPE_COLLECTION = ns("DAV", "collection")
RESOURCETYPE_ADDRESSBOOK = cdav.Addressbook.tag


def parse_vcard(vcf: str, uri: str = "") -> Any:
    """Parse a vCard, None (and a warning) if it can't be parsed"""
    try:
        return vobject.readOne(vcf)
    except (vobject.base.VObjectError, StopIteration, ValueError, TypeError) as e:
        ## StopIteration: no component at all in the input
        log.warning(f"Could not parse vCard {uri}: {e}")
        return None


class WebDAVResource:
    """
    Any WebDAV resource on the server.
    """

    PROPERTIES: Tuple[PropertyName, ...] = (PropertyName.RESOURCETYPE,)

    def __init__(self, uri: str, account: "Account") -> None:
        self.uri = uri
        self.account = account
        self.client: CardDAVClient = account.get_client(uri)
        self._props: ResourceProperties = {}

    @classmethod
    def create_instance(
        cls,
        uri: str,
        account: "Account",
        resourcetype: Optional[List[str]] = None,
    ) -> "WebDAVResource":
        """
        The right kind of object for the resource at uri.  If the
        resourcetype isn't known yet, it is fetched from the server.
        """
        if resourcetype is None:
            resourcetype = cls(uri, account).properties.get(PropertyName.RESOURCETYPE, [])
        if RESOURCETYPE_ADDRESSBOOK in resourcetype:
            return AddressbookCollection(uri, account)
        if RESOURCETYPE_COLLECTION in resourcetype:
            return WebDAVCollection(uri, account)
        return WebDAVResource(uri, account)

    def __str__(self) -> str:
        return self.uri

    @property
    def properties(self) -> ResourceProperties:
        if not self._props:
            self.refresh_properties()
        return self._props

    def refresh_properties(self) -> None:
        result = self.client.find_properties(self.uri, self.PROPERTIES)
        if not result:
            raise error.ProtocolError(
                self.uri, "failed to retrieve properties of the resource"
            )
        self._props = result[0][1]

    @property
    def uri_path(self) -> str:
        return url_path(self.uri)

    @property
    def basename(self) -> str:
        return posixpath.basename(self.uri_path.rstrip("/"))

    def download_resource(self, uri: str) -> bytes:
        """The raw body of the resource at uri (relative to this resource)"""
        return self.client.get_resource(uri).body


class WebDAVCollection(WebDAVResource):
    PROPERTIES = WebDAVResource.PROPERTIES + (
        PropertyName.SYNC_TOKEN,
        PropertyName.SUPPORTED_REPORT_SET,
        PropertyName.ADD_MEMBER,
    )

    @property
    def sync_token(self) -> Optional[str]:
        return self.properties.get(PropertyName.SYNC_TOKEN)

    def supports_report(self, report: str) -> bool:
        """report is the qualified tag of the report"""
        return report in self.properties.get(PropertyName.SUPPORTED_REPORT_SET, [])

    def supports_sync_collection(self) -> bool:
        return self.supports_report(REPORT_SYNC_COLLECTION)

    def children(self) -> List[WebDAVResource]:
        """The members of the collection, empty if they can't be listed"""
        children = []
        try:
            for uri, props in self.client.find_properties(
                self.uri, [PropertyName.RESOURCETYPE], depth=1
            ):
                if uri.rstrip("/") == self.uri.rstrip("/"):
                    continue
                children.append(
                    self.create_instance(
                        uri, self.account, props.get(PropertyName.RESOURCETYPE, [])
                    )
                )
        except error.DAVError as e:
            log.info(f"Exception while querying collection children: {e}")
        return children


class AddressbookCollection(WebDAVCollection):
    """
    An addressbook.  Cards are handed in and out as vobject components.
    """

    PROPERTIES = WebDAVCollection.PROPERTIES + (
        PropertyName.DISPLAYNAME,
        PropertyName.GETCTAG,
        PropertyName.SUPPORTED_ADDRESS_DATA,
        PropertyName.ADDRESSBOOK_DESCRIPTION,
        PropertyName.MAX_RESOURCE_SIZE,
    )

    @property
    def name(self) -> str:
        return self.properties.get(PropertyName.DISPLAYNAME) or self.basename

    def __str__(self) -> str:
        return f"{self.name} ({self.uri})"

    @property
    def ctag(self) -> Optional[str]:
        return self.properties.get(PropertyName.GETCTAG)

    def supports_multiget(self) -> bool:
        return self.supports_report(REPORT_MULTIGET)

    def details(self) -> str:
        """Human readable description of the addressbook and its properties"""
        lines = [f"Addressbook {self.name}", f"    URI: {self.uri}"]
        for name, value in self.properties.items():
            if isinstance(value, list):
                value = ", ".join(
                    " ".join(v) if isinstance(v, tuple) else str(v) for v in value
                )
            lines.append(f"    {name.value}: {value}")
        return "\n".join(lines) + "\n"

    def get_card(self, uri: str) -> AddressObject:
        etag, vcf = self.client.get_address_object(uri)
        return AddressObject(
            uri=self.client.absolute_url(uri),
            etag=etag,
            vcf=vcf,
            vcard=parse_vcard(vcf, uri),
        )

    def _validate_card(self, vcard: Any) -> bytes:
        if getattr(vcard, "name", None) != "VCARD":
            raise error.ValidationError(self.uri, "not a vCard")
        if "fn" not in vcard.contents:
            raise error.ValidationError(self.uri, "the vCard lacks the mandatory FN property")
        if "uid" not in vcard.contents:
            raise error.ValidationError(self.uri, "the vCard lacks the mandatory UID property")
        try:
            return vcard.serialize().encode("utf-8")
        except vobject.base.VObjectError as e:
            raise error.ValidationError(self.uri, f"invalid vCard: {e}") from e

    def create_card(self, vcard: Any) -> Tuple[str, str]:
        """
        Store a new card in the addressbook.  A UID is added if the card
        has none.

        Returns:
            (URI, etag) of the new card.  The etag may be empty.
        """
        if getattr(vcard, "name", None) == "VCARD" and "uid" not in vcard.contents:
            new_uid = str(uuid.uuid4())
            log.info(f"Adding missing UID property to new vCard ({new_uid})")
            vcard.add("uid").value = new_uid
        body = self._validate_card(vcard)

        add_member = self.properties.get(PropertyName.ADD_MEMBER)
        if add_member:
            return self.client.create_resource(body, add_member, post=True)
        return self.client.create_resource(body, f"{vcard.uid.value}.vcf")

    def update_card(self, uri: str, vcard: Any, etag: str) -> Optional[str]:
        """
        Overwrite a card, provided it is unchanged on the server since we
        saw it with the given etag.

        Returns:
            The new etag, or None if the card was changed on the server
        """
        return self.client.update_resource(self._validate_card(vcard), uri, etag)

    def delete_card(self, uri: str) -> None:
        self.client.delete_resource(uri)

    def query(
        self,
        conditions: Union[Dict[str, Any], Iterable[Any]],
        requested_vcard_props: Iterable[str] = (),
        match_all: bool = False,
        limit: int = 0,
    ) -> Dict[str, AddressObject]:
        """
        Search the addressbook on the server side.  See carddav.filter
        for the format of the conditions.

        Returns:
            URI -> AddressObject with the parsed card

        Raises:
            ValidationError: if the conditions are malformed
        """
        filter_tree = Filter.from_conditions(conditions, match_all)
        results = self.client.query(self.uri, filter_tree, requested_vcard_props, limit)
        for obj in results.values():
            obj.vcard = parse_vcard(obj.vcf, obj.uri)
        return results

    def synchronize(
        self,
        handler: "SyncHandler",
        requested_vcard_props: Iterable[str] = (),
        prev_sync_token: str = "",
    ) -> str:
        """
        Bring the local state kept by handler up to date.

        Returns:
            The sync token to pass in next time
        """
        from carddav.sync import synchronize

        return synchronize(self, handler, requested_vcard_props, prev_sync_token)
