"""
Pure functions for building CardDAV XML request bodies.

All functions in this module are pure - they take data in and return XML out,
with no side effects or I/O.
"""
from typing import Iterable
from typing import List
from typing import Optional
from typing import TYPE_CHECKING

from lxml import etree

from .types import PropertyName
from carddav.elements import cdav
from carddav.elements import cs
from carddav.elements import dav
from carddav.elements.base import BaseElement

if TYPE_CHECKING:
    from carddav.filter import Filter

## vCard properties any client needs to make sense of a card
MANDATORY_VCARD_PROPS = ("BEGIN", "END", "FN", "VERSION", "UID")

_PROPERTY_ELEMENTS = {
    PropertyName.CURRENT_USER_PRINCIPAL: dav.CurrentUserPrincipal,
    PropertyName.ADDRESSBOOK_HOME_SET: cdav.AddressbookHomeSet,
    PropertyName.ADD_MEMBER: dav.AddMember,
    PropertyName.RESOURCETYPE: dav.ResourceType,
    PropertyName.SUPPORTED_REPORT_SET: dav.SupportedReportSet,
    PropertyName.SUPPORTED_ADDRESS_DATA: cdav.SupportedAddressData,
    PropertyName.DISPLAYNAME: dav.DisplayName,
    PropertyName.GETETAG: dav.GetEtag,
    PropertyName.GETCTAG: cs.GetCTag,
    PropertyName.SYNC_TOKEN: dav.SyncToken,
    PropertyName.ADDRESS_DATA: cdav.AddressData,
    PropertyName.ADDRESSBOOK_DESCRIPTION: cdav.AddressbookDescription,
    PropertyName.MAX_RESOURCE_SIZE: cdav.MaxResourceSize,
}


def _to_bytes(root: BaseElement) -> bytes:
    return etree.tostring(root.xmlelement(), encoding="utf-8", xml_declaration=True)


def build_propfind_body(props: Iterable[PropertyName]) -> bytes:
    """
    Build PROPFIND request body XML.

    Args:
        props: the properties to retrieve, one empty element is emitted for each

    Returns:
        UTF-8 encoded XML bytes
    """
    prop_elements = [_PROPERTY_ELEMENTS[prop]() for prop in props]
    propfind = dav.Propfind() + (dav.Prop() + prop_elements)
    return _to_bytes(propfind)


def build_sync_collection_body(sync_token: Optional[str], level: int = 1) -> bytes:
    """
    Build sync-collection REPORT body.  An empty token asks for a full
    initial sync.  Only the etags are requested, the cards are fetched
    with a multiget afterwards.
    """
    root = dav.SyncCollection() + [
        dav.SyncToken(value=sync_token or ""),
        dav.SyncLevel(value=str(level)),
        dav.Prop() + dav.GetEtag(),
    ]
    return _to_bytes(root)


def _address_data(vcard_props: Iterable[str]) -> BaseElement:
    """
    An address-data element asking for the given vCard properties.
    Without any properties, the full card is requested.
    """
    requested: List[str] = [p.upper() for p in vcard_props]
    address_data = cdav.AddressData()
    if requested:
        for mandatory in MANDATORY_VCARD_PROPS:
            if mandatory not in requested:
                requested.append(mandatory)
        address_data += [cdav.Prop(name=p) for p in requested]
    return address_data


def build_multiget_body(hrefs: Iterable[str], vcard_props: Iterable[str] = ()) -> bytes:
    """
    Build addressbook-multiget REPORT body.

    Args:
        hrefs: the address object URIs to fetch
        vcard_props: vCard properties to return.  BEGIN, END, FN, VERSION
            and UID are added to any non-empty selection; an empty
            selection requests the complete cards.

    Returns:
        UTF-8 encoded XML bytes
    """
    prop = dav.Prop() + [dav.GetEtag(), _address_data(vcard_props)]
    root = cdav.AddressbookMultiGet() + prop
    root += [dav.Href(value=href) for href in hrefs]
    return _to_bytes(root)


def build_query_body(
    filter_tree: "Filter",
    vcard_props: Iterable[str] = (),
    limit: int = 0,
) -> bytes:
    """
    Build addressbook-query REPORT body.

    Args:
        filter_tree: compiled filter, see carddav.filter
        vcard_props: vCard properties to return (see build_multiget_body)
        limit: ask the server to return at most this many results, 0 for no limit

    Returns:
        UTF-8 encoded XML bytes
    """
    prop = dav.Prop() + [dav.GetEtag(), _address_data(vcard_props)]
    root = cdav.AddressbookQuery() + [prop, filter_tree.to_element()]
    if limit > 0:
        root += cdav.Limit() + cdav.NResults(value=str(limit))
    return _to_bytes(root)
