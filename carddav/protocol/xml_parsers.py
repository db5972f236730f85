"""
Pure functions for parsing CardDAV XML responses.

All functions in this module are pure - they take responses in and return
structured data out, with no side effects or I/O.  Properties are decoded
through a fixed table keyed by PropertyName; properties we don't know of
are silently dropped.
"""
import logging
from types import MappingProxyType
from typing import Any
from typing import Callable
from typing import List
from typing import Mapping
from typing import Optional

from lxml import etree
from lxml.etree import _Element

from .types import AddressDataType
from .types import DAVResponse
from .types import MultistatusResult
from .types import PropertyName
from .types import Propstat
from .types import PropstatEntry
from .types import ResourceProperties
from .types import StatusEntry
from carddav.elements import cdav
from carddav.elements import dav
from carddav.lib import error
from carddav.lib.url import concat_url

log = logging.getLogger(__name__)


def _decode_text(element: _Element, base_uri: str) -> Optional[str]:
    return element.text


def _decode_stripped(element: _Element, base_uri: str) -> str:
    ## etags and tokens are compared literally
    return (element.text or "").strip()


def _decode_href(element: _Element, base_uri: str) -> Optional[str]:
    for child in element:
        if child.tag == dav.Href.tag and child.text:
            return concat_url(base_uri, child.text.strip())
    return None


def _decode_href_list(element: _Element, base_uri: str) -> List[str]:
    return [
        concat_url(base_uri, child.text.strip())
        for child in element
        if child.tag == dav.Href.tag and child.text
    ]


def _decode_child_tags(element: _Element, base_uri: str) -> List[str]:
    return [child.tag for child in element if isinstance(child.tag, str)]


def _decode_supported_reports(element: _Element, base_uri: str) -> List[str]:
    ## supported-report-set/supported-report/report/<the report>
    reports = []
    for supported in element.iterchildren(dav.SupportedReport.tag):
        for report in supported.iterchildren(dav.Report.tag):
            reports.extend(c.tag for c in report if isinstance(c.tag, str))
    return reports


def _decode_address_data_types(
    element: _Element, base_uri: str
) -> List[AddressDataType]:
    return [
        AddressDataType(
            content_type=child.get("content-type", "text/vcard"),
            version=child.get("version", "3.0"),
        )
        for child in element.iterchildren(cdav.AddressDataType.tag)
    ]


def _decode_int(element: _Element, base_uri: str) -> int:
    return int((element.text or "").strip())


PROPERTY_DECODERS: Mapping[
    PropertyName, Callable[[_Element, str], Any]
] = MappingProxyType(
    {
        PropertyName.CURRENT_USER_PRINCIPAL: _decode_href,
        PropertyName.ADDRESSBOOK_HOME_SET: _decode_href_list,
        PropertyName.ADD_MEMBER: _decode_href,
        PropertyName.RESOURCETYPE: _decode_child_tags,
        PropertyName.SUPPORTED_REPORT_SET: _decode_supported_reports,
        PropertyName.SUPPORTED_ADDRESS_DATA: _decode_address_data_types,
        PropertyName.MAX_RESOURCE_SIZE: _decode_int,
        PropertyName.GETETAG: _decode_stripped,
        PropertyName.GETCTAG: _decode_stripped,
        PropertyName.SYNC_TOKEN: _decode_stripped,
    }
)


def decode_property(name: PropertyName, element: _Element, base_uri: str) -> Any:
    """
    Decode the XML content of a property.

    hrefs are resolved against base_uri, resourcetype yields the
    qualified tags of its children, supported-report-set the qualified
    tags of the reports, supported-address-data a list of
    AddressDataType.  Anything else is returned as text.
    """
    decoder = PROPERTY_DECODERS.get(name, _decode_text)
    return decoder(element, base_uri)


def _parse_xml(body: bytes, url: Optional[str] = None) -> _Element:
    try:
        return etree.fromstring(body)
    except etree.XMLSyntaxError as e:
        log.error(f"Could not parse XML response from {url}: {e}")
        raise error.XmlParseError(url, f"malformed XML: {e}") from e


def _decode_prop(prop: _Element, base_uri: str) -> ResourceProperties:
    properties: ResourceProperties = {}
    for child in prop:
        if not isinstance(child.tag, str):
            continue
        name = PropertyName.from_tag(child.tag)
        if name is None:
            continue
        try:
            properties[name] = decode_property(name, child, base_uri)
        except ValueError:
            error.weirdness("undecodable property", child)
    return properties


def _parse_propstat(propstat: _Element, base_uri: str) -> Propstat:
    status_elem = propstat.find(dav.Status.tag)
    status = (status_elem.text or "") if status_elem is not None else ""
    result = Propstat(status=status, properties={})
    if not result.ok:
        return result
    prop = propstat.find(dav.Prop.tag)
    if prop is None:
        return result
    return Propstat(status=status, properties=_decode_prop(prop, base_uri))


def parse_multistatus_document(root: _Element, base_uri: str) -> MultistatusResult:
    """
    Turn a DAV:multistatus element into a MultistatusResult.

    A DAV:response carrying a DAV:status child becomes a StatusEntry,
    one carrying DAV:propstat children becomes a PropstatEntry.  Only
    2xx propstat groups get their properties decoded.  hrefs of the
    responses are kept as the server sent them.
    """
    if root.tag != dav.MultiStatus.tag:
        raise error.XmlParseError(
            base_uri, f"expected a multistatus document, got {root.tag}"
        )

    result = MultistatusResult()
    for elem in root:
        if elem.tag == dav.SyncToken.tag:
            result.sync_token = (elem.text or "").strip()
            continue
        if elem.tag != dav.Response.tag:
            continue

        hrefs = [
            (h.text or "").strip() for h in elem.iterchildren(dav.Href.tag)
        ]
        status = elem.find(dav.Status.tag)
        propstats = list(elem.iterchildren(dav.PropStat.tag))

        if not hrefs:
            error.weirdness("response without href", elem)
        elif status is not None:
            result.responses.append(
                StatusEntry(hrefs=tuple(hrefs), status=status.text or "")
            )
        elif propstats:
            if len(hrefs) > 1:
                error.weirdness("propstat response with several hrefs", elem)
            result.responses.append(
                PropstatEntry(
                    href=hrefs[0],
                    propstats=tuple(_parse_propstat(p, base_uri) for p in propstats),
                )
            )
        else:
            error.weirdness("response with neither status nor propstat", elem)
    return result


def parse_multistatus(response: DAVResponse, base_uri: str) -> MultistatusResult:
    """
    Parse the response to a REPORT request.

    Raises:
        ProtocolError: if the response is not a 207 with an XML content type
        XmlParseError: if the body is not a well-formed multistatus document
    """
    if not response.is_multistatus or not response.is_xml:
        raise error.ProtocolError(
            base_uri,
            f"expected multistatus response, got {response.status} "
            f"({response.content_type or 'no content type'})",
        )
    return parse_multistatus_document(_parse_xml(response.body, base_uri), base_uri)


def check_and_parse_single_doc(response: DAVResponse, url: Optional[str] = None) -> _Element:
    """
    Check that the response is a successful XML response, and return
    its root element.

    Raises:
        ProtocolError: on a non-2xx status or a non-XML content type
        XmlParseError: if the body is not well-formed
    """
    if not response.ok:
        raise error.ProtocolError(url, f"{response.status} {response.reason}")
    if not response.is_xml:
        raise error.ProtocolError(
            url, f"unexpected content type {response.content_type!r}"
        )
    return _parse_xml(response.body, url)
