#!/usr/bin/env python
"""
The CardDAV client: the HTTP request executor plus the individual
WebDAV/CardDAV operations built on top of it.

Redirects are followed here rather than in the transport, since the
HTTP libraries turn a redirected PROPFIND or REPORT into a GET or drop
the body on the way.
"""
import logging
import random
import re
from typing import Dict
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional
from typing import Tuple
from typing import TYPE_CHECKING

from carddav.compatibility_hints import SYNC_COLLECTION_DEPTH_ONE_HOSTS
from carddav.io.base import SyncIOProtocol
from carddav.lib import error
from carddav.lib.url import concat_url
from carddav.lib.url import hostname
from carddav.protocol.types import AddressObject
from carddav.protocol.types import DAVResponse
from carddav.protocol.types import MultistatusResult
from carddav.protocol.types import PropertyName
from carddav.protocol.types import RedirectResult
from carddav.protocol.types import ResourceProperties
from carddav.protocol.xml_builders import build_multiget_body
from carddav.protocol.xml_builders import build_propfind_body
from carddav.protocol.xml_builders import build_query_body
from carddav.protocol.xml_builders import build_sync_collection_body
from carddav.protocol.xml_parsers import check_and_parse_single_doc
from carddav.protocol.xml_parsers import parse_multistatus
from carddav.protocol.xml_parsers import parse_multistatus_document

if TYPE_CHECKING:
    from carddav.filter import Filter

log = logging.getLogger(__name__)

MAX_REDIRECTS = 5
REDIRECT_CODES = (301, 302, 307, 308)
## attempts to find a free URI when creating a new resource
MAX_CREATE_ATTEMPTS = 5

XML_HEADERS = {"Content-Type": 'application/xml; charset="utf-8"'}
VCARD_HEADERS = {"Content-Type": "text/vcard"}


def _insert_random_suffix(uri: str) -> str:
    """/abook/card.vcf -> /abook/card-1234567.vcf"""
    suffix = f"-{random.randint(0, 2**31)}"
    return re.sub(r"(\.[^./]*)?$", lambda m: suffix + (m.group(1) or ""), uri, count=1)


class CardDAVClient:
    """
    Executes CardDAV operations against one server.

    Args:
        base_url: URL relative URIs are resolved against
        transport: anything satisfying carddav.io.base.SyncIOProtocol
    """

    def __init__(self, base_url: str, transport: SyncIOProtocol) -> None:
        self.base_url = base_url
        self.transport = transport

    def absolute_url(self, uri: str) -> str:
        return concat_url(self.base_url, uri)

    def send_with_redirect_tracking(
        self,
        method: str,
        uri: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> RedirectResult:
        """
        Send a request, following up to MAX_REDIRECTS redirects with
        the same method and body.  When the limit is exceeded, the last
        (redirect) response is returned; the caller has to look at the
        status anyway.
        """
        uri = self.absolute_url(uri)
        redirected = False
        hops = 0
        response = self.transport.send_request(
            method, uri, headers, body, allow_redirects=False
        )
        while response.status in REDIRECT_CODES and response.headers.get("Location"):
            if hops >= MAX_REDIRECTS:
                log.warning(
                    f"Giving up on {method} after {hops} redirects, last one at {uri}"
                )
                break
            location = response.headers["Location"]
            uri = concat_url(uri, location)
            hops += 1
            redirected = True
            log.debug(f"{method} redirected ({response.status}) to {uri}")
            response = self.transport.send_request(
                method, uri, headers, body, allow_redirects=False
            )
        return RedirectResult(response=response, uri=uri, redirected=redirected)

    def request(
        self,
        method: str,
        uri: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> RedirectResult:
        """
        Like send_with_redirect_tracking, but a final 401 or 403 is
        raised as AuthorizationError.
        """
        result = self.send_with_redirect_tracking(method, uri, headers, body)
        if result.response.status in (401, 403):
            raise error.AuthorizationError(
                url=result.uri, reason=result.response.reason or "None given"
            )
        return result

    def find_properties(
        self, uri: str, props: Iterable[PropertyName], depth: int = 0
    ) -> List[Tuple[str, ResourceProperties]]:
        """
        PROPFIND the given properties.

        Returns:
            (absolute URI, properties) for every resource in the
            response that has at least one property with a 2xx status.
            Relative hrefs are resolved against the URI the request
            ended up at after redirects.
        """
        headers = dict(XML_HEADERS)
        headers["Depth"] = str(depth)
        headers["Prefer"] = "return=minimal"
        result = self.request("PROPFIND", uri, headers, build_propfind_body(props))
        root = check_and_parse_single_doc(result.response, result.uri)
        multistatus = parse_multistatus_document(root, result.uri)

        found = []
        for entry in multistatus.propstat_entries:
            if entry.ok:
                found.append((concat_url(result.uri, entry.href), entry.properties))
        return found

    def sync_collection(self, uri: str, sync_token: str = "") -> MultistatusResult:
        """
        Issue a sync-collection REPORT.  Raises ProtocolError if the
        server doesn't include the new sync-token in its response.
        """
        uri = self.absolute_url(uri)
        headers = dict(XML_HEADERS)
        headers["Depth"] = "1" if hostname(uri) in SYNC_COLLECTION_DEPTH_ONE_HOSTS else "0"
        result = self.request(
            "REPORT", uri, headers, build_sync_collection_body(sync_token)
        )
        multistatus = parse_multistatus(result.response, result.uri)
        if not multistatus.sync_token:
            raise error.ProtocolError(
                result.uri, "sync-collection response lacks a sync-token"
            )
        return multistatus

    def _address_objects(
        self, multistatus: MultistatusResult, base_uri: str
    ) -> Dict[str, AddressObject]:
        objects = {}
        for entry in multistatus.propstat_entries:
            props = entry.properties
            etag = props.get(PropertyName.GETETAG)
            vcf = props.get(PropertyName.ADDRESS_DATA)
            if etag is None or vcf is None:
                log.warning(
                    f"Server did not provide etag and address data for {entry.href}"
                )
                continue
            uri = concat_url(base_uri, entry.href)
            objects[uri] = AddressObject(uri=uri, etag=etag, vcf=vcf)
        return objects

    def multiget(
        self, uri: str, hrefs: Iterable[str], vcard_props: Iterable[str] = ()
    ) -> Dict[str, AddressObject]:
        """
        Fetch the given address objects with an addressbook-multiget REPORT.

        Returns:
            absolute URI -> AddressObject with etag and vcf filled in.
            Objects the server didn't return are missing.
        """
        headers = dict(XML_HEADERS)
        headers["Depth"] = "0"
        result = self.request(
            "REPORT", uri, headers, build_multiget_body(hrefs, vcard_props)
        )
        multistatus = parse_multistatus(result.response, result.uri)
        return self._address_objects(multistatus, result.uri)

    def query(
        self,
        uri: str,
        filter_tree: "Filter",
        vcard_props: Iterable[str] = (),
        limit: int = 0,
    ) -> Dict[str, AddressObject]:
        """
        Run an addressbook-query REPORT.

        Returns:
            absolute URI -> AddressObject for every matching card
        """
        headers = dict(XML_HEADERS)
        headers["Depth"] = "1"
        result = self.request(
            "REPORT", uri, headers, build_query_body(filter_tree, vcard_props, limit)
        )
        multistatus = parse_multistatus(result.response, result.uri)
        return self._address_objects(multistatus, result.uri)

    def get_resource(self, uri: str) -> DAVResponse:
        """GET a resource.  Anything but a 200 with a body is an error."""
        result = self.request("GET", uri)
        response = result.response
        if response.status == 404:
            raise error.NotFoundError(result.uri, response.reason)
        if response.status != 200 or not response.body:
            raise error.ProtocolError(
                result.uri, f"GET failed: {error.errmsg(response)}"
            )
        return response

    def get_address_object(self, uri: str) -> Tuple[str, str]:
        """
        Returns:
            (etag, vcf) of the address object at uri
        """
        response = self.get_resource(uri)
        etag = response.headers.get("ETag")
        if not etag:
            raise error.ProtocolError(
                self.absolute_url(uri), "response to GET lacks ETag header"
            )
        return etag, response.text

    def create_resource(
        self, body: bytes, suggested_uri: str, post: bool = False
    ) -> Tuple[str, str]:
        """
        Create a new resource.

        With a PUT, the resource is only created if nothing exists at
        the URI yet; if something does, a random number is inserted
        into the URI and we try again.  With a POST to an add-member
        URI, the server picks the URI and tells us in the Location
        header.

        Returns:
            (absolute URI, etag) of the new resource.  The etag is empty
            if the server didn't send one.
        """
        uri = self.absolute_url(suggested_uri)

        if post:
            result = self.request("POST", uri, VCARD_HEADERS, body)
            response = result.response
            location = response.headers.get("Location")
            if response.status != 201 or not location:
                raise error.ProtocolError(
                    result.uri, f"POST to add-member failed: {error.errmsg(response)}"
                )
            return concat_url(result.uri, location), response.headers.get("ETag", "")

        headers = dict(VCARD_HEADERS)
        headers["If-None-Match"] = "*"
        for attempt in range(MAX_CREATE_ATTEMPTS):
            result = self.request("PUT", uri, headers, body)
            response = result.response
            if response.status in (200, 201, 204):
                return result.uri, response.headers.get("ETag", "")
            if response.status != 412:
                raise error.ProtocolError(
                    result.uri, f"PUT failed: {error.errmsg(response)}"
                )
            log.debug(f"{uri} already exists, trying another name")
            uri = _insert_random_suffix(self.absolute_url(suggested_uri))
        raise error.ProtocolError(
            uri, f"no free URI found after {MAX_CREATE_ATTEMPTS} attempts"
        )

    def update_resource(self, body: bytes, uri: str, etag: str = "") -> Optional[str]:
        """
        Overwrite an existing resource.  With an etag given, the server
        only accepts the update if the resource is unchanged since.

        Returns:
            the new etag (empty if the server didn't send one), or None
            if the resource was changed on the server in the meantime
        """
        headers = dict(VCARD_HEADERS)
        if etag:
            headers["If-Match"] = etag
        result = self.request("PUT", uri, headers, body)
        response = result.response
        if response.status == 412:
            log.info(f"{result.uri} changed on the server, update refused")
            return None
        if response.status not in (200, 201, 204):
            raise error.ProtocolError(result.uri, f"PUT failed: {error.errmsg(response)}")
        return response.headers.get("ETag", "")

    def delete_resource(self, uri: str) -> None:
        result = self.request("DELETE", uri)
        response = result.response
        if response.status == 404:
            raise error.NotFoundError(result.uri, response.reason)
        if not 200 <= response.status <= 204:
            raise error.ProtocolError(
                result.uri, f"DELETE failed: {error.errmsg(response)}"
            )
