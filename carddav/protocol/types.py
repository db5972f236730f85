"""
Core protocol types for the Sans-I/O CardDAV implementation.

These dataclasses represent HTTP responses and parsed multistatus
documents at the protocol level, independent of any I/O implementation.
"""

import re
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any
from typing import Dict
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from requests.structures import CaseInsensitiveDict

from carddav.lib.namespace import ns

_XML_CONTENT_TYPE = re.compile(r"^(text|application)/xml", re.IGNORECASE)
_STATUS_LINE = re.compile(r"^\s*HTTP/\S+\s+(\d{3})")


class PropertyName(Enum):
    """
    The properties the protocol engine knows how to request and decode.
    The value is the qualified (clark notation) tag of the element.
    """

    CURRENT_USER_PRINCIPAL = ns("DAV", "current-user-principal")
    ADDRESSBOOK_HOME_SET = ns("CARDDAV", "addressbook-home-set")
    ADD_MEMBER = ns("DAV", "add-member")
    RESOURCETYPE = ns("DAV", "resourcetype")
    SUPPORTED_REPORT_SET = ns("DAV", "supported-report-set")
    SUPPORTED_ADDRESS_DATA = ns("CARDDAV", "supported-address-data")
    DISPLAYNAME = ns("DAV", "displayname")
    GETETAG = ns("DAV", "getetag")
    GETCTAG = ns("CS", "getctag")
    SYNC_TOKEN = ns("DAV", "sync-token")
    ADDRESS_DATA = ns("CARDDAV", "address-data")
    ADDRESSBOOK_DESCRIPTION = ns("CARDDAV", "addressbook-description")
    MAX_RESOURCE_SIZE = ns("CARDDAV", "max-resource-size")

    @classmethod
    def from_tag(cls, tag: str) -> Optional["PropertyName"]:
        try:
            return cls(tag)
        except ValueError:
            return None


class AddressDataType(NamedTuple):
    """One entry of the supported-address-data property"""

    content_type: str = "text/vcard"
    version: str = "3.0"


## A decoded property value: plain text, one or more URLs, a list of
## qualified tag names, a list of AddressDataType or an int
ResourceProperties = Dict[PropertyName, Any]


def status_to_code(status: Optional[str]) -> int:
    """
    Extract the numeric code from a status line like "HTTP/1.1 404 Not Found".
    Returns 0 if the line can't be interpreted.
    """
    if not status:
        return 0
    m = _STATUS_LINE.match(status)
    if not m:
        return 0
    return int(m.group(1))


@dataclass(frozen=True)
class DAVResponse:
    """
    Represents an HTTP response received.

    This is a pure data structure with no I/O.  The transport reads the
    complete body before handing it over.

    Attributes:
        status: HTTP status code
        headers: HTTP headers, case insensitive
        body: Response body as bytes
        reason: Reason phrase as sent by the server
    """

    status: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""
    reason: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, CaseInsensitiveDict):
            object.__setattr__(self, "headers", CaseInsensitiveDict(self.headers or {}))
        if self.body is None:
            object.__setattr__(self, "body", b"")

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    @property
    def is_multistatus(self) -> bool:
        """True if this is a 207 Multi-Status response."""
        return self.status == 207

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    @property
    def is_xml(self) -> bool:
        return bool(_XML_CONTENT_TYPE.match(self.content_type.strip()))

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class StatusEntry:
    """
    A DAV:response carrying a DAV:status directly - one or more hrefs
    sharing a single status.  Used by servers to signal deletions and
    truncation in sync-collection reports.
    """

    hrefs: Tuple[str, ...]
    status: str

    @property
    def status_code(self) -> int:
        return status_to_code(self.status)


@dataclass(frozen=True)
class Propstat:
    status: str
    properties: ResourceProperties

    @property
    def status_code(self) -> int:
        return status_to_code(self.status)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class PropstatEntry:
    """A DAV:response with one href and its propstat groups"""

    href: str
    propstats: Tuple[Propstat, ...]

    @property
    def properties(self) -> ResourceProperties:
        """All properties delivered with a 2xx status, merged"""
        props: ResourceProperties = {}
        for propstat in self.propstats:
            if propstat.ok:
                props.update(propstat.properties)
        return props

    @property
    def ok(self) -> bool:
        return any(propstat.ok for propstat in self.propstats)


@dataclass
class MultistatusResult:
    """
    Parsed 207 Multi-Status response.

    Attributes:
        responses: status entries and propstat entries, in document order
        sync_token: top level sync token, if present (sync-collection)
    """

    responses: List[Any] = field(default_factory=list)
    sync_token: Optional[str] = None

    @property
    def status_entries(self) -> List[StatusEntry]:
        return [r for r in self.responses if isinstance(r, StatusEntry)]

    @property
    def propstat_entries(self) -> List[PropstatEntry]:
        return [r for r in self.responses if isinstance(r, PropstatEntry)]


@dataclass
class AddressObject:
    """
    One address object (vCard resource) on the server.  ``vcf`` is None
    until the body has been fetched, ``vcard`` is None until (and unless)
    the body could be parsed.
    """

    uri: str
    etag: str
    vcf: Optional[str] = None
    vcard: Any = None


@dataclass
class SyncBatchResult:
    sync_token: str = ""
    truncated: bool = False
    changed_objects: List[AddressObject] = field(default_factory=list)
    deleted_objects: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ServerCandidate:
    """
    A server we may try during discovery.  ``dnsrr`` is the name of the
    SRV record this candidate came from, None for the fallbacks.
    """

    host: str
    port: int
    scheme: str
    dnsrr: Optional[str] = None

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


@dataclass(frozen=True)
class RedirectResult:
    response: DAVResponse
    uri: str
    redirected: bool = False
