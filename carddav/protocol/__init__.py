"""
Sans-I/O CardDAV protocol implementation.

The protocol layer is organized into:
- types: Core data structures (DAVResponse, PropertyName, result types)
- xml_builders: Pure functions to build XML request bodies
- xml_parsers: Pure functions to parse XML response bodies

Example usage:

    from carddav.protocol import PropertyName, build_propfind_body, parse_multistatus

    body = build_propfind_body([PropertyName.DISPLAYNAME, PropertyName.RESOURCETYPE])

    # Execute via your preferred transport
    response = transport.send_request("PROPFIND", url, {"Depth": "1"}, body)

    result = parse_multistatus(response, url)
"""

from .types import (
    AddressDataType,
    AddressObject,
    DAVResponse,
    MultistatusResult,
    PropertyName,
    Propstat,
    PropstatEntry,
    RedirectResult,
    ServerCandidate,
    StatusEntry,
    SyncBatchResult,
)
from .xml_builders import (
    build_multiget_body,
    build_propfind_body,
    build_query_body,
    build_sync_collection_body,
)
from .xml_parsers import (
    check_and_parse_single_doc,
    decode_property,
    parse_multistatus,
    parse_multistatus_document,
)

__all__ = [
    "AddressDataType",
    "AddressObject",
    "DAVResponse",
    "MultistatusResult",
    "PropertyName",
    "Propstat",
    "PropstatEntry",
    "RedirectResult",
    "ServerCandidate",
    "StatusEntry",
    "SyncBatchResult",
    "build_multiget_body",
    "build_propfind_body",
    "build_query_body",
    "build_sync_collection_body",
    "check_and_parse_single_doc",
    "decode_property",
    "parse_multistatus",
    "parse_multistatus_document",
]
