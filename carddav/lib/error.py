#!/usr/bin/env python
import logging
import os
from typing import Optional

from carddav import __version__

debug_dump_communication = False
## Environmental variables prepended with "PYTHON_CARDDAV" are used for debug purposes,
## environmental variables prepended with "CARDDAV_" are for connection parameters
debug_dump_communication = bool(os.environ.get("PYTHON_CARDDAV_COMMDUMP", False))
## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_CARDDAV_DEBUGMODE")
if not debugmode:
    if "dev" in __version__ or __version__ == "(unknown)":
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("carddav")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def errmsg(r) -> str:
    """Utility for formatting an error response to an error string"""
    return "%s %s\n\n%s" % (r.status, r.reason, r.text)


def weirdness(*reasons):
    from carddav.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


class DAVError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, url: Optional[str] = None, reason: Optional[str] = None) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason
        super().__init__(str(self))

    def __str__(self) -> str:
        return "%s at '%s', reason %s" % (
            self.__class__.__name__,
            self.url,
            self.reason,
        )


class NetworkError(DAVError):
    """
    The request could not be delivered, or no response was received:
    DNS failure, refused connection, timeout, TLS failure and the like.
    """

    pass


class ClientError(DAVError):
    """
    The request could not be built or sent, i.e. a malformed URL or
    header value.
    """

    pass


class ProtocolError(DAVError):
    """
    The server answered, but not the way we expected: wrong HTTP status
    or a content type that doesn't fit the request.
    """

    pass


class AuthorizationError(ProtocolError):
    """
    The server keeps answering 401 or 403 after authentication has been
    negotiated.  The url property will contain the url in question, the
    reason property will contain the excuse the server sent.
    """

    pass


class NotFoundError(ProtocolError):
    pass


class XmlParseError(DAVError):
    """
    The response body is not well-formed XML, or not the XML document
    we asked for.
    """

    pass


class ValidationError(DAVError, ValueError):
    """
    Malformed input from the caller - query filter conditions, the
    discovery URI or a vCard to be uploaded.  Raised before any request
    is made.
    """

    pass
