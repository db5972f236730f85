"""
Abstract I/O protocol definition.

This module defines the interface that all transport implementations must follow.
"""

from typing import Mapping, Optional, Protocol, runtime_checkable

from carddav.protocol.types import DAVResponse


@runtime_checkable
class SyncIOProtocol(Protocol):
    """
    Protocol defining the synchronous transport interface.

    Implementations deliver exactly one HTTP request and hand back the
    complete response.  Failures to deliver the request raise
    ``carddav.lib.error.NetworkError``, requests that can't be built
    raise ``carddav.lib.error.ClientError``.  HTTP error statuses are
    not exceptions on this level.
    """

    def send_request(
        self,
        method: str,
        uri: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[bytes] = None,
        allow_redirects: bool = True,
    ) -> DAVResponse:
        """
        Send a request and return the response.

        Args:
            method: HTTP method (GET, PUT, PROPFIND, REPORT, ...)
            uri: Full URL for the request
            headers: Additional request headers
            body: Request body
            allow_redirects: Whether the transport may follow redirects itself

        Returns:
            DAVResponse with status, headers, and body
        """
        ...

    def close(self) -> None:
        """Close any resources (e.g., HTTP session)."""
        ...
