"""
Synchronous I/O implementation using the requests library.
"""
import datetime
import logging
from tempfile import NamedTemporaryFile
from typing import List
from typing import Mapping
from typing import Optional
from typing import Set

import requests
from requests.auth import AuthBase
from requests.structures import CaseInsensitiveDict

from carddav import __version__
from carddav.lib import error
from carddav.lib.auth import extract_auth_types
from carddav.lib.auth import select_auth_type
from carddav.lib.python_utilities import to_normal_str
from carddav.lib.python_utilities import to_wire
from carddav.protocol.types import DAVResponse
from carddav.requests import HTTPBearerAuth

log = logging.getLogger(__name__)


class SyncIO:
    """
    Synchronous transport using a requests Session.

    Authentication is negotiated with the server: unless an auth
    object or an auth type is given explicitly, the first request is
    sent unauthenticated, and the WWW-Authenticate header of the 401
    response decides which scheme to use.

    Example:
        io = SyncIO(username="jdoe", password="secret")
        response = io.send_request("PROPFIND", "https://dav.example.com/", {"Depth": "0"}, body)
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        auth: Optional[AuthBase] = None,
        auth_type: Optional[str] = None,
        timeout: Optional[float] = None,
        ssl_verify_cert: bool = True,
        ssl_cert: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            username, password: credentials
            auth: a requests auth object, used as is
            auth_type: one of basic, digest and bearer - skips negotiation
            timeout: request timeout in seconds
            ssl_verify_cert: verify the TLS certificate, or path to a CA bundle
            ssl_cert: client certificate
            headers: extra headers sent with every request
            session: existing requests Session to use (creates new if None)
        """
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.username = username
        self.password = password
        self.auth = auth
        self.auth_type = auth_type.lower() if auth_type else None
        self.timeout = timeout
        self.ssl_verify_cert = ssl_verify_cert
        self.ssl_cert = ssl_cert
        self.failed_auth_types: Set[str] = set()
        self._auth_type_in_use: Optional[str] = None

        self.headers = CaseInsensitiveDict(
            {"User-Agent": f"python-carddav/{__version__}"}
        )
        self.headers.update(headers or {})

        if self.auth is None and self.auth_type:
            self.build_auth_object([self.auth_type])

    def build_auth_object(self, auth_types: List[str]) -> None:
        """
        Set self.auth to the best scheme out of auth_types that we have
        credentials for.  Leaves self.auth untouched if there is none.
        """
        auth_type = self.auth_type
        if auth_type and auth_type not in auth_types:
            raise error.AuthorizationError(
                reason=f"Configuration specifies to use {auth_type}, but server only accepts {auth_types}"
            )
        if not auth_type:
            auth_type = select_auth_type(
                [t for t in auth_types if t not in self.failed_auth_types],
                has_username=bool(self.username),
                has_password=bool(self.password),
            )
        if auth_type == "digest":
            self.auth = requests.auth.HTTPDigestAuth(self.username, self.password)
        elif auth_type == "basic":
            self.auth = requests.auth.HTTPBasicAuth(self.username, self.password)
        elif auth_type == "bearer":
            self.auth = HTTPBearerAuth(self.password)
        self._auth_type_in_use = auth_type

    def _send(self, method, uri, headers, body, allow_redirects) -> requests.Response:
        try:
            return self.session.request(
                method,
                uri,
                data=to_wire(body),
                headers=headers,
                auth=self.auth,
                timeout=self.timeout,
                verify=self.ssl_verify_cert,
                cert=self.ssl_cert,
                allow_redirects=allow_redirects,
            )
        except (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
            requests.exceptions.InvalidHeader,
        ) as e:
            raise error.ClientError(uri, str(e)) from e
        except requests.RequestException as e:
            raise error.NetworkError(uri, str(e)) from e
        except ValueError as e:
            raise error.ClientError(uri, str(e)) from e

    def send_request(
        self,
        method: str,
        uri: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[bytes] = None,
        allow_redirects: bool = True,
    ) -> DAVResponse:
        combined_headers = self.headers.copy()
        combined_headers.update(headers or {})
        if not body and "Content-Type" in combined_headers:
            del combined_headers["Content-Type"]

        log.debug(
            "sending request - method={0}, url={1}, headers={2}\nbody:\n{3}".format(
                method, uri, dict(combined_headers), to_normal_str(body)
            )
        )

        r = self._send(method, uri, combined_headers, body, allow_redirects)
        log.debug("server responded with %i %s" % (r.status_code, r.reason))

        while (
            r.status_code == 401
            and "WWW-Authenticate" in r.headers
            and (self.username or self.password)
        ):
            if self.auth is not None:
                if self.auth_type or self._auth_type_in_use is None:
                    ## the credentials were given explicitly, nothing to negotiate
                    break
                log.info(f"Authentication with {self._auth_type_in_use} failed at {uri}")
                self.failed_auth_types.add(self._auth_type_in_use)
                self.auth = None
            auth_types = extract_auth_types(r.headers["WWW-Authenticate"])
            self.build_auth_object(list(auth_types))
            if self.auth is None:
                log.warning(
                    f"None of the authentication schemes offered by {uri} "
                    f"works for us: {', '.join(sorted(auth_types))}"
                )
                break
            r = self._send(method, uri, combined_headers, body, allow_redirects)
            log.debug("server responded with %i %s" % (r.status_code, r.reason))

        response = DAVResponse(
            status=r.status_code,
            headers=CaseInsensitiveDict(r.headers),
            body=r.content or b"",
            reason=r.reason or "",
        )

        if error.debug_dump_communication:
            self._dump_communication(method, uri, combined_headers, body, response)

        return response

    def _dump_communication(self, method, uri, headers, body, response) -> None:
        with NamedTemporaryFile(prefix="carddavcomm", delete=False) as commlog:
            commlog.write(b"=" * 80 + b"\n")
            commlog.write(f"{datetime.datetime.now():%FT%H:%M:%S}".encode("utf-8"))
            commlog.write(b"\n====>\n")
            commlog.write(f"{method} {uri}\n".encode("utf-8"))
            commlog.write(b"\n".join(to_wire(f"{x}: {headers[x]}") for x in headers))
            commlog.write(b"\n\n")
            commlog.write(to_wire(body) or b"")
            commlog.write(b"<====\n")
            commlog.write(f"{response.status} {response.reason}\n".encode("utf-8"))
            commlog.write(
                b"\n".join(
                    to_wire(f"{x}: {response.headers[x]}") for x in response.headers
                )
            )
            commlog.write(b"\n\n")
            commlog.write(response.body)
            commlog.write(b"\n")

    def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self) -> "SyncIO":
        return self

    def __exit__(self, *args) -> None:
        self.close()
