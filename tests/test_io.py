"""
Tests for the requests based transport.  The requests Session is
mocked; nothing goes over the network.
"""
from functools import partial
from tempfile import NamedTemporaryFile
from unittest import mock

import pytest
import requests

from carddav import __version__
from carddav.io import SyncIO
from carddav.lib import error
from carddav.requests import HTTPBearerAuth

URL = "https://dav.example.com/abooks/"


def http_response(status=200, headers=None, content=b"", reason="OK"):
    resp = mock.MagicMock()
    resp.status_code = status
    resp.headers = requests.structures.CaseInsensitiveDict(headers or {})
    resp.content = content
    resp.reason = reason
    return resp


def unauthorized(challenge):
    return http_response(401, {"WWW-Authenticate": challenge}, reason="Unauthorized")


def make_io(*responses, **kwargs):
    session = mock.MagicMock()
    session.request.side_effect = list(responses)
    return SyncIO(session=session, **kwargs), session


def sent_auth(session, call=-1):
    return session.request.call_args_list[call].kwargs["auth"]


class TestSyncIO:
    def test_response(self):
        io, session = make_io(
            http_response(
                207,
                {"content-type": "application/xml", "ETag": '"1"'},
                b"<d:multistatus xmlns:d='DAV:'/>",
                "Multi-Status",
            )
        )
        response = io.send_request("PROPFIND", URL, {"Depth": "0"}, b"<propfind/>")
        assert response.status == 207
        assert response.reason == "Multi-Status"
        assert response.headers["Content-Type"] == "application/xml"
        assert response.headers["etag"] == '"1"'
        assert response.is_multistatus

    def test_headers(self):
        io, session = make_io(http_response(), headers={"X-Extra": "yes"})
        io.send_request("REPORT", URL, {"Depth": "1", "Content-Type": "application/xml"}, b"<x/>")
        (method, uri), kwargs = session.request.call_args
        assert (method, uri) == ("REPORT", URL)
        headers = kwargs["headers"]
        assert headers["User-Agent"] == f"python-carddav/{__version__}"
        assert headers["X-Extra"] == "yes"
        assert headers["Depth"] == "1"
        assert headers["Content-Type"] == "application/xml"
        assert kwargs["data"] == b"<x/>"

    def test_no_content_type_without_body(self):
        io, session = make_io(http_response())
        io.send_request("GET", URL, {"Content-Type": "application/xml"})
        assert "Content-Type" not in session.request.call_args.kwargs["headers"]

    def test_options_passed_on(self):
        io, session = make_io(
            http_response(), timeout=7.5, ssl_verify_cert=False, ssl_cert="/etc/client.pem"
        )
        io.send_request("GET", URL, allow_redirects=False)
        kwargs = session.request.call_args.kwargs
        assert kwargs["timeout"] == 7.5
        assert kwargs["verify"] is False
        assert kwargs["cert"] == "/etc/client.pem"
        assert kwargs["allow_redirects"] is False

    def test_empty_content(self):
        io, session = make_io(http_response(204, content=None, reason=None))
        response = io.send_request("DELETE", URL)
        assert response.body == b""
        assert response.reason == ""


class TestAuthentication:
    def test_basic_negotiated(self):
        io, session = make_io(unauthorized('Basic realm="contacts"'), http_response())
        io.username, io.password = "jdoe", "secret"
        response = io.send_request("PROPFIND", URL)
        assert response.status == 200
        assert session.request.call_count == 2
        assert sent_auth(session, 0) is None
        assert isinstance(sent_auth(session), requests.auth.HTTPBasicAuth)
        assert sent_auth(session).username == "jdoe"

    def test_digest_preferred(self):
        io, session = make_io(
            unauthorized('Basic realm="x", Digest realm="x", nonce="abc", qop="auth"'),
            http_response(),
            username="jdoe",
            password="secret",
        )
        io.send_request("GET", URL)
        assert isinstance(sent_auth(session), requests.auth.HTTPDigestAuth)

    def test_bearer_without_username(self):
        io, session = make_io(
            unauthorized('Bearer realm="x"'), http_response(), password="token"
        )
        io.send_request("GET", URL)
        assert sent_auth(session) == HTTPBearerAuth("token")

    def test_negotiated_only_once(self):
        io, session = make_io(
            unauthorized('Basic realm="x"'),
            http_response(),
            http_response(),
            username="jdoe",
            password="secret",
        )
        io.send_request("GET", URL)
        io.send_request("GET", URL)
        assert session.request.call_count == 3
        assert isinstance(sent_auth(session), requests.auth.HTTPBasicAuth)

    def test_fallback_to_next_scheme(self):
        io, session = make_io(
            unauthorized('Digest realm="x", nonce="abc", Basic realm="x"'),
            unauthorized('Digest realm="x", nonce="def", Basic realm="x"'),
            http_response(),
            username="jdoe",
            password="secret",
        )
        assert io.send_request("GET", URL).status == 200
        assert isinstance(sent_auth(session, 1), requests.auth.HTTPDigestAuth)
        assert isinstance(sent_auth(session, 2), requests.auth.HTTPBasicAuth)
        assert io.failed_auth_types == {"digest"}

    def test_wrong_credentials(self):
        io, session = make_io(
            unauthorized('Basic realm="x"'),
            unauthorized('Basic realm="x"'),
            username="jdoe",
            password="wrong",
        )
        assert io.send_request("GET", URL).status == 401
        assert session.request.call_count == 2

    def test_without_credentials(self):
        io, session = make_io(unauthorized('Basic realm="x"'))
        assert io.send_request("GET", URL).status == 401
        assert session.request.call_count == 1

    def test_unsupported_scheme(self):
        io, session = make_io(
            unauthorized('Negotiate'), username="jdoe", password="secret"
        )
        assert io.send_request("GET", URL).status == 401
        assert session.request.call_count == 1

    def test_explicit_auth_type(self):
        io, session = make_io(
            unauthorized('Digest realm="x", nonce="abc"'),
            username="jdoe",
            password="secret",
            auth_type="Basic",
        )
        assert isinstance(io.auth, requests.auth.HTTPBasicAuth)
        assert io.send_request("GET", URL).status == 401
        assert session.request.call_count == 1

    def test_explicit_auth_type_not_offered(self):
        io = SyncIO(username="jdoe", password="secret", session=mock.MagicMock())
        io.auth_type = "basic"
        with pytest.raises(error.AuthorizationError):
            io.build_auth_object(["digest"])

    def test_explicit_auth_object(self):
        auth = requests.auth.HTTPBasicAuth("jdoe", "secret")
        io, session = make_io(http_response(), auth=auth)
        io.send_request("GET", URL)
        assert sent_auth(session) is auth


class TestErrors:
    @pytest.mark.parametrize(
        "exception, expected",
        [
            (requests.exceptions.ConnectionError("refused"), error.NetworkError),
            (requests.exceptions.Timeout("too slow"), error.NetworkError),
            (requests.exceptions.SSLError("bad certificate"), error.NetworkError),
            (requests.exceptions.MissingSchema("no scheme"), error.ClientError),
            (requests.exceptions.InvalidURL("bad url"), error.ClientError),
            (requests.exceptions.InvalidHeader("bad header"), error.ClientError),
            (ValueError("bad value"), error.ClientError),
        ],
    )
    def test_exception_mapping(self, exception, expected):
        io, session = make_io(exception)
        with pytest.raises(expected) as excinfo:
            io.send_request("GET", URL)
        assert excinfo.value.url == URL
        assert excinfo.value.__cause__ is exception

    def test_client_error_is_no_network_error(self):
        io, session = make_io(requests.exceptions.MissingSchema("no scheme"))
        with pytest.raises(error.DAVError) as excinfo:
            io.send_request("GET", "dav.example.com")
        assert not isinstance(excinfo.value, error.NetworkError)


class TestLifecycle:
    def test_closes_own_session(self):
        with mock.patch("carddav.io.sync.requests.Session") as session_class:
            with SyncIO() as io:
                assert io.session is session_class.return_value
            session_class.return_value.close.assert_called_once_with()

    def test_leaves_foreign_session_open(self):
        session = mock.MagicMock()
        SyncIO(session=session).close()
        session.close.assert_not_called()

    def test_communication_dump(self, monkeypatch, tmp_path):
        monkeypatch.setattr(error, "debug_dump_communication", True)
        monkeypatch.setattr(
            "carddav.io.sync.NamedTemporaryFile",
            partial(NamedTemporaryFile, dir=tmp_path),
        )
        io, session = make_io(http_response(200, {"ETag": '"1"'}, b"BEGIN:VCARD"))
        io.send_request("GET", URL)
        (dump,) = tmp_path.iterdir()
        content = dump.read_bytes()
        assert f"GET {URL}".encode() in content
        assert b"ETag: \"1\"" in content
        assert b"BEGIN:VCARD" in content
