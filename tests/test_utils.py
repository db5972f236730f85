from unittest import TestCase

import pytest

from carddav.lib import error
from carddav.lib.auth import extract_auth_types
from carddav.lib.auth import select_auth_type
from carddav.lib.python_utilities import to_normal_str
from carddav.lib.python_utilities import to_wire
from carddav.lib.url import compare_url_paths
from carddav.lib.url import concat_url
from carddav.lib.url import hostname
from carddav.lib.url import url_path


class TestUtils(TestCase):
    def test_to_wire(self):
        # fmt: off
        self.assertEqual(to_wire('blatti'), b'blatti')
        self.assertEqual(to_wire(b'blatti'), b'blatti')
        self.assertEqual(to_wire('a\nb'), b'a\r\nb')
        self.assertEqual(to_wire('a\r\nb'), b'a\r\nb')
        self.assertEqual(to_wire(''), b'')
        self.assertEqual(to_wire(None), None)
        # fmt: on

    def test_to_normal_str(self):
        self.assertEqual(to_normal_str(b"a\r\nb"), "a\nb")
        self.assertEqual(to_normal_str("\xe6\xf8\xe5"), "\xe6\xf8\xe5")
        self.assertEqual(to_normal_str(None), None)

    def test_errmsg(self):
        from carddav.protocol.types import DAVResponse

        response = DAVResponse(500, {}, b"it broke", "Internal Server Error")
        self.assertEqual(error.errmsg(response), "500 Internal Server Error\n\nit broke")

    def test_error_string(self):
        e = error.NotFoundError("https://dav.example.com/x.vcf", "gone")
        self.assertEqual(
            str(e), "NotFoundError at 'https://dav.example.com/x.vcf', reason gone"
        )
        self.assertIsInstance(e, error.ProtocolError)
        self.assertIsInstance(error.ValidationError(), ValueError)


@pytest.mark.parametrize(
    "base, rel, expected",
    [
        ("https://dav.example.com/abooks/", "default/", "https://dav.example.com/abooks/default/"),
        ("https://dav.example.com/abooks/", "/other/", "https://dav.example.com/other/"),
        ("https://dav.example.com/abooks/", "https://cdn.example.org/x", "https://cdn.example.org/x"),
        ("https://dav.example.com/abooks/a.vcf", "b.vcf", "https://dav.example.com/abooks/b.vcf"),
        ("https://dav.example.com/abooks/", "", "https://dav.example.com/abooks/"),
    ],
)
def test_concat_url(base, rel, expected):
    assert concat_url(base, rel) == expected


def test_url_helpers():
    assert url_path("https://dav.example.com:8443/a/b/?x=1") == "/a/b/"
    assert url_path("https://dav.example.com") == "/"
    assert hostname("https://DAV.example.com:8443/") == "dav.example.com"
    assert compare_url_paths("https://dav.example.com/a/b/", "/a/b")
    assert compare_url_paths("/a/my%20book/", "/a/my book")
    assert not compare_url_paths("/a/b/", "/a/b/c.vcf")


@pytest.mark.parametrize(
    "header, expected",
    [
        ('Basic realm="x"', {"basic"}),
        ('Basic realm="x", Digest realm="x", nonce="abc", qop="auth"', {"basic", "digest"}),
        ("Bearer", {"bearer"}),
        ("", set()),
    ],
)
def test_extract_auth_types(header, expected):
    assert extract_auth_types(header) == expected


def test_select_auth_type():
    assert select_auth_type({"basic", "digest"}, True, True) == "digest"
    assert select_auth_type({"basic", "digest"}, True, True, prefer_digest=False) == "basic"
    assert select_auth_type(["bearer", "basic"], False, True) == "bearer"
    assert select_auth_type({"bearer"}, True, True) is None
    assert select_auth_type({"basic"}, False, False) is None
