"""
Unit tests for the Sans-I/O protocol layer.

These tests verify the XML builders and parsers without any HTTP involved.
"""

import pytest
from lxml import etree

from carddav.filter import Filter
from carddav.lib import error
from carddav.lib.namespace import ns
from carddav.protocol import (
    AddressDataType,
    DAVResponse,
    PropertyName,
    PropstatEntry,
    StatusEntry,
    build_multiget_body,
    build_propfind_body,
    build_query_body,
    build_sync_collection_body,
    check_and_parse_single_doc,
    decode_property,
    parse_multistatus,
)

from .fixture_helpers import multistatus, propstat_response, status_response, xml_response

BASE = "https://contacts.example.com/dav/abooks/jdoe/default/"


class TestDAVResponse:
    def test_frozen(self):
        response = DAVResponse(200, {}, b"")
        with pytest.raises(AttributeError):
            response.status = 404

    def test_headers_case_insensitive(self):
        response = DAVResponse(200, {"content-type": "text/xml"}, b"<x/>")
        assert response.headers["Content-Type"] == "text/xml"
        assert response.content_type == "text/xml"
        assert response.is_xml

    def test_not_xml(self):
        assert not DAVResponse(200, {"Content-Type": "text/html"}, b"").is_xml
        assert not DAVResponse(200, {}, b"").is_xml

    def test_ok_and_multistatus(self):
        assert DAVResponse(204).ok
        assert not DAVResponse(404).ok
        assert DAVResponse(207).is_multistatus


class TestBuilders:
    def test_propfind_body(self):
        body = build_propfind_body(
            [PropertyName.CURRENT_USER_PRINCIPAL, PropertyName.GETCTAG]
        )
        root = etree.fromstring(body)
        assert root.tag == ns("DAV", "propfind")
        prop = root.find(ns("DAV", "prop"))
        assert [c.tag for c in prop] == [
            ns("DAV", "current-user-principal"),
            ns("CS", "getctag"),
        ]
        ## prefixes for all three namespaces are declared on the root
        assert set(root.nsmap.values()) == {
            "DAV:",
            "urn:ietf:params:xml:ns:carddav",
            "http://calendarserver.org/ns/",
        }

    def test_sync_collection_body(self):
        root = etree.fromstring(build_sync_collection_body("http://sabre.io/ns/sync/3"))
        assert root.tag == ns("DAV", "sync-collection")
        assert root.findtext(ns("DAV", "sync-token")) == "http://sabre.io/ns/sync/3"
        assert root.findtext(ns("DAV", "sync-level")) == "1"
        prop = root.find(ns("DAV", "prop"))
        assert [c.tag for c in prop] == [ns("DAV", "getetag")]

    def test_sync_collection_body_initial(self):
        root = etree.fromstring(build_sync_collection_body(""))
        token = root.find(ns("DAV", "sync-token"))
        assert token is not None
        assert not token.text

    def test_multiget_body_adds_mandatory_props(self):
        body = build_multiget_body(["/abook/a.vcf", "/abook/b.vcf"], ["EMAIL", "fn"])
        root = etree.fromstring(body)
        assert root.tag == ns("CARDDAV", "addressbook-multiget")
        address_data = root.find(ns("DAV", "prop")).find(ns("CARDDAV", "address-data"))
        names = [p.get("name") for p in address_data]
        assert names == ["EMAIL", "FN", "BEGIN", "END", "VERSION", "UID"]
        hrefs = [h.text for h in root.findall(ns("DAV", "href"))]
        assert hrefs == ["/abook/a.vcf", "/abook/b.vcf"]

    def test_multiget_body_full_cards(self):
        root = etree.fromstring(build_multiget_body(["/abook/a.vcf"]))
        address_data = root.find(ns("DAV", "prop")).find(ns("CARDDAV", "address-data"))
        assert len(address_data) == 0

    def test_query_body(self):
        filter_tree = Filter.from_conditions({"EMAIL": "/example.com/$"})
        root = etree.fromstring(build_query_body(filter_tree, ["EMAIL"], limit=10))
        assert root.tag == ns("CARDDAV", "addressbook-query")
        assert [c.tag for c in root] == [
            ns("DAV", "prop"),
            ns("CARDDAV", "filter"),
            ns("CARDDAV", "limit"),
        ]
        assert root.find(ns("CARDDAV", "limit")).findtext(ns("CARDDAV", "nresults")) == "10"

    def test_query_body_without_limit(self):
        filter_tree = Filter.from_conditions({"FN": None})
        root = etree.fromstring(build_query_body(filter_tree))
        assert root.find(ns("CARDDAV", "limit")) is None


class TestParsers:
    def test_propstat_and_status_entries(self):
        body = multistatus(
            propstat_response(
                "/dav/abooks/jdoe/default/a.vcf", '<d:getetag>"1"</d:getetag>'
            ),
            status_response("/dav/abooks/jdoe/default/gone.vcf", "HTTP/1.1 404 Not Found"),
            sync_token="token-2",
        )
        result = parse_multistatus(xml_response(body), BASE)
        assert result.sync_token == "token-2"
        assert len(result.responses) == 2
        entry, status = result.responses
        assert isinstance(entry, PropstatEntry)
        assert entry.href == "/dav/abooks/jdoe/default/a.vcf"
        assert entry.properties == {PropertyName.GETETAG: '"1"'}
        assert isinstance(status, StatusEntry)
        assert status.hrefs == ("/dav/abooks/jdoe/default/gone.vcf",)
        assert status.status_code == 404

    def test_status_entry_with_several_hrefs(self):
        body = multistatus(
            '<d:response><d:href>/a.vcf</d:href><d:href>/b.vcf</d:href>'
            "<d:status>HTTP/1.1 404 Not Found</d:status></d:response>"
        )
        result = parse_multistatus(xml_response(body), BASE)
        assert result.status_entries[0].hrefs == ("/a.vcf", "/b.vcf")

    def test_only_2xx_propstats_are_decoded(self):
        body = multistatus(
            "<d:response><d:href>/abook/</d:href>"
            "<d:propstat><d:prop><d:displayname>Friends</d:displayname></d:prop>"
            "<d:status>HTTP/1.1 200 OK</d:status></d:propstat>"
            "<d:propstat><d:prop><cs:getctag>should not show</cs:getctag></d:prop>"
            "<d:status>HTTP/1.1 404 Not Found</d:status></d:propstat>"
            "</d:response>"
        )
        entry = parse_multistatus(xml_response(body), BASE).propstat_entries[0]
        assert entry.properties == {PropertyName.DISPLAYNAME: "Friends"}
        assert [p.status_code for p in entry.propstats] == [200, 404]

    def test_unknown_properties_are_ignored(self):
        body = multistatus(
            propstat_response("/abook/", "<d:owner><d:href>/me/</d:href></d:owner>")
        )
        entry = parse_multistatus(xml_response(body), BASE).propstat_entries[0]
        assert entry.properties == {}

    def test_wrong_status(self):
        with pytest.raises(error.ProtocolError):
            parse_multistatus(xml_response(multistatus(), status=200), BASE)

    def test_wrong_content_type(self):
        response = DAVResponse(207, {"Content-Type": "text/html"}, multistatus())
        with pytest.raises(error.ProtocolError):
            parse_multistatus(response, BASE)

    def test_text_xml_is_accepted(self):
        response = DAVResponse(207, {"Content-Type": "text/xml"}, multistatus())
        assert parse_multistatus(response, BASE).responses == []

    def test_malformed_xml(self):
        with pytest.raises(error.XmlParseError):
            parse_multistatus(xml_response(b"<d:multistatus xmlns:d='DAV:'>"), BASE)

    def test_not_a_multistatus(self):
        body = b"<?xml version='1.0'?><d:error xmlns:d='DAV:'/>"
        with pytest.raises(error.XmlParseError):
            parse_multistatus(xml_response(body), BASE)

    def test_check_and_parse_single_doc(self):
        root = check_and_parse_single_doc(xml_response(multistatus()), BASE)
        assert root.tag == ns("DAV", "multistatus")
        with pytest.raises(error.ProtocolError):
            check_and_parse_single_doc(DAVResponse(500, {"Content-Type": "text/xml"}, b""), BASE)
        with pytest.raises(error.ProtocolError):
            check_and_parse_single_doc(DAVResponse(200, {"Content-Type": "text/plain"}, b"x"), BASE)


def _element(xml: str):
    return etree.fromstring(
        f'<root xmlns:d="DAV:" xmlns:card="urn:ietf:params:xml:ns:carddav" xmlns:cs="http://calendarserver.org/ns/">{xml}</root>'
    )[0]


class TestDecodeProperty:
    def test_href_is_resolved(self):
        elem = _element("<d:current-user-principal><d:href>/principals/jdoe/</d:href></d:current-user-principal>")
        assert (
            decode_property(PropertyName.CURRENT_USER_PRINCIPAL, elem, BASE)
            == "https://contacts.example.com/principals/jdoe/"
        )

    def test_absolute_href_is_kept(self):
        elem = _element("<d:add-member><d:href>https://other.example.com/add/</d:href></d:add-member>")
        assert (
            decode_property(PropertyName.ADD_MEMBER, elem, BASE)
            == "https://other.example.com/add/"
        )

    def test_addressbook_home_set(self):
        elem = _element(
            "<card:addressbook-home-set><d:href>/home1/</d:href><d:href>/home2/</d:href></card:addressbook-home-set>"
        )
        assert decode_property(PropertyName.ADDRESSBOOK_HOME_SET, elem, BASE) == [
            "https://contacts.example.com/home1/",
            "https://contacts.example.com/home2/",
        ]

    def test_resourcetype(self):
        elem = _element("<d:resourcetype><d:collection/><card:addressbook/></d:resourcetype>")
        assert decode_property(PropertyName.RESOURCETYPE, elem, BASE) == [
            ns("DAV", "collection"),
            ns("CARDDAV", "addressbook"),
        ]

    def test_supported_report_set(self):
        elem = _element(
            "<d:supported-report-set>"
            "<d:supported-report><d:report><d:sync-collection/></d:report></d:supported-report>"
            "<d:supported-report><d:report><card:addressbook-multiget/></d:report></d:supported-report>"
            "</d:supported-report-set>"
        )
        assert decode_property(PropertyName.SUPPORTED_REPORT_SET, elem, BASE) == [
            ns("DAV", "sync-collection"),
            ns("CARDDAV", "addressbook-multiget"),
        ]

    def test_supported_address_data(self):
        elem = _element(
            "<card:supported-address-data>"
            '<card:address-data-type content-type="text/vcard" version="4.0"/>'
            "<card:address-data-type/>"
            "</card:supported-address-data>"
        )
        assert decode_property(PropertyName.SUPPORTED_ADDRESS_DATA, elem, BASE) == [
            AddressDataType("text/vcard", "4.0"),
            AddressDataType("text/vcard", "3.0"),
        ]

    def test_text(self):
        elem = _element("<d:displayname>Friends</d:displayname>")
        assert decode_property(PropertyName.DISPLAYNAME, elem, BASE) == "Friends"

    def test_max_resource_size(self):
        elem = _element("<card:max-resource-size> 102400 </card:max-resource-size>")
        assert decode_property(PropertyName.MAX_RESOURCE_SIZE, elem, BASE) == 102400

    @pytest.mark.parametrize(
        "xml, name, expected",
        [
            ('<d:getetag>\n    "a1"\n  </d:getetag>', PropertyName.GETETAG, '"a1"'),
            ("<cs:getctag> ctag-1 </cs:getctag>", PropertyName.GETCTAG, "ctag-1"),
            ("<d:sync-token>\n  token-1\n</d:sync-token>", PropertyName.SYNC_TOKEN, "token-1"),
            ("<d:getetag/>", PropertyName.GETETAG, ""),
        ],
    )
    def test_etags_and_tokens_are_stripped(self, xml, name, expected):
        assert decode_property(name, _element(xml), BASE) == expected

    def test_address_data_is_not_stripped(self):
        elem = _element("<card:address-data>BEGIN:VCARD\r\nEND:VCARD\r\n</card:address-data>")
        assert decode_property(PropertyName.ADDRESS_DATA, elem, BASE).endswith("END:VCARD\n")
