#!/usr/bin/env python
"""
Small helpers for dealing with the URLs we get from the user and from
the server.

Servers hand out hrefs in all possible shapes: absolute paths,
fully qualified URLs (possibly pointing to a different host than the
one we asked), and now and then relative paths.  Everything we pass on
to the caller is either a fully qualified URL (when it will be used for
further requests) or a plain path (when it is used as a key in the
caller's cache).
"""
from urllib.parse import unquote
from urllib.parse import urljoin
from urllib.parse import urlparse


def concat_url(base_url: str, rel_url: str) -> str:
    """
    Resolve ``rel_url`` against ``base_url`` per RFC 3986.  If
    ``rel_url`` is fully qualified, it is returned as-is.
    """
    if not rel_url:
        return base_url
    return urljoin(base_url, rel_url)


def url_path(url: str) -> str:
    """Returns the path component of url, "/" if there is none"""
    return urlparse(url).path or "/"


def hostname(url: str) -> str:
    return urlparse(url).hostname or ""


def compare_url_paths(url1: str, url2: str) -> bool:
    """
    True if the two URLs refer to the same path.  Scheme, host and
    leading/trailing slashes are ignored, percent-encoding is decoded.
    Used to recognize the collection itself in multistatus responses,
    where servers are inconsistent on trailing slashes.
    """
    p1 = unquote(url_path(url1)).strip("/")
    p2 = unquote(url_path(url2)).strip("/")
    return p1 == p2
