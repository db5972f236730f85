#!/usr/bin/env python
from typing import Dict
from typing import Optional

## The prefixes are part of what goes over the wire - a few servers
## out there are picky about seeing the same prefixes as in the RFC
## examples, so don't rename them.
nsmap: Dict[str, str] = {
    "DAV": "DAV:",
    "CARDDAV": "urn:ietf:params:xml:ns:carddav",
    "CS": "http://calendarserver.org/ns/",
}


def ns(prefix: str, tag: Optional[str] = None) -> str:
    name = "{%s}" % nsmap[prefix]
    if tag is not None:
        name = "%s%s" % (name, tag)
    return name
