#!/usr/bin/env python
"""
Elements from the calendarserver.org namespace.  Not standardized
anywhere, but the ctag is still the only change indicator offered by
quite some servers lacking sync-collection support.
"""
from typing import ClassVar

from .base import ValuedBaseElement
from carddav.lib.namespace import ns


class GetCTag(ValuedBaseElement):
    tag: ClassVar[str] = ns("CS", "getctag")
