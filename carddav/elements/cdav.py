#!/usr/bin/env python
from typing import ClassVar
from typing import Optional

from .base import BaseElement
from .base import NamedBaseElement
from .base import ValuedBaseElement
from carddav.lib.namespace import ns


# Operations
class AddressbookQuery(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "addressbook-query")


class AddressbookMultiGet(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "addressbook-multiget")


# Filters
class Filter(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "filter")

    def __init__(self, test: str = "anyof") -> None:
        super(Filter, self).__init__()
        self.attributes["test"] = test


class PropFilter(NamedBaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "prop-filter")

    def __init__(self, name: str, test: str = "anyof") -> None:
        super(PropFilter, self).__init__(name=name)
        self.attributes["test"] = test


class ParamFilter(NamedBaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "param-filter")


# Conditions
class TextMatch(ValuedBaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "text-match")

    def __init__(
        self,
        value,
        collation: str = "i;unicode-casemap",
        negate: bool = False,
        match_type: str = "contains",
    ) -> None:
        super(TextMatch, self).__init__(value=value)
        self.attributes["negate-condition"] = "yes" if negate else "no"
        self.attributes["collation"] = collation
        self.attributes["match-type"] = match_type


class IsNotDefined(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "is-not-defined")


class Limit(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "limit")


class NResults(ValuedBaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "nresults")


# Components / Data
class AddressData(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "address-data")


class Prop(NamedBaseElement):
    """A vCard property inside address-data - not to be confused with dav.Prop"""

    tag: ClassVar[str] = ns("CARDDAV", "prop")


# Properties
class Addressbook(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "addressbook")


class AddressbookHomeSet(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "addressbook-home-set")


class AddressbookDescription(ValuedBaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "addressbook-description")


class SupportedAddressData(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "supported-address-data")


class AddressDataType(BaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "address-data-type")

    def __init__(
        self, content_type: str = "text/vcard", version: Optional[str] = None
    ) -> None:
        super(AddressDataType, self).__init__()
        self.attributes["content-type"] = content_type
        if version:
            self.attributes["version"] = version


class MaxResourceSize(ValuedBaseElement):
    tag: ClassVar[str] = ns("CARDDAV", "max-resource-size")
