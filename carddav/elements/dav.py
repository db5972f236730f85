#!/usr/bin/env python
from typing import ClassVar

from .base import BaseElement
from .base import ValuedBaseElement
from carddav.lib.namespace import ns


# Operations
class Propfind(BaseElement):
    tag: ClassVar[str] = ns("DAV", "propfind")


class SyncCollection(BaseElement):
    tag: ClassVar[str] = ns("DAV", "sync-collection")


# Conditions
class SyncToken(ValuedBaseElement):
    tag: ClassVar[str] = ns("DAV", "sync-token")


class SyncLevel(ValuedBaseElement):
    tag: ClassVar[str] = ns("DAV", "sync-level")


# Components / Data


class Prop(BaseElement):
    tag: ClassVar[str] = ns("DAV", "prop")


class Collection(BaseElement):
    tag: ClassVar[str] = ns("DAV", "collection")


# Properties
class ResourceType(BaseElement):
    tag: ClassVar[str] = ns("DAV", "resourcetype")


class DisplayName(ValuedBaseElement):
    tag: ClassVar[str] = ns("DAV", "displayname")


class GetEtag(ValuedBaseElement):
    tag: ClassVar[str] = ns("DAV", "getetag")


class Href(ValuedBaseElement):
    tag: ClassVar[str] = ns("DAV", "href")


class AddMember(BaseElement):
    tag: ClassVar[str] = ns("DAV", "add-member")


class SupportedReportSet(BaseElement):
    tag: ClassVar[str] = ns("DAV", "supported-report-set")


class SupportedReport(BaseElement):
    tag: ClassVar[str] = ns("DAV", "supported-report")


class Report(BaseElement):
    tag: ClassVar[str] = ns("DAV", "report")


class Response(BaseElement):
    tag: ClassVar[str] = ns("DAV", "response")


class Status(BaseElement):
    tag: ClassVar[str] = ns("DAV", "status")


class PropStat(BaseElement):
    tag: ClassVar[str] = ns("DAV", "propstat")


class MultiStatus(BaseElement):
    tag: ClassVar[str] = ns("DAV", "multistatus")


class CurrentUserPrincipal(BaseElement):
    tag: ClassVar[str] = ns("DAV", "current-user-principal")
