#!/usr/bin/env python
import logging

__version__ = "0.9.0"

from .account import Account
from .account import get_account
from .collection import AddressbookCollection
from .davclient import CardDAVClient
from .discovery import discover_addressbooks
from .filter import Filter
from .sync import SyncHandler

# Silence notification of no default logging handler
log = logging.getLogger("carddav")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = [
    "__version__",
    "Account",
    "AddressbookCollection",
    "CardDAVClient",
    "Filter",
    "SyncHandler",
    "discover_addressbooks",
    "get_account",
]
