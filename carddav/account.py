#!/usr/bin/env python
"""
The account: discovery URI, credentials and the server we ended up
talking to.  It owns the transport, which is shared by all clients and
collections created from it.
"""
import logging
import os
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from carddav.davclient import CardDAVClient
from carddav.elements import cdav
from carddav.io.base import SyncIOProtocol
from carddav.io.sync import SyncIO
from carddav.lib import error
from carddav.protocol.types import PropertyName

log = logging.getLogger(__name__)


class Account:
    """
    Args:
        discovery_uri: where discovery starts, a domain or a URL
        username, password: credentials.  A password without username
            is used as bearer token.
        base_url: the server URL, set by discovery.  Relative URIs are
            resolved against it.
        transport: the transport to use.  Defaults to a SyncIO built from
            the credentials and the remaining keyword arguments (timeout,
            ssl_verify_cert, auth_type etc).
    """

    def __init__(
        self,
        discovery_uri: str,
        username: str = "",
        password: str = "",
        base_url: Optional[str] = None,
        transport: Optional[SyncIOProtocol] = None,
        **http_options,
    ) -> None:
        self.discovery_uri = discovery_uri
        self.username = username
        self.password = password
        self.base_url = base_url
        self.http_options = http_options
        self._transport = transport

    def __str__(self) -> str:
        return f"Account({self.username}@{self.discovery_uri})"

    @property
    def transport(self) -> SyncIOProtocol:
        if self._transport is None:
            self._transport = SyncIO(
                username=self.username or None,
                password=self.password or None,
                **self.http_options,
            )
        return self._transport

    def get_client(self, url: Optional[str] = None) -> CardDAVClient:
        """A client for the given URL, or for the base URL of the account"""
        base = url or self.base_url
        if not base:
            raise error.ClientError(
                self.discovery_uri, "the account has no base URL, run discovery first"
            )
        return CardDAVClient(base, self.transport)

    def to_dict(self) -> Dict[str, Any]:
        """The persistent settings of the account"""
        return {
            "discovery_uri": self.discovery_uri,
            "username": self.username,
            "password": self.password,
            "base_url": self.base_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        for key in ("discovery_uri", "username", "password"):
            if key not in data:
                raise error.ValidationError(reason=f"account data lacks {key}")
        return cls(
            data["discovery_uri"],
            data["username"],
            data["password"],
            base_url=data.get("base_url"),
        )

    def find_current_user_principal(self, context_path: str) -> Optional[str]:
        """The principal URL as found by a PROPFIND on the context path, or None"""
        try:
            client = self.get_client()
            for uri, props in client.find_properties(
                context_path, [PropertyName.CURRENT_USER_PRINCIPAL]
            ):
                principal = props.get(PropertyName.CURRENT_USER_PRINCIPAL)
                if principal:
                    log.info(f"principal URL: {principal}")
                    return principal
        except error.DAVError as e:
            log.info(f"Exception while querying current-user-principal: {e}")
        return None

    def find_addressbook_home(self, principal_uri: str) -> Optional[str]:
        """The (first) addressbook home of the principal, or None"""
        try:
            client = self.get_client()
            for uri, props in client.find_properties(
                principal_uri, [PropertyName.ADDRESSBOOK_HOME_SET]
            ):
                homes = props.get(PropertyName.ADDRESSBOOK_HOME_SET)
                if homes:
                    log.info(f"addressbook home: {homes[0]}")
                    return homes[0]
        except error.DAVError as e:
            log.info(f"Exception while querying addressbook-home-set: {e}")
        return None

    def find_addressbooks(self, home_uri: str) -> List[str]:
        """URLs of the addressbook collections directly inside the home"""
        addressbooks = []
        try:
            client = self.get_client()
            for uri, props in client.find_properties(
                home_uri,
                [PropertyName.RESOURCETYPE, PropertyName.DISPLAYNAME],
                depth=1,
            ):
                if cdav.Addressbook.tag in props.get(PropertyName.RESOURCETYPE, []):
                    log.info(f"found addressbook {uri}")
                    addressbooks.append(uri)
        except error.DAVError as e:
            log.info(f"Exception while querying addressbooks: {e}")
        return addressbooks


def get_account(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    **config_data,
) -> Optional[Account]:
    """
    This function will yield an Account object.  It will not try to
    connect (see carddav.discovery.discover_addressbooks for that).  It
    will read configuration from various sources, dependent on the
    parameters given, in this order:

    * Data from the parameters given
    * Environment variables prepended with `CARDDAV_`, like `CARDDAV_URL`, `CARDDAV_USERNAME`, `CARDDAV_PASSWORD`.
    * Configuration file, as named by the parameter or `CARDDAV_CONFIG_FILE`, section `CARDDAV_CONFIG_SECTION` (or "default").
    """
    if config_data:
        return _account_from_params(config_data)

    if environment:
        conf = {}
        for conf_key in (
            x
            for x in os.environ
            if x.startswith("CARDDAV_") and not x.startswith("CARDDAV_CONFIG")
        ):
            conf[conf_key[8:].lower()] = os.environ[conf_key]
        if conf:
            return _account_from_params(conf)
        if not config_file:
            config_file = os.environ.get("CARDDAV_CONFIG_FILE")
        if not config_section:
            config_section = os.environ.get("CARDDAV_CONFIG_SECTION")

    if check_config_file:
        from . import config

        if not config_section:
            config_section = "default"

        cfg = config.read_config(config_file)
        if cfg:
            section = config.config_section(cfg, config_section)
            conn_params = {}
            for k in section:
                if k.startswith("carddav_") and section[k]:
                    key = k[8:]
                    if key == "pass":
                        key = "password"
                    if key == "user":
                        key = "username"
                    conn_params[key] = section[k]
            if conn_params:
                return _account_from_params(conn_params)
    return None


def _account_from_params(params: Dict[str, Any]) -> Account:
    params = dict(params)
    url = params.pop("url", None) or params.pop("discovery_uri", None)
    if not url:
        raise error.ValidationError(reason="no CardDAV URL configured")
    if "timeout" in params:
        params["timeout"] = float(params["timeout"])
    if isinstance(params.get("ssl_verify_cert"), str):
        value = params["ssl_verify_cert"]
        if value.lower() in ("0", "no", "false", "off"):
            params["ssl_verify_cert"] = False
        elif value.lower() in ("1", "yes", "true", "on"):
            params["ssl_verify_cert"] = True
        ## anything else is a path to a CA bundle
    return Account(url, **params)
