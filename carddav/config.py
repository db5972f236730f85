"""
Configuration file handling.  A configuration file is a JSON (or YAML)
mapping from section names to connection parameters:

    {
        "default": {
            "carddav_url": "example.com",
            "carddav_user": "jdoe",
            "carddav_pass": "secret"
        },
        "work": {
            "inherits": "default",
            "carddav_url": "https://contacts.example.org/"
        }
    }
"""
import json
import logging
import os
from typing import Any
from typing import Dict
from typing import Optional


log = logging.getLogger(__name__)


def config_section(config: Dict[str, Any], section: str = "default") -> Dict[str, Any]:
    """
    The settings of a section, with the settings of the section named
    by its ``inherits`` key (recursively) as defaults.
    """
    return _config_section(config, section, set())


def _config_section(config, section, seen):
    if section in seen:
        log.error(f"config section {section} inherits from itself")
        return {}
    seen.add(section)
    if section in config and "inherits" in config[section]:
        ret = _config_section(config, config[section]["inherits"], seen)
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    ret.pop("inherits", None)
    return ret


def read_config(fn: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Read a configuration file.  Without a file name, the usual
    locations are searched, and the first file found is used.

    Returns:
        The configuration, None if no file was found, {} if the
        file found could not be parsed.
    """
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config"
        for config_file in (
            f"{cfgdir}/carddav/addressbook.conf",
            f"{cfgdir}/carddav/addressbook.yaml",
            f"{cfgdir}/carddav/addressbook.json",
            f"{cfgdir}/addressbook.conf",
            "/etc/addressbook.conf",
            "/etc/carddav/addressbook.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        with open(fn, "rb") as config_file:
            raw = config_file.read()
    except FileNotFoundError:
        log.debug(f"no config file found at {fn}")
        return None

    try:
        return json.loads(raw)
    except ValueError:
        pass

    ## Late import.  yaml is an optional dependency
    try:
        import yaml
    except ImportError:
        log.error(
            f"config file {fn} exists but is not valid json, and pyyaml is not installed."
        )
        return {}
    try:
        cfg = yaml.safe_load(raw)
    except yaml.YAMLError:
        log.error(
            f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
        )
        return {}
    if not isinstance(cfg, dict):
        log.error(f"config file {fn} does not contain a mapping, it will be ignored")
        return {}
    return cfg
