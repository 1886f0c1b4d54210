import json
import logging
import os
from typing import Any
from typing import Callable
from typing import Dict
from typing import Mapping
from typing import Optional

"""
Runtime configuration.  There is one process wide ``runtime_config``
object which is consulted by the transport (global headers, fetch
client factory), the batch serializer (global headers) and the url
resolution (base url, page context, location).  It may be updated
through ``setup`` or populated from environment variables and
configuration files.
"""

log = logging.getLogger("spfluent")

## Accepted aliases for the keys understood by RuntimeConfig.update
_KEY_ALIASES = {
    "baseUrl": "base_url",
    "fetchClientFactory": "fetch_client_factory",
    "pageContext": "page_context",
}


def _default_fetch_client_factory():
    from spfluent.io import NiquestsFetchClient

    return NiquestsFetchClient()


class RuntimeConfig:
    """
    Holds the settings applied to every request:

    * ``headers`` - merged into every request, can be overridden per request
    * ``base_url`` - used to make relative urls absolute
    * ``page_context`` - a mapping with ``webAbsoluteUrl`` and/or
      ``webServerRelativeUrl``, like the classic page context info object
    * ``location`` - the current location, when running inside a page
    * ``fetch_client_factory`` - callable returning the object doing the
      actual network calls
    """

    def __init__(
        self,
        headers: Optional[Mapping[str, str]] = None,
        base_url: Optional[str] = None,
        page_context: Optional[Mapping[str, str]] = None,
        location: Optional[str] = None,
        fetch_client_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.headers: Dict[str, str] = dict(headers or {})
        self.base_url = base_url
        self.page_context = page_context
        self.location = location
        self.fetch_client_factory = fetch_client_factory or _default_fetch_client_factory

    def update(self, config: Optional[Mapping[str, Any]] = None, **kwargs) -> "RuntimeConfig":
        """
        Merges settings into this configuration.  Accepts either the
        settings directly or wrapped in an ``sp`` section.  Headers are
        merged key by key, everything else is replaced.
        """
        settings: Dict[str, Any] = {}
        if config:
            settings.update(config.get("sp", config))
        settings.update(kwargs)
        for key, value in settings.items():
            key = _KEY_ALIASES.get(key, key)
            if key == "headers":
                self.headers.update(value or {})
            elif key in ("base_url", "page_context", "location", "fetch_client_factory"):
                setattr(self, key, value)
            else:
                log.warning(f"ignoring unknown configuration key {key}")
        return self

    def reset(self) -> None:
        self.__init__()

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "RuntimeConfig":
        """
        Environment variables prepended with ``SHAREPOINT_`` are used:
        ``SHAREPOINT_BASE_URL``, ``SHAREPOINT_ACCESS_TOKEN`` and
        ``SHAREPOINT_CONFIG_FILE`` (with ``SHAREPOINT_CONFIG_SECTION``).
        Values given directly in the environment win over the file.
        """
        if environ is None:
            environ = os.environ
        ret = cls()
        config_file = environ.get("SHAREPOINT_CONFIG_FILE")
        if config_file:
            cfg = read_config(config_file)
            if cfg:
                ret.update(config_section(cfg, environ.get("SHAREPOINT_CONFIG_SECTION", "default")))
        if environ.get("SHAREPOINT_BASE_URL"):
            ret.base_url = environ["SHAREPOINT_BASE_URL"]
        if environ.get("SHAREPOINT_ACCESS_TOKEN"):
            ret.headers["Authorization"] = f"Bearer {environ['SHAREPOINT_ACCESS_TOKEN']}"
        return ret


runtime_config = RuntimeConfig()


def setup(config: Optional[Mapping[str, Any]] = None, **kwargs) -> RuntimeConfig:
    """Global SharePoint configuration"""
    return runtime_config.update(config, **kwargs)


def config_section(config, section="default"):
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    ret.pop("inherits", None)
    return ret


def read_config(fn):
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config/"
        for config_file in (
            f"{cfgdir}/spfluent/config.json",
            f"{cfgdir}/spfluent/config.yaml",
            "/etc/spfluent/config.json",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            ## Late import, wrapped in try/except.  yaml is external module,
            ## and not included in the requirements as for now.
            try:
                import yaml

                try:
                    with open(fn, "rb") as config_file:
                        return yaml.load(config_file, yaml.SafeLoader)
                except yaml.YAMLError:
                    log.error(
                        f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                    )
            except ImportError:
                log.error(
                    f"config file {fn} exists but is not valid json, and pyyaml is not installed."
                )
    except FileNotFoundError:
        log.info("no config file found")
    return {}
