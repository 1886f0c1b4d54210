from typing import Any
from typing import Dict
from typing import Mapping
from typing import Optional
from typing import Type
from typing import TypeVar

from spfluent.batch import SPBatch
from spfluent.config import RuntimeConfig
from spfluent.config import setup
from spfluent.queryable import Queryable
from spfluent.resources.webs import Site
from spfluent.resources.webs import Web

_Q = TypeVar("_Q", bound=Queryable)


class SPRest:
    """
    Root of the fluent api.  ``options`` are applied to every queryable
    created from here, ``base_url`` forms the base part of their urls.

    Example:
        from spfluent import sp

        sp.setup(base_url="https://contoso.sharepoint.com/sites/dev")
        title = (await sp.web.select("Title").get())["Title"]
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None, base_url: str = "") -> None:
        self._options = options or {}
        self._base_url = base_url

    def configure(self, options: Optional[Dict[str, Any]], base_url: str = "") -> "SPRest":
        return SPRest(options, base_url)

    def setup(self, config: Optional[Mapping[str, Any]] = None, **kwargs) -> RuntimeConfig:
        return setup(config, **kwargs)

    @property
    def site(self) -> Site:
        """Begins a site collection scoped request"""
        return self._create(Site)

    @property
    def web(self) -> Web:
        """Begins a web scoped request"""
        return self._create(Web)

    def create_batch(self) -> SPBatch:
        return self.web.create_batch()

    def _create(self, factory: Type[_Q]) -> _Q:
        return factory(self._base_url).configure(self._options)


sp = SPRest()
