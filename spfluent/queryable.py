#!/usr/bin/env python
"""
This file contains the Queryable base class, which every SharePoint
resource (webs, lists, items, files ...) is built upon, and the
capability mixins collections and instances pick from.

A queryable only accumulates state - a url, the url of its parent,
query string parameters and request options.  Nothing is sent until
one of the terminal methods (``get``, ``post_core``, ``patch_core``,
``delete_core``) is called.  Those must be called from a running event
loop and return a future; if the queryable is part of a batch the
request is registered with the batch and the future resolves when the
batch is executed.
"""

import re
import sys
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Type
from typing import TYPE_CHECKING
from typing import TypeVar
from typing import Union

from spfluent.batch import BatchDependency
from spfluent.lib import error
from spfluent.lib.error import log
from spfluent.lib.url import combine_paths
from spfluent.lib.url import is_url_absolute
from spfluent.lib.url import to_absolute_url
from spfluent.pipeline import pipe
from spfluent.protocol.multipart import new_guid
from spfluent.protocol.odata import ODataDefaultParser
from spfluent.protocol.types import RequestContext

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

if TYPE_CHECKING:
    import asyncio

    from spfluent.batch import SPBatch

_Q = TypeVar("_Q", bound="Queryable")

## '!@label::value' - the value is moved into a parameter named label
_aliased_param_re = re.compile(r"'!(@.*?)::(.*?)'", re.IGNORECASE)


def merge_options(target: Dict[str, Any], source: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merges source into target, headers are merged key by key."""
    if not source:
        return target
    headers = dict(target.get("headers") or {})
    headers.update(source.get("headers") or {})
    target.update(source)
    target["headers"] = headers
    return target


def _default_client_factory():
    from spfluent.http import SPHttpClient

    return SPHttpClient()


class Queryable:
    """
    Base class for all SharePoint resources.  Can be instantiated from
    a url string or from a parent queryable plus a path.
    """

    entity_data: Optional[Dict[str, Any]] = None

    def __init__(self, base_url: Union[str, "Queryable"], path: Optional[str] = None) -> None:
        self._query: Dict[str, str] = {}
        self._options: Dict[str, Any] = {}
        self._batch: Optional["SPBatch"] = None

        if isinstance(base_url, str):
            ## From a string we need some extra parsing to get the
            ## parent url right, as OData keys live in parentheses
            url = base_url
            if is_url_absolute(url) or url.rfind("/") < 0:
                self._parent_url = url
                self._url = combine_paths(url, path)
            elif url.rfind("/") > url.rfind("("):
                ## .../items(19)/fields
                index = url.rfind("/")
                self._parent_url = url[:index]
                path = combine_paths(url[index:], path)
                self._url = combine_paths(self._parent_url, path)
            else:
                ## .../items(19)
                index = url.rfind("(")
                self._parent_url = url[:index]
                self._url = combine_paths(url, path)
        else:
            self._parent_url = base_url._url
            self._url = combine_paths(self._parent_url, path)
            self.configure_from(base_url)
            target = base_url._query.get("@target")
            if target is not None:
                self._query["@target"] = target

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._url!r})"

    @property
    def parent_url(self) -> str:
        return self._parent_url

    @property
    def query(self) -> Dict[str, str]:
        return self._query

    @property
    def batch(self) -> Optional["SPBatch"]:
        return self._batch

    @property
    def has_batch(self) -> bool:
        return self._batch is not None

    def concat(self, path_part: str) -> Self:
        """Directly concatenates the supplied string to the current url, not normalizing "/" chars"""
        self._url += path_part
        return self

    def append(self, path_part: str) -> Self:
        self._url = combine_paths(self._url, path_part)
        return self

    def configure(self, options: Optional[Dict[str, Any]]) -> Self:
        merge_options(self._options, options)
        return self

    def configure_from(self, other: "Queryable") -> Self:
        merge_options(self._options, other._options)
        return self

    def in_batch(self, batch: "SPBatch") -> Self:
        if self._batch is not None:
            raise error.SPError("This query is already part of a batch.")
        self._batch = batch
        return self

    def add_batch_dependency(self) -> BatchDependency:
        """
        Blocks the batch from executing until the returned guard is
        released.  Without a batch the guard does nothing.
        """
        if self._batch is not None:
            return self._batch.add_dependency()
        return BatchDependency()

    def as_(self, factory: Type[_Q]) -> _Q:
        """Creates a new instance of factory carrying all the state of this one"""
        o = factory(self._url, None)
        o._parent_url = self._parent_url
        o._query = dict(self._query)
        o._options = merge_options({}, self._options)
        o._batch = self._batch
        return o

    def to_url(self) -> str:
        return self._url

    def to_url_and_query(self) -> str:
        """Gets the full url with query information"""
        aliased: Dict[str, str] = {}

        def rewrite(match: "re.Match") -> str:
            label, value = match.group(1), match.group(2)
            log.debug(
                f"Rewriting aliased parameter from match {match.group(0)} to label: {label} value: {value}"
            )
            aliased[label] = f"'{value}'"
            return label

        url = _aliased_param_re.sub(rewrite, self.to_url())
        query = {k: _aliased_param_re.sub(rewrite, v) for k, v in self._query.items()}
        ## the explicitly set query parameters win
        aliased.update(query)
        if aliased:
            url += "?" + "&".join(f"{k}={v}" for k, v in aliased.items())
        return url

    def get_parent(
        self,
        factory: Type[_Q],
        base_url: Optional[str] = None,
        path: Optional[str] = None,
        batch: Optional["SPBatch"] = None,
    ) -> _Q:
        parent = factory(self._parent_url if base_url is None else base_url, path)
        parent.configure(self._options)
        target = self._query.get("@target")
        if target is not None:
            parent.query["@target"] = target
        if batch is not None:
            parent = parent.in_batch(batch)
        return parent

    def clone(
        self,
        factory: Type[_Q],
        additional_path: Optional[str] = None,
        include_batch: bool = True,
    ) -> _Q:
        clone = factory(self, additional_path)
        target = self._query.get("@target")
        if target is not None:
            clone.query["@target"] = target
        if include_batch and self.has_batch:
            clone = clone.in_batch(self._batch)
        return clone

    def to_request_context(
        self,
        verb: str,
        options: Optional[Dict[str, Any]] = None,
        parser: Any = None,
        pipeline: Optional[List[Callable]] = None,
    ) -> RequestContext:
        """
        Converts the current instance to a request context.  When
        batched, the context holds a dependency on the batch which the
        pipeline releases once the request is registered.
        """
        dependency = self.add_batch_dependency()
        try:
            url = to_absolute_url(self.to_url_and_query())
            options = merge_options(dict(options or {}), self._options)
        except Exception:
            dependency.release()
            raise
        return RequestContext(
            verb=verb.upper(),
            request_absolute_url=url,
            options=options,
            parser=parser or ODataDefaultParser(),
            request_id=new_guid(),
            client_factory=_default_client_factory,
            batch=self._batch,
            batch_dependency=dependency,
            pipeline=pipeline,
        )

    def get(self, parser: Any = None, options: Optional[Dict[str, Any]] = None) -> "asyncio.Future[Any]":
        return pipe(self.to_request_context("GET", options, parser))

    get_as = get

    def post_core(self, options: Optional[Dict[str, Any]] = None, parser: Any = None) -> "asyncio.Future[Any]":
        return pipe(self.to_request_context("POST", options, parser))

    def patch_core(self, options: Optional[Dict[str, Any]] = None, parser: Any = None) -> "asyncio.Future[Any]":
        return pipe(self.to_request_context("PATCH", options, parser))

    def delete_core(self, options: Optional[Dict[str, Any]] = None, parser: Any = None) -> "asyncio.Future[Any]":
        return pipe(self.to_request_context("DELETE", options, parser))


class Selectable:
    """Choose which fields to return, expand lookups"""

    _query: Dict[str, str]

    def select(self, *selects: str) -> Self:
        if selects:
            self._query["$select"] = ",".join(selects)
        return self

    def expand(self, *expands: str) -> Self:
        if expands:
            self._query["$expand"] = ",".join(expands)
        return self


class Filterable:
    """Filtering, ordering and paging of collections"""

    _query: Dict[str, str]

    def filter(self, filter: str) -> Self:
        self._query["$filter"] = filter
        return self

    def order_by(self, order_by: str, ascending: bool = True) -> Self:
        """Adds an order clause, clauses accumulate in the order given"""
        clause = f"{order_by} {'asc' if ascending else 'desc'}"
        existing = self._query.get("$orderby")
        self._query["$orderby"] = f"{existing},{clause}" if existing else clause
        return self

    def skip(self, skip: int) -> Self:
        self._query["$skip"] = str(skip)
        return self

    def top(self, top: int) -> Self:
        self._query["$top"] = str(top)
        return self


class QueryableCollection(Filterable, Selectable, Queryable):
    """A REST collection which can be filtered, paged, and selected"""

    pass


class QueryableInstance(Selectable, Queryable):
    """A single REST resource which can be selected"""

    pass
