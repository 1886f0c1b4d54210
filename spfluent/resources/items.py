"""
List items, including paging through large lists.
"""
import asyncio
import json
import re
from typing import Any
from typing import AsyncIterator
from typing import Dict
from typing import List as ListType
from typing import Optional
from urllib.parse import quote

from spfluent.batch import BatchDependency
from spfluent.lib.error import log
from spfluent.protocol.constants import NOMETADATA_ACCEPT
from spfluent.protocol.odata import ODataParser
from spfluent.protocol.types import SPResponse
from spfluent.queryable import QueryableCollection
from spfluent.queryable import QueryableInstance
from spfluent.resources.lists import List

## query parameters get_all carries over to its paging requests
_paging_params_re = re.compile(r"^\$select$|^\$filter$|^\$top$|^\$expand$")


class PagedItemCollection:
    """One page of items, plus the means to fetch the next one"""

    def __init__(self, parent: "Items", next_url: Optional[str], results: ListType[Any]) -> None:
        self.parent = parent
        self.next_url = next_url
        self.results = results

    @property
    def has_next(self) -> bool:
        return isinstance(self.next_url, str) and len(self.next_url) > 0

    async def get_next(self) -> Optional["PagedItemCollection"]:
        """Resolves to the next page, or None if this was the last one"""
        if not self.has_next:
            return None
        items = Items(self.next_url, None).configure_from(self.parent)
        return await items.get_paged()


class PagedItemCollectionParser(ODataParser):
    def __init__(self, parent: "Items") -> None:
        self._parent = parent

    async def parse(self, response: SPResponse) -> PagedItemCollection:
        self.handle_error(response)
        json_ = response.json()
        if isinstance(json_.get("d"), dict) and "__next" in json_["d"]:
            next_url = json_["d"]["__next"]
        else:
            next_url = json_.get("odata.nextLink")
        return PagedItemCollection(self._parent, next_url, self.parse_odata_json(json_))


class ItemUpdatedParser(ODataParser):
    """An item update answers with an empty body, the new etag is in the headers"""

    async def parse(self, response: SPResponse) -> Dict[str, Any]:
        self.handle_error(response)
        return {"odata.etag": response.headers.get("etag")}


class Items(QueryableCollection):
    def __init__(self, base_url, path: Optional[str] = "items") -> None:
        super().__init__(base_url, path)

    def get_by_id(self, id: int) -> "Item":
        item = Item(self)
        item.concat(f"({id})")
        return item

    def skip(self, skip: int, reverse: bool = False) -> "Items":
        """
        List items are paged by id rather than by position, so this
        sets a skiptoken starting at the given item id.  With
        ``reverse`` the paging goes backwards.
        """
        if reverse:
            token = f"Paged=TRUE&PagedPrev=TRUE&p_ID={skip}"
        else:
            token = f"Paged=TRUE&p_ID={skip}"
        self._query["$skiptoken"] = quote(token, safe="")
        return self

    def get_paged(self) -> "asyncio.Future[PagedItemCollection]":
        return self.get(PagedItemCollectionParser(self))

    async def iter_pages(self) -> AsyncIterator[PagedItemCollection]:
        page = await self.get_paged()
        while page is not None:
            yield page
            page = await page.get_next()

    async def get_all(self, request_size: int = 2000) -> ListType[Any]:
        """
        Gets all the items of a list, regardless of count, by paging
        through it.  Does not support batching.
        """
        log.warning(
            "Calling items.get_all should be done sparingly. Ensure this is the correct choice. If you are unsure, it is not."
        )
        items = Items(self, "").top(request_size).configure({"headers": {"Accept": NOMETADATA_ACCEPT}})
        for key, value in self._query.items():
            if _paging_params_re.match(key.lower()):
                items.query[key] = value

        collected: ListType[Any] = []
        async for page in items.iter_pages():
            collected.extend(page.results)
        return collected

    def add(self, properties: Optional[Dict[str, Any]] = None, list_item_entity_type_full_name: Optional[str] = None):
        """
        Adds a new item.  The list item entity type name is looked up
        when not given, keeping a batch from executing meanwhile.
        """
        dependency = self.add_batch_dependency()
        return asyncio.ensure_future(
            self._add(dependency, properties or {}, list_item_entity_type_full_name)
        )

    async def _add(
        self,
        dependency: BatchDependency,
        properties: Dict[str, Any],
        list_item_entity_type_full_name: Optional[str],
    ) -> Dict[str, Any]:
        with dependency:
            entity_type = await self.ensure_list_item_entity_type_name(list_item_entity_type_full_name)
            body = {"__metadata": {"type": entity_type}}
            body.update(properties)
            future = self.clone(Items, None).post_core({"body": json.dumps(body)})
        data = await future
        return {"data": data, "item": self.get_by_id(data["Id"])}

    async def ensure_list_item_entity_type_name(self, candidate: Optional[str]) -> str:
        if candidate:
            return candidate
        return await self.get_parent(List).get_list_item_entity_type_full_name()


class Item(QueryableInstance):
    def update(
        self,
        properties: Dict[str, Any],
        etag: str = "*",
        list_item_entity_type_full_name: Optional[str] = None,
    ):
        """
        Updates this item.  The result ``data`` holds the new etag in
        ``odata.etag``.
        """
        dependency = self.add_batch_dependency()
        return asyncio.ensure_future(
            self._update(dependency, properties, etag, list_item_entity_type_full_name)
        )

    async def _update(
        self,
        dependency: BatchDependency,
        properties: Dict[str, Any],
        etag: str,
        list_item_entity_type_full_name: Optional[str],
    ) -> Dict[str, Any]:
        with dependency:
            entity_type = await self.ensure_list_item_entity_type_name(list_item_entity_type_full_name)
            body = {"__metadata": {"type": entity_type}}
            body.update(properties)
            future = self.post_core(
                {
                    "body": json.dumps(body),
                    "headers": {"IF-Match": etag, "X-HTTP-Method": "MERGE"},
                },
                ItemUpdatedParser(),
            )
        data = await future
        return {"data": data, "item": self}

    def delete(self, etag: str = "*"):
        return self.post_core({"headers": {"IF-Match": etag, "X-HTTP-Method": "DELETE"}})

    async def ensure_list_item_entity_type_name(self, candidate: Optional[str]) -> str:
        if candidate:
            return candidate
        ## the parent of an item is the items collection, the list sits above that
        list_url = self.parent_url[: self.parent_url.rfind("/")]
        return await self.get_parent(List, list_url).get_list_item_entity_type_full_name()
