import asyncio
import json
from typing import Any
from typing import Dict
from typing import Optional
from typing import TYPE_CHECKING

from spfluent.lib import error
from spfluent.lib.error import log
from spfluent.pipeline import then
from spfluent.protocol.odata import extract_odata_id
from spfluent.queryable import QueryableCollection
from spfluent.queryable import QueryableInstance
from spfluent.resources.files import Folder

if TYPE_CHECKING:
    from spfluent.resources.items import Items


class Lists(QueryableCollection):
    """The lists of a web"""

    def __init__(self, base_url, path: Optional[str] = "lists") -> None:
        super().__init__(base_url, path)

    def get_by_title(self, title: str) -> "List":
        return List(self, f"getByTitle('{title}')")

    def get_by_id(self, id: str) -> "List":
        list_ = List(self)
        list_.concat(f"('{id}')")
        return list_

    def add(
        self,
        title: str,
        description: str = "",
        template: int = 100,
        enable_content_types: bool = False,
        additional_settings: Optional[Dict[str, Any]] = None,
    ):
        """
        Adds a new list.  Resolves to a dict holding the created list's
        ``data`` and a ``list`` to continue with.
        """
        settings = {
            "AllowContentTypes": enable_content_types,
            "BaseTemplate": template,
            "ContentTypesEnabled": enable_content_types,
            "Description": description,
            "Title": title,
            "__metadata": {"type": "SP.List"},
        }
        settings.update(additional_settings or {})
        future = self.post_core({"body": json.dumps(settings)})
        return then(future, lambda data: {"data": data, "list": self.get_by_title(settings["Title"])})

    def ensure(
        self,
        title: str,
        description: str = "",
        template: int = 100,
        enable_content_types: bool = False,
        additional_settings: Optional[Dict[str, Any]] = None,
    ):
        """
        Makes sure a list with the given title exists, updating it if it
        does.  The result carries ``created`` telling which happened.

        Not supported for batching.
        """
        if self.has_batch:
            raise error.NotSupportedInBatchException("The ensure list method")
        return asyncio.ensure_future(
            self._ensure(title, description, template, enable_content_types, additional_settings)
        )

    async def _ensure(
        self,
        title: str,
        description: str,
        template: int,
        enable_content_types: bool,
        additional_settings: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        settings = dict(additional_settings or {})
        settings.update(
            {
                "Title": title,
                "Description": description,
                "ContentTypesEnabled": enable_content_types,
            }
        )
        list_ = self.get_by_title(title)
        try:
            await list_.get()
        except error.HttpRequestError as err:
            log.debug(f"list {title} not found ({err.status}), adding it")
            result = await self.add(title, description, template, enable_content_types, settings)
            return {"created": True, "data": result["data"], "list": self.get_by_title(title)}
        result = await list_.update(settings)
        return {"created": False, "data": result["data"], "list": self.get_by_title(title)}

    def ensure_site_assets_library(self):
        """Gets the default asset location for images or other files uploaded to wiki pages"""
        future = self.clone(Lists, "ensuresiteassetslibrary").post_core()
        return then(future, lambda data: List(extract_odata_id(data)))

    def ensure_site_pages_library(self):
        """Gets the default location for wiki pages"""
        future = self.clone(Lists, "ensuresitepageslibrary").post_core()
        return then(future, lambda data: List(extract_odata_id(data)))


class List(QueryableInstance):
    @property
    def items(self) -> "Items":
        from spfluent.resources.items import Items

        return Items(self)

    @property
    def root_folder(self) -> Folder:
        return Folder(self, "rootFolder")

    def update(self, properties: Dict[str, Any], etag: str = "*"):
        """
        Updates this list.  If the title changes, the ``list`` of the
        result addresses the list by its new title.
        """
        body = {"__metadata": {"type": "SP.List"}}
        body.update(properties)
        future = self.post_core(
            {
                "body": json.dumps(body),
                "headers": {"IF-Match": etag, "X-HTTP-Method": "MERGE"},
            }
        )

        def result(data):
            list_ = self
            if "Title" in properties:
                list_ = self.get_parent(List, self.parent_url, f"getByTitle('{properties['Title']}')")
            return {"data": data, "list": list_}

        return then(future, result)

    def delete(self, etag: str = "*"):
        return self.post_core({"headers": {"IF-Match": etag, "X-HTTP-Method": "DELETE"}})

    async def get_list_item_entity_type_full_name(self) -> str:
        """The type name needed when adding or updating items, ie. SP.Data.TasksListItem"""
        data = await self.clone(List, None, False).select("ListItemEntityTypeFullName").get()
        return data["ListItemEntityTypeFullName"]
