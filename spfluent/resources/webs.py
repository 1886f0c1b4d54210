import json
import re
from typing import Any
from typing import Dict
from typing import Optional

from spfluent.batch import SPBatch
from spfluent.lib.url import extract_web_url
from spfluent.pipeline import then
from spfluent.protocol.odata import extract_odata_id
from spfluent.queryable import QueryableCollection
from spfluent.queryable import QueryableInstance
from spfluent.resources.files import File
from spfluent.resources.files import Folder
from spfluent.resources.lists import Lists

_api_web_re = re.compile(r"_api/web/?", re.IGNORECASE)


class Webs(QueryableCollection):
    def __init__(self, base_url, path: Optional[str] = "webs") -> None:
        super().__init__(base_url, path)

    def add(
        self,
        title: str,
        url: str,
        description: str = "",
        template: str = "STS",
        language: int = 1033,
        inherit_permissions: bool = True,
    ):
        """
        Adds a sub web.  Resolves to a dict holding the created web's
        ``data`` and a ``web`` to continue with.
        """
        parameters = {
            "__metadata": {"type": "SP.WebCreationInformation"},
            "Description": description,
            "Language": language,
            "Title": title,
            "Url": url,
            "UseSamePermissionsAsParentSite": inherit_permissions,
            "WebTemplate": template,
        }
        future = self.clone(Webs, "add").post_core({"body": json.dumps({"parameters": parameters})})
        return then(
            future,
            lambda data: {
                "data": data,
                "web": Web(_api_web_re.sub("", extract_odata_id(data))),
            },
        )


class Web(QueryableInstance):
    def __init__(self, base_url, path: Optional[str] = "_api/web") -> None:
        super().__init__(base_url, path)

    @classmethod
    def from_url(cls, url: str, path: Optional[str] = "_api/web") -> "Web":
        """Creates a web from any url pointing into it, cutting at the /_api/ segment"""
        return cls(extract_web_url(url), path)

    @property
    def webs(self) -> Webs:
        return Webs(self)

    @property
    def lists(self) -> Lists:
        return Lists(self)

    @property
    def root_folder(self) -> Folder:
        return Folder(self, "rootFolder")

    def get_folder_by_server_relative_url(self, folder_relative_url: str) -> Folder:
        return Folder(self, f"getFolderByServerRelativeUrl('{folder_relative_url}')")

    def get_file_by_server_relative_url(self, file_relative_url: str) -> File:
        return File(self, f"getFileByServerRelativeUrl('{file_relative_url}')")

    def update(self, properties: Dict[str, Any]):
        body = {"__metadata": {"type": "SP.Web"}}
        body.update(properties)
        future = self.post_core({"body": json.dumps(body), "headers": {"X-HTTP-Method": "MERGE"}})
        return then(future, lambda data: {"data": data, "web": self})

    def create_batch(self) -> SPBatch:
        """Creates a new batch for requests within the context of this web"""
        return SPBatch(self.parent_url)


class Site(QueryableInstance):
    def __init__(self, base_url, path: Optional[str] = "_api/site") -> None:
        super().__init__(base_url, path)

    @property
    def root_web(self) -> Web:
        return Web(self, "rootweb")

    def get_context_info(self):
        q = Site(self.parent_url, "_api/contextinfo")

        def unwrap(data):
            if "GetContextWebInformation" in data:
                info = data["GetContextWebInformation"]
                schemas = info.get("SupportedSchemaVersions")
                if isinstance(schemas, dict) and "results" in schemas:
                    info["SupportedSchemaVersions"] = schemas["results"]
                return info
            return data

        return then(q.post_core(), unwrap)

    def create_batch(self) -> SPBatch:
        return SPBatch(self.parent_url)
