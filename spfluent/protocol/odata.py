"""
OData response parsing.

SharePoint answers in one of three dialects, depending on the Accept
header of the request:

* verbose (``application/json;odata=verbose``) - entities wrapped in
  ``{"d": ...}``, identity in ``__metadata``
* minimal metadata (the default) - identity in ``odata.id`` and
  ``odata.editLink``, collections in ``value``
* no metadata - bare payloads without identity

``detect_dialect`` turns a payload into one of the entity classes
below; consumers branch on the class instead of probing keys.
"""

from dataclasses import dataclass
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

from spfluent.lib import error
from spfluent.lib.error import log
from spfluent.lib.url import combine_paths
from spfluent.lib.url import extract_web_url
from spfluent.protocol.types import SPResponse


@dataclass(frozen=True)
class VerboseEntity:
    data: Dict[str, Any]
    uri: str
    id: Optional[str]


@dataclass(frozen=True)
class MinimalEntity:
    data: Dict[str, Any]
    edit_link: Optional[str]
    metadata: Optional[str]
    id: Optional[str]


@dataclass(frozen=True)
class NoMetadataEntity:
    data: Dict[str, Any]


ODataEntity = Union[VerboseEntity, MinimalEntity, NoMetadataEntity]


def detect_dialect(candidate: Dict[str, Any]) -> ODataEntity:
    if "__metadata" in candidate:
        metadata = candidate["__metadata"] or {}
        return VerboseEntity(candidate, metadata.get("uri", ""), metadata.get("id"))
    if "odata.id" in candidate or "odata.editLink" in candidate:
        return MinimalEntity(
            candidate,
            candidate.get("odata.editLink"),
            candidate.get("odata.metadata"),
            candidate.get("odata.id"),
        )
    return NoMetadataEntity(candidate)


def extract_odata_id(candidate: Dict[str, Any]) -> str:
    """
    Returns the odata id of an entity payload.

    Raises:
        ODataIdException: if the payload carries no id (nometadata)
    """
    entity = detect_dialect(candidate)
    if isinstance(entity, (VerboseEntity, MinimalEntity)) and entity.id:
        return entity.id
    raise error.ODataIdException(candidate)


def get_entity_url(candidate: Dict[str, Any]) -> str:
    """
    Returns the url an entity can be addressed with, or an empty string
    for nometadata payloads (chaining off those will fail).
    """
    entity = detect_dialect(candidate)
    if isinstance(entity, VerboseEntity):
        ## verbose carries an absolute uri
        return entity.uri
    if isinstance(entity, MinimalEntity):
        if entity.metadata and entity.edit_link:
            return combine_paths(extract_web_url(entity.metadata), "_api", entity.edit_link)
        if entity.edit_link:
            return entity.edit_link
        return entity.id or ""
    if isinstance(entity, NoMetadataEntity):
        log.warning(
            "No uri information found in ODataEntity parsing, chaining will fail for this object."
        )
        return ""
    raise TypeError(f"unexpected entity {entity!r}")


class ODataParser:
    """
    Base class of all parsers.  ``parse`` is a coroutine so parsers may
    do further I/O; the base implementation raises HttpRequestError
    for non-2xx responses and unwraps the OData envelope.
    """

    async def parse(self, response: SPResponse) -> Any:
        self.handle_error(response)
        if self.is_empty(response):
            return {}
        return self.parse_odata_json(response.json())

    def handle_error(self, response: SPResponse) -> None:
        if not response.ok:
            raise error.HttpRequestError.from_response(response)

    @staticmethod
    def is_empty(response: SPResponse) -> bool:
        if response.status == 204:
            return True
        if response.headers.get("Content-Length") == "0":
            return True
        return not response.body.strip()

    @staticmethod
    def parse_odata_json(json: Any) -> Any:
        if not isinstance(json, dict):
            return json
        if "d" in json:
            if isinstance(json["d"], dict) and "results" in json["d"]:
                return json["d"]["results"]
            return json["d"]
        if "value" in json:
            return json["value"]
        return json


ODataDefaultParser = ODataParser


class JSONParser(ODataParser):
    """Returns the json payload without unwrapping it."""

    async def parse(self, response: SPResponse) -> Any:
        self.handle_error(response)
        if self.is_empty(response):
            return {}
        return response.json()


class TextParser(ODataParser):
    async def parse(self, response: SPResponse) -> str:
        self.handle_error(response)
        return response.text


class BytesParser(ODataParser):
    async def parse(self, response: SPResponse) -> bytes:
        self.handle_error(response)
        return response.body


def hydrate(factory: Callable, data: Dict[str, Any]) -> Any:
    o = factory(get_entity_url(data), None)
    o.entity_data = data
    return o


class ODataEntityParser(ODataParser):
    """Turns the payload into an instance of ``factory``, carrying the data."""

    def __init__(self, factory: Callable) -> None:
        self.factory = factory

    async def parse(self, response: SPResponse) -> Any:
        data = await super().parse(response)
        return hydrate(self.factory, data)


class ODataEntityArrayParser(ODataParser):
    def __init__(self, factory: Callable) -> None:
        self.factory = factory

    async def parse(self, response: SPResponse) -> List[Any]:
        data = await super().parse(response)
        return [hydrate(self.factory, d) for d in data]
