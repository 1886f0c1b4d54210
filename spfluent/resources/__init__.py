"""
Thin wrappers around the queryable core, addressing the commonly used
SharePoint resources: site collections, webs, lists, list items,
folders and files.
"""
from .files import CheckinType
from .files import File
from .files import Files
from .files import Folder
from .items import Item
from .items import Items
from .items import PagedItemCollection
from .lists import List
from .lists import Lists
from .rest import sp
from .rest import SPRest
from .webs import Site
from .webs import Web
from .webs import Webs

__all__ = [
    "CheckinType",
    "File",
    "Files",
    "Folder",
    "Item",
    "Items",
    "List",
    "Lists",
    "PagedItemCollection",
    "Site",
    "SPRest",
    "Web",
    "Webs",
    "sp",
]
