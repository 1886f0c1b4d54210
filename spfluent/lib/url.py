#!/usr/bin/env python
"""
URL helpers.  SharePoint addresses come in three flavours:

1) a path relative to the current web, i.e. "_api/web/lists"

2) a server relative path, i.e. "/sites/dev/_api/web/lists"

3) a fully qualified URL, i.e.
"https://contoso.sharepoint.com/sites/dev/_api/web/lists".

Requests are always sent to fully qualified URLs, so relative ones
are resolved with ``to_absolute_url`` against whatever context the
runtime configuration offers.
"""
import re
from typing import Optional
from typing import TYPE_CHECKING

from spfluent.lib.error import log

if TYPE_CHECKING:
    from spfluent.config import RuntimeConfig

_absolute_re = re.compile(r"^https?://|^//", re.IGNORECASE)
_edge_slashes_re = re.compile(r"^[\\/]|[\\/]$")

## markers in a browser location which sit right below the web url
LOCATION_MARKERS = ("/_layouts/", "/_siteassets/", "/siteassets/")


def is_url_absolute(url: Optional[str]) -> bool:
    return bool(url) and _absolute_re.match(url) is not None


def combine_paths(*paths: Optional[str]) -> str:
    """
    Joins the non-empty path parts with exactly one slash between
    them.  Leading and trailing slashes of each part are dropped,
    backslashes become forward slashes.
    """
    parts = [_edge_slashes_re.sub("", p) for p in paths if p]
    return "/".join(parts).replace("\\", "/")


def extract_web_url(candidate_url: Optional[str]) -> str:
    """
    Returns everything in front of the ``_api/`` segment.  If there is
    no such segment the candidate is given back as-is.
    """
    if candidate_url is None:
        return ""
    index = candidate_url.find("_api/")
    if index > -1:
        return candidate_url[:index]
    return candidate_url


def to_absolute_url(candidate_url: str, config: Optional["RuntimeConfig"] = None) -> str:
    """
    Ensures that a given url is absolute for the current web, using
    (in this order) the url itself, the configured base url, the page
    context and the current location.  If nothing helps, the
    candidate is returned unchanged and the transport will complain
    about it later.
    """
    if is_url_absolute(candidate_url):
        return candidate_url

    if config is None:
        from spfluent.config import runtime_config as config

    if config.base_url is not None:
        return combine_paths(config.base_url, candidate_url)

    page_context = config.page_context
    if page_context is not None:
        ## classic pages
        if page_context.get("webAbsoluteUrl"):
            return combine_paths(page_context["webAbsoluteUrl"], candidate_url)
        if page_context.get("webServerRelativeUrl"):
            return combine_paths(page_context["webServerRelativeUrl"], candidate_url)

    if config.location:
        location = str(config.location)
        lowered = location.lower()
        for marker in LOCATION_MARKERS:
            index = lowered.find(marker)
            if index > 0:
                return combine_paths(location[:index], candidate_url)

    log.debug(f"could not make {candidate_url!r} absolute, passing it on as-is")
    return candidate_url
