#!/usr/bin/env python
import logging
import os
from typing import Any
from typing import Optional

from spfluent import __version__

## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("SPFLUENT_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("spfluent")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons):
    reason = " : ".join([str(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


class SPError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, reason: Optional[str] = None, url: Optional[str] = None) -> None:
        if reason:
            self.reason = reason
        if url:
            self.url = url
        super().__init__(self.reason)

    def __str__(self) -> str:
        if self.url:
            return "%s at '%s', reason %s" % (
                self.__class__.__name__,
                self.url,
                self.reason,
            )
        return "%s: %s" % (self.__class__.__name__, self.reason)


class BatchParseException(SPError):
    """
    The multipart response of a batch request could not be matched
    up with the requests that were sent.  Fatal to the whole batch.
    """

    pass


class ODataIdException(SPError):
    """
    A payload carried no recognizable identity (odata.id or
    __metadata.id).  This typically happens with nometadata
    responses.  The offending payload is kept in ``data``.
    """

    reason = "Could not extract odata id in object, you may be using nometadata. Object data logged to logger."

    def __init__(self, data: Any, reason: Optional[str] = None) -> None:
        super().__init__(reason)
        self.data = data
        log.error(f"{self.reason} data: {data!r}")


class MaxCommentLengthException(SPError):
    reason = "The maximum comment length is 1023 characters."


class NotSupportedInBatchException(SPError):
    def __init__(self, operation: str = "This operation") -> None:
        super().__init__(f"{operation} is not supported as part of a batch.")


class APIUrlException(SPError):
    reason = "Unable to determine API url."


class BatchStateError(SPError):
    pass


class HttpRequestError(SPError):
    """
    The server answered with a non-2xx status.  ``response`` holds the
    SPResponse, ``data`` the parsed error payload when the body was JSON.
    """

    status: int = 0
    status_text: str = ""

    def __init__(self, reason: Optional[str] = None, response: Any = None, data: Any = None) -> None:
        super().__init__(reason, getattr(response, "url", None) or None)
        self.response = response
        self.data = data
        if response is not None:
            self.status = response.status
            self.status_text = response.reason

    @classmethod
    def from_response(cls, response: Any) -> "HttpRequestError":
        try:
            data = response.json()
        except ValueError:
            data = response.text
        return cls(
            f"Error making HttpClient request in queryable: [{response.status}] {response.reason}",
            response,
            data,
        )
