"""
Core protocol types.

These dataclasses represent responses, batch parts and the per request
state at the protocol level, independent of any I/O implementation.
"""

import asyncio
import json
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from enum import Enum
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional

from niquests.structures import CaseInsensitiveDict

from spfluent.lib.python_utilities import to_normal_str


@dataclass(frozen=True)
class SPResponse:
    """
    Represents an HTTP response received, either directly from the
    server or cut out of a batch response.

    Attributes:
        status: HTTP status code
        headers: HTTP headers, case insensitive
        body: Response body as bytes
        reason: Status text as given by the server
        url: URL the request was sent to (may be empty for batch parts)
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""
    reason: str = ""
    url: str = ""

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return to_normal_str(self.body) or ""

    def json(self) -> Any:
        return json.loads(self.text)


@dataclass(frozen=True)
class ParsedMultipartRecord:
    """One embedded HTTP response of a batch response."""

    status: int
    status_text: str
    body_text: str = ""

    def to_response(self) -> SPResponse:
        return SPResponse(
            status=self.status,
            reason=self.status_text,
            body=self.body_text.encode("utf-8"),
        )


@dataclass
class BatchRequest:
    """
    One logical request registered with a batch.  The future is
    resolved (or rejected) exactly once, when the batch response is
    distributed.
    """

    url: str
    method: str
    options: Dict[str, Any]
    parser: Any
    request_id: str
    future: "asyncio.Future[Any]"

    @property
    def headers(self) -> Dict[str, str]:
        return self.options.get("headers") or {}

    @property
    def body(self) -> Optional[str]:
        return self.options.get("body")


@dataclass
class CachedDigest:
    value: str
    expiration: datetime

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) < self.expiration


@dataclass
class RetryContext:
    """Retry bookkeeping for one logical request."""

    attempts: int = 0
    delay: int = 100
    retry_count: int = 7


class BatchState(Enum):
    COLLECTING = "collecting"
    SERIALIZING = "serializing"
    SENT = "sent"
    PARSING = "parsing"
    DISTRIBUTING = "distributing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RequestContext:
    """
    Everything needed to dispatch one request, produced by
    ``Queryable.to_request_context``.
    """

    verb: str
    request_absolute_url: str
    options: Dict[str, Any]
    parser: Any
    request_id: str
    client_factory: Callable[[], Any]
    batch: Any = None
    batch_dependency: Any = None
    pipeline: Optional[List[Callable]] = None

    @property
    def is_batched(self) -> bool:
        return self.batch is not None
