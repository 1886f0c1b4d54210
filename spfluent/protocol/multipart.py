"""
Pure functions for building OData ``$batch`` request bodies and for
splitting ``$batch`` responses.

All functions in this module are pure - they take data in and return
text or records out, with no side effects or I/O.

Request layout::

    --batch_<id>
    Content-Type: application/http
    Content-Transfer-Encoding: binary

    GET https://contoso/_api/web HTTP/1.1
    accept: application/json

    --batch_<id>
    Content-Type: multipart/mixed; boundary="changeset_<cs>"

    --changeset_<cs>
    Content-Type: application/http
    Content-Transfer-Encoding: binary

    MERGE https://contoso/_api/web/lists(...)/items(1) HTTP/1.1
    (headers)

    {"Title": "x"}

    --changeset_<cs>--

    --batch_<id>--
"""

import re
import uuid
from typing import Callable
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional

from niquests.structures import CaseInsensitiveDict

from spfluent.lib.error import BatchParseException
from spfluent.lib.error import log
from spfluent.lib.url import combine_paths
from spfluent.lib.url import is_url_absolute
from spfluent.protocol.constants import CLIENT_TAG
from spfluent.protocol.constants import DEFAULT_ACCEPT
from spfluent.protocol.constants import VERBOSE_CONTENT_TYPE
from spfluent.protocol.types import BatchRequest
from spfluent.protocol.types import ParsedMultipartRecord

BATCH_RESPONSE_BOUNDARY = "--batchresponse_"

## Ex. "HTTP/1.1 500 Internal Server Error"
_status_re = re.compile(r"^HTTP/[0-9.]+ +([0-9]+) +(.*)", re.IGNORECASE)


def new_guid() -> str:
    return str(uuid.uuid4())


def batch_content_type(batch_id: str) -> str:
    return f"multipart/mixed; boundary=batch_{batch_id}"


def _part_headers(
    request: BatchRequest, global_headers: Optional[Mapping[str, str]]
) -> CaseInsensitiveDict:
    headers = CaseInsensitiveDict()
    if request.method != "GET":
        headers["Content-Type"] = VERBOSE_CONTENT_TYPE
    ## global config headers first, so the request can override them
    headers.update(global_headers or {})
    headers.update(request.headers)
    headers.pop("X-HTTP-Method", None)
    ## lastly the defaults, only if they are missing
    headers.setdefault("Accept", DEFAULT_ACCEPT)
    headers.setdefault("Content-Type", VERBOSE_CONTENT_TYPE)
    headers.setdefault("X-ClientService-ClientTag", CLIENT_TAG)
    return headers


def build_batch_body(
    batch_id: str,
    requests: Iterable[BatchRequest],
    absolute_url: str,
    global_headers: Optional[Mapping[str, str]] = None,
    guid_factory: Callable[[], str] = new_guid,
) -> str:
    """
    Build the multipart body for a ``$batch`` request.

    GET requests are sent as standalone parts.  Consecutive non-GET
    requests are grouped into one change set; a GET closes the change
    set which is currently open.

    Args:
        batch_id: The id used in the ``batch_`` boundary
        requests: The batched requests, in order
        absolute_url: Absolute url of the web, relative request urls are
            combined with it
        global_headers: Headers configured for every request
        guid_factory: Generator for change set ids

    Returns:
        The body text
    """
    body: List[str] = []
    changeset_id = ""

    for request in requests:
        if request.method == "GET":
            if changeset_id:
                ## end the change set which is open
                body.append(f"--changeset_{changeset_id}--\n\n")
                changeset_id = ""
            body.append(f"--batch_{batch_id}\n")
        else:
            if not changeset_id:
                changeset_id = guid_factory()
                body.append(f"--batch_{batch_id}\n")
                body.append(
                    f'Content-Type: multipart/mixed; boundary="changeset_{changeset_id}"\n\n'
                )
            body.append(f"--changeset_{changeset_id}\n")

        body.append("Content-Type: application/http\n")
        body.append("Content-Transfer-Encoding: binary\n\n")

        url = request.url if is_url_absolute(request.url) else combine_paths(absolute_url, request.url)
        log.debug(f"[{batch_id}] adding request {request.method} {url} to batch")

        method = request.method
        if method != "GET":
            method = CaseInsensitiveDict(request.headers).get("X-HTTP-Method", method)
        body.append(f"{method} {url} HTTP/1.1\n")

        for name, value in _part_headers(request, global_headers).items():
            body.append(f"{name}: {value}\n")
        body.append("\n")

        if request.body:
            body.append(f"{request.body}\n\n")

    if changeset_id:
        body.append(f"--changeset_{changeset_id}--\n\n")
    body.append(f"--batch_{batch_id}--\n")
    return "".join(body)


def parse_batch_response(body: str) -> List[ParsedMultipartRecord]:
    """
    Split the text of a ``$batch`` response into records, one per
    embedded response, in order.

    Only single line bodies are supported, which is what SharePoint
    sends for JSON payloads.

    Raises:
        BatchParseException: on content between parts, on a broken
            status line or on a truncated response
    """
    records: List[ParsedMultipartRecord] = []
    state = "batch"
    status = 0
    status_text = ""

    for i, line in enumerate(body.replace("\r\n", "\n").split("\n")):
        if state == "batch":
            if line.startswith(BATCH_RESPONSE_BOUNDARY):
                state = "batchHeaders"
            elif line.strip():
                raise BatchParseException(f"Invalid response, line {i}")
        elif state == "batchHeaders":
            if not line.strip():
                state = "status"
        elif state == "status":
            match = _status_re.match(line)
            if not match:
                raise BatchParseException(f"Invalid status, line {i}")
            status = int(match.group(1))
            status_text = match.group(2).strip()
            state = "statusHeaders"
        elif state == "statusHeaders":
            if not line.strip():
                state = "body"
        elif state == "body":
            if status == 204:
                records.append(ParsedMultipartRecord(status, status_text))
                ## no content, the line may already be the next boundary
                state = "batchHeaders" if line.startswith(BATCH_RESPONSE_BOUNDARY) else "batch"
            else:
                records.append(ParsedMultipartRecord(status, status_text, line))
                state = "batch"

    if state != "status":
        raise BatchParseException("Unexpected end of input")
    return records
