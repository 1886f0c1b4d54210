#!/usr/bin/env python
"""
OData batching.  Requests are registered with an ``SPBatch`` instead
of being sent; ``execute`` sends them all in one ``$batch`` request
and resolves the future of every request with its parsed result, in
the order the requests were added.

Example:
    batch = sp.web.create_batch()
    title = sp.web.select("Title").in_batch(batch).get()
    lists = sp.web.lists.in_batch(batch).get()
    await batch.execute()
    print((await title)["Title"], len(await lists))
"""

import asyncio
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import TYPE_CHECKING

from spfluent.config import runtime_config
from spfluent.config import RuntimeConfig
from spfluent.lib import error
from spfluent.lib.error import log
from spfluent.lib.url import combine_paths
from spfluent.lib.url import to_absolute_url
from spfluent.protocol.multipart import batch_content_type
from spfluent.protocol.multipart import build_batch_body
from spfluent.protocol.multipart import new_guid
from spfluent.protocol.multipart import parse_batch_response
from spfluent.protocol.types import BatchRequest
from spfluent.protocol.types import BatchState

if TYPE_CHECKING:
    from spfluent.http import SPHttpClient


class BatchDependency:
    """
    Keeps a batch from executing while a multi step operation is still
    on its way to adding its request.  Released exactly once, either
    explicitly or when leaving the ``with`` block.
    """

    def __init__(self, batch: Optional["SPBatch"] = None) -> None:
        self._batch = batch
        self.released = batch is None

    def release(self) -> None:
        if not self.released:
            self.released = True
            self._batch._release_dependency(self)

    def __enter__(self) -> "BatchDependency":
        return self

    def __exit__(self, *args) -> None:
        self.release()


class SPBatch:
    """
    Collects requests for one ``$batch`` exchange.  A batch is
    executed once; afterwards it is either ``done`` or ``failed``.
    """

    def __init__(
        self,
        base_url: str = "",
        batch_id: Optional[str] = None,
        config: Optional[RuntimeConfig] = None,
        http_client: Optional["SPHttpClient"] = None,
    ) -> None:
        self.base_url = base_url
        self.batch_id = batch_id or new_guid()
        self.config = config or runtime_config
        self._http_client = http_client
        self._requests: List[BatchRequest] = []
        self._dependencies: List[BatchDependency] = []
        ## created on first use, inside the loop which waits on it
        self._idle: Optional[asyncio.Event] = None
        self.state = BatchState.COLLECTING

    @property
    def requests(self) -> List[BatchRequest]:
        return list(self._requests)

    def add(
        self,
        url: str,
        method: str,
        options: Dict[str, Any],
        parser: Any,
        request_id: Optional[str] = None,
    ) -> "asyncio.Future[Any]":
        """
        Registers a request.  Returns the future which will hold the
        parsed result once the batch has been executed.
        """
        if self.state is not BatchState.COLLECTING:
            raise error.BatchStateError(
                f"batch {self.batch_id} is {self.state.value}, requests can no longer be added"
            )
        future = asyncio.get_running_loop().create_future()
        self._requests.append(
            BatchRequest(
                url=url,
                method=method.upper(),
                options=options,
                parser=parser,
                request_id=request_id or new_guid(),
                future=future,
            )
        )
        return future

    def add_dependency(self) -> BatchDependency:
        dependency = BatchDependency(self)
        self._dependencies.append(dependency)
        if self._idle is not None:
            self._idle.clear()
        return dependency

    def _release_dependency(self, dependency: BatchDependency) -> None:
        self._dependencies.remove(dependency)
        if not self._dependencies and self._idle is not None:
            self._idle.set()

    async def execute(self) -> None:
        """
        Waits for outstanding dependencies, then sends all requests
        and resolves their futures.  Errors concerning the batch as a
        whole reject every request which is not resolved yet and are
        raised from here as well.
        """
        while self._dependencies:
            if self._idle is None:
                self._idle = asyncio.Event()
            await self._idle.wait()

        if self.state is not BatchState.COLLECTING:
            raise error.BatchStateError(f"batch {self.batch_id} was already executed")

        log.info(f"[{self.batch_id}] Executing batch with {len(self._requests)} requests.")
        if not self._requests:
            ## empty batches are free
            log.info(f"[{self.batch_id}] Resolving empty batch.")
            self.state = BatchState.DONE
            return

        try:
            await self._execute()
        except Exception as err:
            self.state = BatchState.FAILED
            log.error(f"[{self.batch_id}] batch failed: {err}")
            for request in self._requests:
                if not request.future.done():
                    request.future.set_exception(err)
            raise
        self.state = BatchState.DONE

    async def _execute(self) -> None:
        ## creating the client first allows the fetch client factory to
        ## prepare anything the url resolution below depends upon
        if self._http_client is None:
            from spfluent.http import SPHttpClient

            self._http_client = SPHttpClient(self.config)

        self.state = BatchState.SERIALIZING
        absolute_url = to_absolute_url(self.base_url, self.config)
        body = build_batch_body(
            self.batch_id, self._requests, absolute_url, self.config.headers
        )

        log.info(f"[{self.batch_id}] Sending batch request.")
        self.state = BatchState.SENT
        response = await self._http_client.fetch(
            combine_paths(absolute_url, "/_api/$batch"),
            {
                "method": "POST",
                "body": body,
                "headers": {"Content-Type": batch_content_type(self.batch_id)},
            },
        )
        if not response.ok:
            raise error.HttpRequestError.from_response(response)

        self.state = BatchState.PARSING
        records = parse_batch_response(response.text)
        if len(records) != len(self._requests):
            error.weirdness(
                f"batch {self.batch_id}", f"{len(records)} responses", f"{len(self._requests)} requests"
            )
            raise error.BatchParseException(
                "Could not properly parse responses to match requests in batch."
            )

        self.state = BatchState.DISTRIBUTING
        log.info(f"[{self.batch_id}] Resolving batched requests.")
        ## one after the other, later requests may depend on earlier ones
        for request, record in zip(self._requests, records):
            log.debug(f"[{self.batch_id}] Resolving batched request {request.method} {request.url}.")
            if request.future.cancelled():
                continue
            try:
                result = await request.parser.parse(record.to_response())
            except Exception as err:
                request.future.set_exception(err)
            else:
                request.future.set_result(result)
