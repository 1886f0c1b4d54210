"""
The request pipeline takes a RequestContext and either registers it
with its batch or sends it through a fresh SPHttpClient, then applies
the context's parser to the response.
"""

import asyncio
from contextlib import nullcontext
from typing import Any
from typing import Awaitable
from typing import Callable

from spfluent.lib.error import log
from spfluent.protocol.types import RequestContext


def pipe(context: RequestContext) -> "asyncio.Future[Any]":
    """
    Dispatches the request.  Must be called from a running event loop;
    the returned future holds the parsed result.  Batched requests are
    registered synchronously, so they are part of the batch as soon as
    this returns.
    """
    with context.batch_dependency or nullcontext():
        for step in context.pipeline or ():
            step(context)

        log.debug(
            f"[{context.request_id}] Beginning {context.verb} request ({context.request_absolute_url})"
        )
        if context.is_batched:
            return context.batch.add(
                context.request_absolute_url,
                context.verb,
                context.options,
                context.parser,
                context.request_id,
            )
        return asyncio.ensure_future(send_request(context))


async def send_request(context: RequestContext) -> Any:
    client = context.client_factory()
    options = dict(context.options)
    options["method"] = context.verb
    response = await client.fetch(context.request_absolute_url, options)
    log.debug(f"[{context.request_id}] Completed request with status {response.status}")
    return await context.parser.parse(response)


async def _chain(awaitable: Awaitable[Any], callback: Callable[[Any], Any]) -> Any:
    return callback(await awaitable)


def then(awaitable: Awaitable[Any], callback: Callable[[Any], Any]) -> "asyncio.Future[Any]":
    """Returns a future holding ``callback`` applied to the result of ``awaitable``"""
    return asyncio.ensure_future(_chain(awaitable, callback))
