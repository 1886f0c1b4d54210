#!/usr/bin/env python
"""
The ``SPHttpClient`` class handles the basic communication with a
SharePoint server: default headers, request digests for state
changing requests and retrying of throttled requests.  The network
call itself is done by the fetch client configured in the runtime
configuration (niquests by default).
"""

import asyncio
from typing import Any
from typing import Dict
from typing import Optional

from niquests.structures import CaseInsensitiveDict

from spfluent.config import runtime_config
from spfluent.config import RuntimeConfig
from spfluent.digest import DigestCache
from spfluent.digest import DigestStore
from spfluent.lib import error
from spfluent.lib.error import log
from spfluent.lib.url import is_url_absolute
from spfluent.protocol.constants import CLIENT_TAG
from spfluent.protocol.constants import DEFAULT_ACCEPT
from spfluent.protocol.constants import RETRY_STATUSES
from spfluent.protocol.constants import USER_AGENT
from spfluent.protocol.constants import VERBOSE_CONTENT_TYPE
from spfluent.protocol.types import RetryContext
from spfluent.protocol.types import SPResponse


class SPHttpClient:
    """
    Performs one logical request at a time.  Responses are returned
    whatever their status, except for 429 and 503 which are retried
    with exponential backoff.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        digest_store: Optional[DigestStore] = None,
        fetch_client: Any = None,
    ) -> None:
        self.config = config or runtime_config
        self._impl = fetch_client or self.config.fetch_client_factory()
        self._digest_cache = DigestCache(self, digest_store)

    def _build_headers(self, headers: Optional[Dict[str, str]]) -> CaseInsensitiveDict:
        combined = CaseInsensitiveDict()
        ## global headers first so they can be overwritten by the ones given to this call
        combined.update(self.config.headers)
        combined.update(headers or {})
        combined.setdefault("Accept", DEFAULT_ACCEPT)
        combined.setdefault("Content-Type", VERBOSE_CONTENT_TYPE)
        combined.setdefault("X-ClientService-ClientTag", CLIENT_TAG)
        combined.setdefault("User-Agent", USER_AGENT)
        return combined

    async def fetch(self, url: str, options: Optional[Dict[str, Any]] = None) -> SPResponse:
        options = dict(options or {})
        if not is_url_absolute(url):
            raise error.APIUrlException(
                f"Unable to determine API url, {url!r} is not absolute.  Configure a base url."
            )
        headers = self._build_headers(options.get("headers"))
        options["headers"] = headers

        method = options.get("method", "GET").upper()
        options["method"] = method
        ## a request digest or an authorization header makes a digest superfluous
        if method != "GET" and "X-RequestDigest" not in headers and "Authorization" not in headers:
            index = url.find("_api/")
            if index < 0:
                raise error.APIUrlException()
            headers["X-RequestDigest"] = await self._digest_cache.get_digest(url[:index])

        return await self.fetch_raw(url, options)

    async def fetch_raw(self, url: str, options: Optional[Dict[str, Any]] = None) -> SPResponse:
        options = dict(options or {})
        options["headers"] = CaseInsensitiveDict(options.get("headers") or {})
        ctx = RetryContext()

        while True:
            try:
                response = await self._impl.fetch(url, options)
            except Exception as err:
                ## fetch clients may raise instead of returning a failed response
                if getattr(err, "status", None) not in RETRY_STATUSES:
                    raise
                failure: Exception = err
            else:
                if response.status not in RETRY_STATUSES:
                    return response
                failure = error.HttpRequestError.from_response(response)

            delay = ctx.delay
            ctx.delay *= 2
            ctx.attempts += 1
            if ctx.retry_count <= ctx.attempts:
                log.warning(f"giving up on {url} after {ctx.attempts} attempts: {failure}")
                raise failure
            log.warning(
                f"request to {url} throttled ({getattr(failure, 'status', '')}), retrying in {delay} ms"
            )
            await asyncio.sleep(delay / 1000)

    async def get(self, url: str, options: Optional[Dict[str, Any]] = None) -> SPResponse:
        return await self.fetch(url, {**(options or {}), "method": "GET"})

    async def post(self, url: str, options: Optional[Dict[str, Any]] = None) -> SPResponse:
        return await self.fetch(url, {**(options or {}), "method": "POST"})

    async def patch(self, url: str, options: Optional[Dict[str, Any]] = None) -> SPResponse:
        return await self.fetch(url, {**(options or {}), "method": "PATCH"})

    async def delete(self, url: str, options: Optional[Dict[str, Any]] = None) -> SPResponse:
        return await self.fetch(url, {**(options or {}), "method": "DELETE"})
