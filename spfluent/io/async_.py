"""
Asynchronous I/O implementation using the niquests library.
"""

from typing import Any
from typing import Dict
from typing import Optional
from typing import Union

import niquests
from niquests import AsyncSession
from niquests.auth import AuthBase
from niquests.structures import CaseInsensitiveDict

from spfluent.lib.error import log
from spfluent.lib.python_utilities import to_wire
from spfluent.protocol.types import SPResponse


class NiquestsFetchClient:
    """
    Asynchronous fetch client using niquests.

    This is a thin wrapper that sends one request and returns an
    SPResponse.  When no session is given, a short lived session is
    opened per request.

    Example:
        async with NiquestsFetchClient(auth=my_auth) as client:
            response = await client.fetch(url, {"method": "GET", "headers": {}})
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        timeout: Optional[float] = None,
        verify: Union[bool, str] = True,
        auth: Optional[AuthBase] = None,
    ) -> None:
        """
        Args:
            session: Existing AsyncSession to use (one per request if None)
            timeout: Request timeout in seconds
            verify: Verify SSL certificates (bool or CA bundle path)
            auth: niquests auth object applied to every request
        """
        self.session = session
        self.timeout = timeout
        self.verify = verify
        self.auth = auth

    async def fetch(self, url: str, options: Dict[str, Any]) -> SPResponse:
        if self.session is not None:
            return await self._send(self.session, url, options)
        async with AsyncSession() as session:
            return await self._send(session, url, options)

    async def _send(self, session: AsyncSession, url: str, options: Dict[str, Any]) -> SPResponse:
        method = options.get("method", "GET").upper()
        headers = dict(options.get("headers") or {})
        log.debug(f"sending request - method={method}, url={url}, headers={headers}")
        r = await session.request(
            method,
            url,
            data=to_wire(options.get("body")),
            headers=headers,
            auth=self.auth,
            timeout=options.get("timeout", self.timeout),
            verify=self.verify,
        )
        log.debug(f"server responded with {r.status_code} {r.reason}")
        return SPResponse(
            status=r.status_code,
            headers=CaseInsensitiveDict(r.headers),
            body=r.content or b"",
            reason=r.reason or "",
            url=url,
        )

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "NiquestsFetchClient":
        if self.session is None:
            self.session = niquests.AsyncSession()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
