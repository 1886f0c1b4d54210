"""
Request digest handling.  SharePoint wants an ``X-RequestDigest``
header on every state changing request which is not authorized by
other means.  Digests are fetched from ``_api/contextinfo`` and cached
per site collection url until they expire.
"""

from datetime import datetime
from datetime import timedelta
from typing import Dict
from typing import Optional
from typing import TYPE_CHECKING

from niquests.structures import CaseInsensitiveDict

from spfluent.lib.error import log
from spfluent.lib.url import combine_paths
from spfluent.protocol.constants import VERBOSE_ACCEPT
from spfluent.protocol.constants import VERBOSE_CONTENT_TYPE
from spfluent.protocol.odata import ODataDefaultParser
from spfluent.protocol.types import CachedDigest

if TYPE_CHECKING:
    from spfluent.http import SPHttpClient


class DigestStore:
    """Digests keyed by the exact site collection url string."""

    def __init__(self) -> None:
        self._digests: Dict[str, CachedDigest] = {}

    def get(self, web_url: str) -> Optional[CachedDigest]:
        return self._digests.get(web_url)

    def add(self, web_url: str, digest: CachedDigest) -> None:
        self._digests[web_url] = digest

    def clear(self) -> None:
        self._digests.clear()

    def __len__(self) -> int:
        return len(self._digests)


## shared by all SPHttpClient instances unless they get their own store
default_digest_store = DigestStore()


class DigestCache:
    def __init__(self, http_client: "SPHttpClient", store: Optional[DigestStore] = None) -> None:
        self._http_client = http_client
        self._digests = default_digest_store if store is None else store

    async def get_digest(self, web_url: str) -> str:
        cached = self._digests.get(web_url)
        if cached is not None and cached.is_valid():
            return cached.value

        url = combine_paths(web_url, "/_api/contextinfo")
        headers = CaseInsensitiveDict(
            {
                "Accept": VERBOSE_ACCEPT,
                "Content-Type": VERBOSE_CONTENT_TYPE,
            }
        )
        ## configured headers only fill in, the response must be verbose
        for name, value in self._http_client.config.headers.items():
            headers.setdefault(name, value)
        log.debug(f"fetching request digest for {web_url}")
        response = await self._http_client.fetch_raw(
            url, {"method": "POST", "headers": headers}
        )
        data = (await ODataDefaultParser().parse(response))["GetContextWebInformation"]

        expiration = datetime.now() + timedelta(seconds=int(data["FormDigestTimeoutSeconds"]))
        digest = CachedDigest(data["FormDigestValue"], expiration)
        self._digests.add(web_url, digest)
        return digest.value

    def clear(self) -> None:
        self._digests.clear()
