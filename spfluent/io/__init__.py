"""
I/O layer for the SharePoint client.

The I/O layer is intentionally thin - it only handles HTTP transport.
Retrying, digests and batching live in spfluent.http and
spfluent.batch, protocol logic in spfluent.protocol.

Example:
    from spfluent import setup
    from spfluent.io import NiquestsFetchClient

    client = NiquestsFetchClient(auth=my_auth)
    setup(fetch_client_factory=lambda: client)
"""

from .async_ import NiquestsFetchClient
from .base import FetchClient

__all__ = [
    "FetchClient",
    "NiquestsFetchClient",
]
