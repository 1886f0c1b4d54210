"""
Abstract I/O protocol definition.

This module defines the interface that all fetch clients must follow.
"""

from typing import Any
from typing import Dict
from typing import Protocol
from typing import runtime_checkable

from spfluent.protocol.types import SPResponse


@runtime_checkable
class FetchClient(Protocol):
    """
    Protocol defining the network call underneath SPHttpClient.

    Implementations send exactly one request and give back the
    response, whatever the status.  Retrying, digests and default
    headers are handled above this layer.
    """

    async def fetch(self, url: str, options: Dict[str, Any]) -> SPResponse:
        """
        Execute a request and return the response.

        Args:
            url: Absolute url
            options: ``method``, ``headers`` and ``body``

        Returns:
            SPResponse with status, headers, and body
        """
        ...
