"""
Sans-I/O SharePoint protocol implementation.

This package provides protocol-level operations without any I/O.
It builds batch bodies and parses responses as pure data
transformations.

The protocol layer is organized into:
- types: Core data structures (SPResponse, BatchRequest, records)
- constants: Header values shared by the transport and the batch
- multipart: Build ``$batch`` bodies, split ``$batch`` responses
- odata: Result parsers and OData dialect detection
"""

from .multipart import (
    build_batch_body,
    parse_batch_response,
)
from .odata import (
    BytesParser,
    JSONParser,
    MinimalEntity,
    NoMetadataEntity,
    ODataDefaultParser,
    ODataEntityArrayParser,
    ODataEntityParser,
    ODataParser,
    TextParser,
    VerboseEntity,
    detect_dialect,
    extract_odata_id,
    get_entity_url,
)
from .types import (
    BatchRequest,
    BatchState,
    CachedDigest,
    ParsedMultipartRecord,
    RequestContext,
    RetryContext,
    SPResponse,
)

__all__ = [
    # Types
    "BatchRequest",
    "BatchState",
    "CachedDigest",
    "ParsedMultipartRecord",
    "RequestContext",
    "RetryContext",
    "SPResponse",
    # Multipart
    "build_batch_body",
    "parse_batch_response",
    # Parsers
    "BytesParser",
    "JSONParser",
    "ODataDefaultParser",
    "ODataEntityArrayParser",
    "ODataEntityParser",
    "ODataParser",
    "TextParser",
    # Dialects
    "MinimalEntity",
    "NoMetadataEntity",
    "VerboseEntity",
    "detect_dialect",
    "extract_odata_id",
    "get_entity_url",
]
