"""LogicMonitor REST API client package.

Provides a synchronous client that signs requests, routes them to the right
API version, pages through collections and rides out rate limits. Items are
returned as plain dictionaries with minimal processing.

Exports:
    LMApiClient: Per-tenant client facade.
    ApiResult: Value-or-error result of every client operation.
    Raw, AttrMap, Triples: Filter expression shapes.
    resolve_version: Path to API version routing.
    DEFAULT_VERSION: Version used for paths without a routing rule.
"""

from .client import LMApiClient
from .filters import AttrMap, Raw, Triples, encode_filter
from .types import ApiResult, RawResponse, Request
from .versions import DEFAULT_VERSION, resolve_version

__all__ = [
    "DEFAULT_VERSION",
    "ApiResult",
    "AttrMap",
    "LMApiClient",
    "Raw",
    "RawResponse",
    "Request",
    "Triples",
    "encode_filter",
    "resolve_version",
]
