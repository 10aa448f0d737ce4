"""VPN Gate Directory - cached, queryable VPN Gate relay list with OpenVPN profile export."""

from .config import DirectorySettings
from .errors import (
    DirectoryError,
    InvalidProfilePayload,
    InvalidRequestParameter,
    MalformedUpstreamDocument,
    RegistryUnavailable,
    UpstreamUnavailable,
)
from .models import (
    CacheMeta,
    DirectoryResponse,
    LogPolicy,
    QualityTier,
    QueryRequest,
    ServerRecord,
    SortKey,
)
from .query import query_records
from .registry import RegistryCache
from .service import DirectoryService

__version__ = "0.1.0"

__all__ = [
    "CacheMeta",
    "DirectoryError",
    "DirectoryResponse",
    "DirectoryService",
    "DirectorySettings",
    "InvalidProfilePayload",
    "InvalidRequestParameter",
    "LogPolicy",
    "MalformedUpstreamDocument",
    "QualityTier",
    "QueryRequest",
    "RegistryCache",
    "RegistryUnavailable",
    "ServerRecord",
    "SortKey",
    "UpstreamUnavailable",
    "query_records",
]
