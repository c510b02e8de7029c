"""NCBI infrastructure exports."""

from .cache import SequenceCache
from .client import (
    NETWORK_ERRORS,
    REPOSITORY_ERRORS,
    EntrezClient,
    SequenceRepositoryClient,
    retry_on_network_error,
)
from .fetcher import FetchReport, OutgroupFetcher, fetch_outgroups

__all__ = [
    "NETWORK_ERRORS",
    "REPOSITORY_ERRORS",
    "EntrezClient",
    "FetchReport",
    "OutgroupFetcher",
    "SequenceCache",
    "SequenceRepositoryClient",
    "fetch_outgroups",
    "retry_on_network_error",
]
