"""
NCBI Entrez API client for nucleotide records.
"""

import logging
import time
from abc import ABC, abstractmethod
from functools import wraps
from urllib.error import HTTPError, URLError

from Bio import Entrez

logger = logging.getLogger(__name__)

NETWORK_ERRORS = (OSError, HTTPError, URLError)

# Entrez.read raises RuntimeError for NCBI error payloads and ValueError
# subclasses for malformed XML
REPOSITORY_ERRORS = (*NETWORK_ERRORS, RuntimeError, ValueError)


def retry_on_network_error(max_retries: int = 3, backoff: float = 2.0):
    """Retry on network errors with exponential backoff."""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except NETWORK_ERRORS as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        wait = backoff**attempt
                        logger.warning(f"Retry {attempt + 1}/{max_retries} in {wait}s: {e}")
                        time.sleep(wait)
            raise last_exception  # type: ignore

        return wrapper

    return decorator


class SequenceRepositoryClient(ABC):
    """Abstract interface for a remote sequence repository."""

    @abstractmethod
    def search(self, term: str, retmax: int = 1) -> list[str]:
        """Search for record ids."""
        pass

    @abstractmethod
    def summarize(self, ids: list[str]) -> dict[str, str | None]:
        """Organism name per record id (``None`` when the summary lacks one)."""
        pass

    @abstractmethod
    def fetch_fasta(self, ids: list[str]) -> str:
        """Fetch records as FASTA text."""
        pass


class EntrezClient(SequenceRepositoryClient):
    """Real NCBI Entrez client."""

    def __init__(self, email: str | None = None, api_key: str | None = None, delay: float = 0.4):
        """
        Initialize Entrez client.

        Args:
            email: Required by NCBI
            api_key: Optional, increases rate limit from 3/s to 10/s
            delay: Delay between requests (0.34s with key, 0.4s without)
        """
        if email:
            Entrez.email = email
        if api_key:
            Entrez.api_key = api_key

        self.delay = delay
        logger.info(f"EntrezClient initialized (delay={delay}s)")

    @retry_on_network_error(max_retries=3, backoff=2.0)
    def search(self, term: str, retmax: int = 1) -> list[str]:
        """Search NCBI nucleotide database."""
        handle = Entrez.esearch(db="nucleotide", term=term, retmax=retmax)
        record = Entrez.read(handle)
        handle.close()

        time.sleep(self.delay)
        return list(record.get("IdList", []))  # type: ignore

    @retry_on_network_error(max_retries=3, backoff=2.0)
    def summarize(self, ids: list[str]) -> dict[str, str | None]:
        """Look up the organism of each nucleotide record."""
        if not ids:
            return {}

        handle = Entrez.esummary(db="nucleotide", id=",".join(ids), version="2.0")
        records = Entrez.read(handle, validate=False)
        handle.close()
        time.sleep(self.delay)

        summaries: dict[str, str | None] = {record_id: None for record_id in ids}
        if not records or "DocumentSummarySet" not in records:  # type: ignore
            return summaries

        for doc_sum in records["DocumentSummarySet"]["DocumentSummary"]:  # type: ignore
            uid = str(getattr(doc_sum, "attributes", {}).get("uid", doc_sum.get("Gi", "")))
            organism = str(doc_sum.get("Organism", "")).strip()
            if uid in summaries:
                summaries[uid] = organism or None
        return summaries

    @retry_on_network_error(max_retries=3, backoff=2.0)
    def fetch_fasta(self, ids: list[str]) -> str:
        """Fetch nucleotide records as FASTA."""
        handle = Entrez.efetch(db="nucleotide", id=",".join(ids), rettype="fasta", retmode="text")
        data = handle.read()
        handle.close()

        time.sleep(self.delay)
        return data
