"""
Outgroup sequence fetcher service.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path

from Bio import SeqIO
from Bio.SeqRecord import SeqRecord
from tqdm import tqdm

from .cache import SequenceCache
from .client import REPOSITORY_ERRORS, EntrezClient, SequenceRepositoryClient

logger = logging.getLogger(__name__)


@dataclass
class FetchReport:
    """Outcome of one outgroup fetch run."""

    fasta_path: Path | None = None
    fetched: list[str] = field(default_factory=list)
    cached: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def used_cache(self) -> bool:
        return bool(self.cached)


class OutgroupFetcher:
    """Fetches one marker-gene sequence per organism, backed by a local cache."""

    def __init__(
        self,
        cache_path: Path,
        client: SequenceRepositoryClient | None = None,
        email: str | None = None,
        api_key: str | None = None,
        delay: float = 0.4,
        use_cache: bool = True,
    ):
        """
        Initialize fetcher.

        Args:
            cache_path: FASTA file used as cache and as the fetch output
            client: Repository client (for dependency injection / testing)
            email: NCBI email (used if client not provided)
            api_key: NCBI API key (optional, increases rate limit)
            delay: Delay between requests
            use_cache: Whether to skip organisms already in the cache
        """
        self.client = client or EntrezClient(email=email, api_key=api_key, delay=delay)
        self.cache = SequenceCache(cache_path)
        self.use_cache = use_cache

    def fetch(self, organisms: Iterable[str], gene: str) -> FetchReport:
        """
        Fetch ``gene`` for each organism not already cached.

        Empty search results and missing summaries are skipped. Network
        failures (after retries) and NCBI error responses are recorded per
        organism and the cached records are kept.

        Returns:
            FetchReport; ``fasta_path`` is ``None`` when nothing is available
        """
        organisms = list(organisms)
        report = FetchReport()

        cached_records = self.cache.read() if self.use_cache else []
        cached_names = self.cache.cached_organisms() if self.use_cache else set()
        report.cached = [name for name in organisms if name in cached_names]
        pending = [name for name in organisms if name not in cached_names]
        if report.cached:
            logger.info(f"Cache contains {len(report.cached)}/{len(organisms)} organisms")

        new_records: list[SeqRecord] = []
        with tqdm(pending, desc=f"{gene} outgroups", unit="organism") as pbar:
            for organism in pbar:
                pbar.set_postfix_str(organism[:40])
                try:
                    record = self._fetch_organism(organism, gene)
                except REPOSITORY_ERRORS as e:
                    logger.warning(f"Fetching {organism} failed: {e}")
                    report.failed.append(organism)
                    continue

                if record is None:
                    report.skipped.append(organism)
                else:
                    new_records.append(record)
                    report.fetched.append(organism)

        if new_records:
            self.cache.write(cached_records + new_records)
        if self.cache.exists():
            report.fasta_path = self.cache.fasta_path

        logger.info(
            f"Outgroups: {len(report.fetched)} fetched, {len(report.cached)} cached, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        return report

    def _fetch_organism(self, organism: str, gene: str) -> SeqRecord | None:
        """Search, summarize and fetch the first matching record."""
        ids = self.client.search(f"{organism}[Organism] AND {gene}[Gene]", retmax=1)
        if not ids:
            logger.warning(f"No {gene} records found for {organism}")
            return None

        record_id = ids[0]
        summary_organism = self.client.summarize([record_id]).get(record_id)
        if not summary_organism:
            logger.warning(f"Summary for {record_id} lacks an organism name, using {organism}")
            summary_organism = organism

        records = list(SeqIO.parse(StringIO(self.client.fetch_fasta([record_id])), "fasta"))
        if not records:
            logger.warning(f"Empty FASTA returned for {record_id} ({organism})")
            return None

        record = records[0]
        # Normalise the header so tokens 2-3 are the binomial
        record.description = f"{record.id} {summary_organism} {gene}"
        return record


def fetch_outgroups(
    organisms: Iterable[str],
    gene: str,
    cache_path: Path,
    email: str | None = None,
    api_key: str | None = None,
) -> FetchReport:
    """Fetch outgroup sequences from NCBI into ``cache_path``."""
    fetcher = OutgroupFetcher(cache_path=cache_path, email=email, api_key=api_key)
    return fetcher.fetch(organisms, gene)
