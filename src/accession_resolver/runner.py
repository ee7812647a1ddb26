"""Resolve a list of accessions in order, one output record each."""

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from accession_resolver.errors import EmptyAccessionList
from accession_resolver.models import Accession, Failed, MetadataRecord, SourceKind
from accession_resolver.resolver import MetadataResolver

logger = logging.getLogger(__name__)

_SOURCE_TAGS = {
    "nt": SourceKind.NUCLEOTIDE,
    "sra": SourceKind.RUN,
}


def parse_accession_line(
    line: str, default_source: SourceKind = SourceKind.NUCLEOTIDE
) -> Optional[Accession]:
    """Parse one input line. Blank and ``#`` lines give None.

    A line is a bare identifier or one tagged ``sra:SRR123`` / ``nt:MN908947``.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    source = default_source
    tag, sep, rest = stripped.partition(":")
    if sep and tag.strip().lower() in _SOURCE_TAGS:
        source = _SOURCE_TAGS[tag.strip().lower()]
        stripped = rest.strip()
    identifier = "".join(stripped.split())
    if not identifier:
        return None
    return Accession(identifier, source)


def read_accessions(
    lines: Iterable[str], default_source: SourceKind = SourceKind.NUCLEOTIDE
) -> List[Accession]:
    accessions = []
    for line in lines:
        accession = parse_accession_line(line, default_source)
        if accession is not None:
            accessions.append(accession)
    return accessions


@dataclass
class BatchStats:
    processed: int = 0
    with_coordinates: int = 0
    failed: int = 0
    by_source: Counter = field(default_factory=Counter)

    @property
    def without_coordinates(self) -> int:
        return self.processed - self.with_coordinates

    @property
    def coordinate_rate(self) -> float:
        """Percentage of processed accessions that got coordinates."""
        if not self.processed:
            return 0.0
        return 100.0 * self.with_coordinates / self.processed

    def count(self, record: MetadataRecord) -> None:
        self.processed += 1
        self.by_source[record.source.label] += 1
        if record.has_coordinates:
            self.with_coordinates += 1


@dataclass
class BatchResult:
    records: List[MetadataRecord]
    stats: BatchStats


class BatchRunner:
    def __init__(
        self,
        resolver: MetadataResolver,
        inter_accession_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._resolver = resolver
        self._delay = inter_accession_delay
        self._sleep = sleep
        self.stats = BatchStats()

    def run(self, accessions: Sequence[Accession]) -> BatchResult:
        """Resolve every accession in input order."""
        records = list(self.iter_records(accessions))
        return BatchResult(records, self.stats)

    def iter_records(self, accessions: Sequence[Accession]) -> Iterator[MetadataRecord]:
        """Yield one record per accession as soon as it is resolved.

        Raises EmptyAccessionList immediately if there is nothing to do.
        """
        if not accessions:
            raise EmptyAccessionList("No accessions to resolve")
        self.stats = BatchStats()
        return self._iter(list(accessions))

    def _iter(self, accessions: List[Accession]) -> Iterator[MetadataRecord]:
        total = len(accessions)
        for index, accession in enumerate(accessions, start=1):
            logger.info("[%d/%d] Processing %s accession: %s",
                        index, total, accession.source.label, accession)
            outcome = self._resolver.resolve_outcome(accession)
            if isinstance(outcome, Failed):
                self.stats.failed += 1
                logger.warning("  Failed to extract metadata for %s (%s); writing N/A row",
                               accession, outcome.reason)
            record = outcome.to_record()
            self.stats.count(record)
            yield record
            # Rate limiting between accessions
            if self._delay:
                self._sleep(self._delay)
