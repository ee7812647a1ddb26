"""Abstract base class for remote record clients."""

from abc import ABC, abstractmethod

from accession_resolver.models import Accession, SourceKind
from accession_resolver.payloads import AttributeList, FlatRecord, RawPayload


class RecordClient(ABC):
    """Fetch and link operations against external record services.

    Every operation is blocking and idempotent, and either returns a payload
    or raises NotFound (terminal) or TransientError (safe to retry).
    """

    def fetch_primary_record(self, accession: Accession) -> RawPayload:
        """Main document for an accession: GenBank text or the SRA run summary."""
        if accession.source is SourceKind.RUN:
            return self.fetch_run_summary(accession)
        return self.fetch_nucleotide_record(accession)

    @abstractmethod
    def fetch_nucleotide_record(self, accession: Accession) -> FlatRecord:
        ...

    @abstractmethod
    def fetch_run_summary(self, accession: Accession) -> AttributeList:
        ...

    @abstractmethod
    def fetch_linked_sample(self, accession: Accession) -> str:
        """Return the BioSample accession linked to ``accession``."""
        ...

    @abstractmethod
    def fetch_sample_attributes(self, sample_id: str) -> AttributeList:
        ...
