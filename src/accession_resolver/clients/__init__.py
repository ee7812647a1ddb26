"""Remote record clients."""

from accession_resolver.clients.base import RecordClient
from accession_resolver.clients.entrez import EntrezClient

__all__ = ["RecordClient", "EntrezClient"]
