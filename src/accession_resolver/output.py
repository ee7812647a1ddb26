"""Write MetadataRecords as a TSV table."""

import csv
from typing import TextIO

from accession_resolver.models import OUTPUT_COLUMNS, MetadataRecord


class TsvWriter:
    """Streams rows so a partial run still leaves every finished row on disk.

    Values are written as-is, without CSV quoting, so a literal ``"`` in a
    GenBank qualifier stays a single ``"``.
    """

    def __init__(self, fh: TextIO):
        self._fh = fh
        self._writer = csv.DictWriter(
            fh, fieldnames=OUTPUT_COLUMNS, delimiter="\t",
            extrasaction="ignore", lineterminator="\n",
            quoting=csv.QUOTE_NONE, quotechar=None, escapechar="\\",
        )
        self._writer.writeheader()

    def write(self, record: MetadataRecord) -> None:
        self._writer.writerow(record.to_dict())
        self._fh.flush()
