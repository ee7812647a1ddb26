"""Raw payload shapes returned by the record clients.

Two shapes cover every source: line-oriented flat-record text (GenBank)
and ordered attribute lists (BioSample attributes, SRA RunInfo rows).
"""

import csv
import io
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, NamedTuple, Optional, Union

from Bio import SeqIO
from Bio.SeqRecord import SeqRecord

from accession_resolver.errors import ParseFailure

# RunInfo column -> schema-level name used for field lookup
RUNINFO_HARMONIZED_NAMES = {
    "BioSample": "biosample",
    "ScientificName": "organism",
    "Platform": "platform",
    "LibraryStrategy": "library",
}


class SampleAttribute(NamedTuple):
    name: str
    harmonized_name: Optional[str]
    value: str


@dataclass(frozen=True)
class FlatRecord:
    text: str

    def parse(self) -> SeqRecord:
        """Parse the GenBank text; a malformed record raises ParseFailure."""
        return _read_genbank(self.text)


@dataclass(frozen=True)
class AttributeList:
    attributes: List[SampleAttribute] = field(default_factory=list)
    accession: Optional[str] = None

    def __len__(self) -> int:
        return len(self.attributes)

    @classmethod
    def from_biosample_xml(cls, xml_text: str) -> "AttributeList":
        """Build from an efetch ``db=biosample`` XML document (first BioSample only)."""
        try:
            root = ET.fromstring(xml_text.encode("utf-8"))
        except ET.ParseError as exc:
            raise ParseFailure(f"Malformed BioSample XML: {exc}") from exc

        sample = root if root.tag == "BioSample" else root.find("BioSample")
        if sample is None:
            return cls([])

        attributes = []
        for node in sample.iter("Attribute"):
            name = (node.get("attribute_name") or "").strip()
            harmonized = (node.get("harmonized_name") or "").strip() or None
            value = (node.text or "").strip()
            if name or harmonized:
                attributes.append(SampleAttribute(name, harmonized, value))
        return cls(attributes, accession=sample.get("accession"))

    @classmethod
    def from_runinfo(cls, csv_text: str, run_accession: str = "") -> "AttributeList":
        """Build from RunInfo CSV, preferring the row for ``run_accession``.

        Falls back to the last data row when no row names the run.
        """
        rows = [
            row for row in csv.DictReader(io.StringIO(csv_text.strip()))
            if row.get("Run") and row.get("Run") != "Run"
        ]
        if not rows:
            return cls([])
        chosen = rows[-1]
        for row in rows:
            if row["Run"].strip().upper() == run_accession.strip().upper():
                chosen = row
                break
        return cls(_row_attributes(chosen), accession=chosen["Run"].strip())


def _row_attributes(row: Dict[str, str]) -> List[SampleAttribute]:
    return [
        SampleAttribute(column, RUNINFO_HARMONIZED_NAMES.get(column), (value or "").strip())
        for column, value in row.items()
        if column is not None
    ]


@lru_cache(maxsize=16)
def _read_genbank(text: str) -> SeqRecord:
    # extract() asks for one field at a time, so each record is parsed once
    try:
        return SeqIO.read(io.StringIO(text), "genbank")
    except ValueError as exc:
        raise ParseFailure(f"Malformed GenBank record: {exc}") from exc


RawPayload = Union[FlatRecord, AttributeList]
