"""Shared fixtures for accession-resolver tests."""

from typing import Dict, List

import pytest
import requests

from accession_resolver.clients.base import RecordClient
from accession_resolver.errors import NotFound
from accession_resolver.models import Accession
from accession_resolver.payloads import AttributeList, FlatRecord
from accession_resolver.rate_limiter import RateLimiter
from accession_resolver.retry import RetryExecutor, RetryPolicy


@pytest.fixture
def fast_limiter():
    """Rate limiter that never blocks (high rate)."""
    return RateLimiter(10_000)


@pytest.fixture
def session():
    return requests.Session()


@pytest.fixture
def sleeps():
    """Records requested sleeps instead of sleeping."""
    return []


@pytest.fixture
def executor(sleeps):
    return RetryExecutor(RetryPolicy(max_attempts=3, base_delay=3.0, jitter=0.0), sleep=sleeps.append)


class FakeClient(RecordClient):
    """In-memory RecordClient.

    Each mapping holds either the value to return or an exception (instance
    or list of outcomes consumed one per call) to raise.
    """

    def __init__(self, primary=None, links=None, samples=None):
        self.primary: Dict[str, object] = primary or {}
        self.links: Dict[str, object] = links or {}
        self.samples: Dict[str, object] = samples or {}
        self.calls: List[tuple] = []

    def _answer(self, table: Dict[str, object], key: str, op: str):
        self.calls.append((op, key))
        outcome = table.get(key, NotFound(f"{op}: {key}"))
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def fetch_nucleotide_record(self, accession: Accession) -> FlatRecord:
        return self._answer(self.primary, accession.identifier, "nucleotide")

    def fetch_run_summary(self, accession: Accession) -> AttributeList:
        return self._answer(self.primary, accession.identifier, "runinfo")

    def fetch_linked_sample(self, accession: Accession) -> str:
        return self._answer(self.links, accession.identifier, "link")

    def fetch_sample_attributes(self, sample_id: str) -> AttributeList:
        return self._answer(self.samples, sample_id, "biosample")

    def ops(self, op: str) -> List[str]:
        return [key for name, key in self.calls if name == op]


@pytest.fixture
def fake_client_cls():
    return FakeClient


# --- Mock payloads ---

@pytest.fixture
def genbank_with_coords():
    """GenBank flat file carrying lat_lon and a DBLINK BioSample."""
    return """\
LOCUS       MN908947                  60 bp    RNA     linear   VRL 18-MAR-2020
DEFINITION  Severe acute respiratory syndrome coronavirus 2 isolate Wuhan-Hu-1,
            complete genome.
ACCESSION   MN908947
VERSION     MN908947.3
DBLINK      BioProject: PRJNA603194
            BioSample: SAMN13922059
KEYWORDS    .
SOURCE      Severe acute respiratory syndrome coronavirus 2 (SARS-CoV-2)
  ORGANISM  Severe acute respiratory syndrome coronavirus 2
            Viruses; Riboviria; Orthornavirae; Pisuviricota; Pisoniviricetes;
            Nidovirales; Cornidovirineae; Coronaviridae; Orthocoronavirinae.
FEATURES             Location/Qualifiers
     source          1..60
                     /organism="Severe acute respiratory syndrome coronavirus 2"
                     /mol_type="genomic RNA"
                     /isolate="Wuhan-Hu-1"
                     /host="Homo sapiens"
                     /db_xref="taxon:2697049"
                     /country="China: Wuhan"
                     /collection_date="Dec-2019"
                     /lat_lon="30.59 N 114.30 E"
     gene            1..60
                     /gene="orf1ab"
ORIGIN
        1 attaaaggtt tataccttcc caggtaacaa accaaccaac tttcgatctc ttgtagatct
//
"""


@pytest.fixture
def genbank_without_coords():
    """GenBank flat file with a wrapped note, no lat_lon and no DBLINK."""
    return """\
LOCUS       OQ123456                  60 bp    DNA     linear   PLN 02-FEB-2023
DEFINITION  Oryza sativa cultivar IR64 internal transcribed spacer 1, partial
            sequence.
ACCESSION   OQ123456
VERSION     OQ123456.1
KEYWORDS    .
SOURCE      Oryza sativa (Asian cultivated rice)
  ORGANISM  Oryza sativa
            Eukaryota; Viridiplantae; Streptophyta; Embryophyta.
FEATURES             Location/Qualifiers
     source          1..60
                     /organism="Oryza sativa"
                     /mol_type="genomic DNA"
                     /cultivar="IR64"
                     /tissue_type="leaf"
                     /geo_loc_name="Philippines: Los Banos"
                     /collection_date="missing"
                     /note="collected from an experimental paddy next to the
                     irrigation canal"
ORIGIN
        1 tcgaaacctg caaagcagac cgcgaacatg ttaacaaaac caccggggct gggcgccaag
//
"""


QUALIFIER_INDENT = " " * 21


def make_genbank(qualifier_lines, biosample=None, accession="AB000001"):
    """Minimal GenBank record whose source feature carries ``qualifier_lines``."""
    lines = [
        f"LOCUS       {accession}                  20 bp    DNA     linear   PLN 01-JAN-2022",
        f"DEFINITION  Test record {accession}.",
        f"ACCESSION   {accession}",
        f"VERSION     {accession}.1",
    ]
    if biosample:
        lines.append(f"DBLINK      BioSample: {biosample}")
    lines += [
        "KEYWORDS    .",
        "SOURCE      Solanum tuberosum (potato)",
        "  ORGANISM  Solanum tuberosum",
        "            Eukaryota; Viridiplantae.",
        "FEATURES             Location/Qualifiers",
        "     source          1..20",
    ]
    lines += [QUALIFIER_INDENT + line for line in qualifier_lines]
    lines += [
        "ORIGIN",
        "        1 acgtacgtac gtacgtacgt",
        "//",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def genbank_factory():
    return make_genbank


@pytest.fixture
def biosample_xml():
    return """\
<?xml version="1.0" ?>
<BioSampleSet>
  <BioSample access="public" id="13922059" accession="SAMN13922059">
    <Description>
      <Title>Wuhan-Hu-1</Title>
      <Organism taxonomy_id="2697049" taxonomy_name="Severe acute respiratory syndrome coronavirus 2"/>
    </Description>
    <Attributes>
      <Attribute attribute_name="strain" harmonized_name="strain" display_name="strain">WH-Human 1</Attribute>
      <Attribute attribute_name="latitude and longitude" harmonized_name="lat_lon" display_name="latitude and longitude">12.5 S 45.25 W</Attribute>
      <Attribute attribute_name="lat_lon">99 N 99 E</Attribute>
      <Attribute attribute_name="geographic location" harmonized_name="geo_loc_name" display_name="geographic location">China: Wuhan</Attribute>
      <Attribute attribute_name="host" harmonized_name="host" display_name="host">Homo sapiens</Attribute>
      <Attribute attribute_name="collection_date" harmonized_name="collection_date" display_name="collection date">2019-12-26</Attribute>
      <Attribute attribute_name="tissue">lung</Attribute>
      <Attribute attribute_name="isolate" harmonized_name="isolate" display_name="isolate">missing</Attribute>
    </Attributes>
  </BioSample>
</BioSampleSet>
"""


@pytest.fixture
def runinfo_csv():
    header = (
        "Run,ReleaseDate,LoadDate,spots,bases,spots_with_mates,avgLength,size_MB,"
        "AssemblyName,download_path,Experiment,LibraryName,LibraryStrategy,"
        "LibrarySelection,LibrarySource,LibraryLayout,InsertSize,InsertDev,Platform,"
        "Model,SRAStudy,BioProject,Study_Pubmed_id,ProjectID,Sample,BioSample,"
        "SampleType,TaxID,ScientificName"
    )
    row = (
        "SRR11092057,2020-02-13,2020-02-13,1234,567890,1234,300,12,,"
        "https://sra-downloadb.be-md.ncbi.nlm.nih.gov/sos2/sra-pub-run-13/SRR11092057,"
        "SRX7730879,WH-1,RNA-Seq,RANDOM,METATRANSCRIPTOMIC,PAIRED,0,0,ILLUMINA,"
        "Illumina MiniSeq,SRP249613,PRJNA603194,,603194,SRS6007144,SAMN13922059,"
        "simple,2697049,Severe acute respiratory syndrome coronavirus 2"
    )
    return f"{header}\n{row}\n\n"


@pytest.fixture
def esearch_payload():
    return {"esearchresult": {"count": "1", "retmax": "1", "idlist": ["1798174254"]}}


@pytest.fixture
def elink_payload():
    return {
        "linksets": [
            {
                "dbfrom": "nuccore",
                "ids": ["1798174254"],
                "linksetdbs": [
                    {"dbto": "biosample", "linkname": "nuccore_biosample", "links": ["13922059"]}
                ],
            }
        ]
    }


@pytest.fixture
def biosample_esummary_payload():
    return {
        "result": {
            "uids": ["13922059"],
            "13922059": {"uid": "13922059", "accession": "SAMN13922059"},
        }
    }


@pytest.fixture
def flat_record(genbank_with_coords):
    return FlatRecord(genbank_with_coords)


@pytest.fixture
def sample_attributes(biosample_xml):
    return AttributeList.from_biosample_xml(biosample_xml)


@pytest.fixture
def run_summary(runinfo_csv):
    return AttributeList.from_runinfo(runinfo_csv, "SRR11092057")


