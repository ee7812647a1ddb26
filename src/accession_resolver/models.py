"""Normalized metadata record: the single contract between resolver and output."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Union

UNKNOWN = "N/A"

OUTPUT_COLUMNS = [
    "Accession",
    "Source",
    "BioSample",
    "Organism",
    "Country",
    "Geo_Location",
    "Latitude",
    "Longitude",
    "Isolate",
    "Strain",
    "Cultivar",
    "Collection_Date",
    "Host",
    "Tissue",
    "Platform",
    "Library",
]

# Text-valued record fields, in output order. Coordinates are held separately.
TEXT_FIELDS = [
    "biosample_id",
    "organism",
    "country",
    "geo_location",
    "isolate",
    "strain",
    "cultivar",
    "collection_date",
    "host",
    "tissue",
    "platform",
    "library",
]

COORDINATES = "coordinates"


class SourceKind(str, Enum):
    NUCLEOTIDE = "NT"
    RUN = "SRA"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class Accession:
    identifier: str
    source: SourceKind = SourceKind.NUCLEOTIDE

    def __str__(self) -> str:
        return self.identifier


class CoordinatePair(NamedTuple):
    latitude: float
    longitude: float


@dataclass(frozen=True)
class MetadataRecord:
    accession: str
    source: SourceKind
    biosample_id: str = UNKNOWN
    organism: str = UNKNOWN
    country: str = UNKNOWN
    geo_location: str = UNKNOWN
    coordinates: Optional[CoordinatePair] = None
    isolate: str = UNKNOWN
    strain: str = UNKNOWN
    cultivar: str = UNKNOWN
    collection_date: str = UNKNOWN
    host: str = UNKNOWN
    tissue: str = UNKNOWN
    platform: str = UNKNOWN
    library: str = UNKNOWN
    # field name -> method that supplied it; not part of the output
    provenance: Dict[str, str] = field(default_factory=dict, compare=False)

    @classmethod
    def unknown(cls, accession: Accession) -> "MetadataRecord":
        return cls(accession=accession.identifier, source=accession.source)

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None

    def to_dict(self) -> Dict[str, str]:
        """Return the output row keyed by OUTPUT_COLUMNS, unknowns rendered as N/A."""
        if self.coordinates is not None:
            latitude = f"{self.coordinates.latitude:.6f}"
            longitude = f"{self.coordinates.longitude:.6f}"
        else:
            latitude = longitude = UNKNOWN
        values = [
            self.accession,
            self.source.label,
            self.biosample_id,
            self.organism,
            self.country,
            self.geo_location,
            latitude,
            longitude,
            self.isolate,
            self.strain,
            self.cultivar,
            self.collection_date,
            self.host,
            self.tissue,
            self.platform,
            self.library,
        ]
        return dict(zip(OUTPUT_COLUMNS, values))


class RecordBuilder:
    """Per-accession accumulator.

    Starts with every field unknown. ``fill`` is first-writer-wins: once a
    method has set a field, later methods cannot replace it. ``build``
    freezes the accumulated values into a ``MetadataRecord``.
    """

    def __init__(self, accession: Accession):
        self.accession = accession
        self._values: Dict[str, str] = {}
        self._coordinates: Optional[CoordinatePair] = None
        self._provenance: Dict[str, str] = {}

    def is_resolved(self, name: str) -> bool:
        if name == COORDINATES:
            return self._coordinates is not None
        return name in self._values

    def missing(self, names: List[str]) -> List[str]:
        return [name for name in names if not self.is_resolved(name)]

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def fill(
        self,
        name: str,
        value: Union[str, CoordinatePair, None],
        method: str,
    ) -> bool:
        """Set ``name`` unless it is already resolved. Returns True if written."""
        if value is None or self.is_resolved(name):
            return False
        if name == COORDINATES:
            if not isinstance(value, CoordinatePair):
                raise TypeError(f"coordinates must be a CoordinatePair, got {value!r}")
            self._coordinates = value
        else:
            if name not in TEXT_FIELDS:
                raise KeyError(f"Unknown record field: {name}")
            text = str(value).strip()
            if not text or text == UNKNOWN:
                return False
            self._values[name] = text
        self._provenance[name] = method
        return True

    def build(self) -> MetadataRecord:
        return MetadataRecord(
            accession=self.accession.identifier,
            source=self.accession.source,
            coordinates=self._coordinates,
            provenance=dict(self._provenance),
            **self._values,
        )


@dataclass(frozen=True)
class Resolved:
    record: MetadataRecord

    def to_record(self) -> MetadataRecord:
        return self.record


@dataclass(frozen=True)
class Failed:
    accession: Accession
    reason: str

    def to_record(self) -> MetadataRecord:
        return MetadataRecord.unknown(self.accession)


ResolutionOutcome = Union[Resolved, Failed]
