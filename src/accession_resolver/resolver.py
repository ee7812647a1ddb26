"""Resolve one accession into a MetadataRecord by merging several lookup methods.

Methods run in fixed precedence order and each one only fills fields that
are still unresolved:

1. PrimaryFetch: GenBank flat file (NT) or SRA RunInfo row (SRA).
2. LinkResolution: find the linked BioSample, if sample-level fields are
   still missing.
3. SampleAttributeFetch: BioSample attributes for the linked sample.

A method that fails (not found, or retries exhausted) leaves the record
untouched and resolution moves on, so every accession yields a record.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from accession_resolver.clients.base import RecordClient
from accession_resolver.config import ResolverConfig
from accession_resolver.coordinates import format_coordinates, parse_coordinates
from accession_resolver.errors import ExhaustedError, NotFound
from accession_resolver.extract import extract
from accession_resolver.models import (
    COORDINATES,
    Accession,
    Failed,
    MetadataRecord,
    RecordBuilder,
    Resolved,
    ResolutionOutcome,
    SourceKind,
)
from accession_resolver.payloads import AttributeList, RawPayload
from accession_resolver.retry import RetryExecutor, RetryPolicy

logger = logging.getLogger(__name__)

PRIMARY_FETCH = "PrimaryFetch"
LINK_RESOLUTION = "LinkResolution"
SAMPLE_ATTRIBUTE_FETCH = "SampleAttributeFetch"

LAT_LON = "lat_lon"

# (record field, payload field) per payload source
FLAT_RECORD_FIELDS = [
    ("biosample_id", "biosample"),
    ("organism", "organism"),
    ("country", "country"),
    ("geo_location", "geo_loc_name"),
    ("isolate", "isolate"),
    ("strain", "strain"),
    ("cultivar", "cultivar"),
    ("collection_date", "collection_date"),
    ("host", "host"),
    ("tissue", "tissue_type"),
]

RUN_SUMMARY_FIELDS = [
    ("biosample_id", "biosample"),
    ("organism", "organism"),
    ("platform", "platform"),
    ("library", "library"),
]

SAMPLE_ATTRIBUTE_FIELDS = [
    ("geo_location", "geo_loc_name"),
    ("country", "country"),
    ("isolate", "isolate"),
    ("strain", "strain"),
    ("cultivar", "cultivar"),
    ("collection_date", "collection_date"),
    ("host", "host"),
    ("tissue", "tissue"),
]

# Fields a linked BioSample can supply; LinkResolution runs while any is missing.
SAMPLE_FIELDS = [COORDINATES, "biosample_id"] + [name for name, _ in SAMPLE_ATTRIBUTE_FIELDS]


@dataclass
class _Resolution:
    accession: Accession
    builder: RecordBuilder
    sample_id: Optional[str] = None

    @property
    def label(self) -> str:
        return self.accession.source.label


Step = Tuple[str, Callable[[_Resolution], bool], Callable[[_Resolution], None]]


class MetadataResolver:
    def __init__(
        self,
        client: RecordClient,
        executor: Optional[RetryExecutor] = None,
        longitude_first: bool = False,
    ):
        self._client = client
        self._executor = executor or RetryExecutor()
        self._longitude_first = longitude_first
        self._steps: List[Step] = [
            (PRIMARY_FETCH, lambda res: True, self._primary_fetch),
            (LINK_RESOLUTION, lambda res: bool(res.builder.missing(SAMPLE_FIELDS)),
             self._link_resolution),
            (SAMPLE_ATTRIBUTE_FETCH, lambda res: res.sample_id is not None,
             self._sample_attribute_fetch),
        ]

    @classmethod
    def from_config(
        cls,
        config: ResolverConfig,
        client: RecordClient,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "MetadataResolver":
        executor = RetryExecutor(RetryPolicy.from_config(config), sleep=sleep)
        return cls(client, executor, longitude_first=config.longitude_first)

    def resolve(self, accession: Accession) -> MetadataRecord:
        """Resolve one accession. Never raises; failures leave fields as N/A."""
        return self.resolve_outcome(accession).to_record()

    def resolve_outcome(self, accession: Accession) -> ResolutionOutcome:
        resolution = _Resolution(accession, RecordBuilder(accession))
        try:
            for name, applies, action in self._steps:
                if applies(resolution):
                    action(resolution)
                else:
                    logger.debug("  [%s] Skipping %s", resolution.label, name)
        except Exception as exc:
            logger.warning("Resolution of %s failed", accession, exc_info=True)
            return Failed(accession, f"{type(exc).__name__}: {exc}")

        record = resolution.builder.build()
        for field_name, method in record.provenance.items():
            logger.debug("    %s <- %s", field_name, method)
        return Resolved(record)

    # --- steps ---

    def _primary_fetch(self, res: _Resolution) -> None:
        if res.accession.source is SourceKind.RUN:
            logger.info("  [%s] Fetching run information...", res.label)
            description = f"RunInfo for {res.accession}"
        else:
            logger.info("  [%s] Fetching GenBank record...", res.label)
            description = f"GenBank record for {res.accession}"

        payload = self._call(description, self._client.fetch_primary_record, res.accession)
        if payload is None:
            return
        fields = RUN_SUMMARY_FIELDS if isinstance(payload, AttributeList) else FLAT_RECORD_FIELDS
        self._apply(res, payload, fields, PRIMARY_FETCH)

    def _link_resolution(self, res: _Resolution) -> None:
        named = res.builder.get("biosample_id")
        if named:
            logger.info("  [%s] Using BioSample %s from the primary record", res.label, named)
            res.sample_id = named
            return

        logger.info("  [%s] Linking to BioSample...", res.label)
        sample_id = self._call(
            f"BioSample link for {res.accession}",
            self._client.fetch_linked_sample,
            res.accession,
        )
        if sample_id:
            logger.info("    BioSample found: %s", sample_id)
            res.sample_id = sample_id
            res.builder.fill("biosample_id", sample_id, LINK_RESOLUTION)

    def _sample_attribute_fetch(self, res: _Resolution) -> None:
        logger.info("  [%s] Fetching BioSample: %s", res.label, res.sample_id)
        payload = self._call(
            f"BioSample {res.sample_id}",
            self._client.fetch_sample_attributes,
            res.sample_id,
        )
        if payload is not None:
            self._apply(res, payload, SAMPLE_ATTRIBUTE_FIELDS, SAMPLE_ATTRIBUTE_FETCH)

    # --- helpers ---

    def _call(self, description: str, operation: Callable, *args):
        try:
            return self._executor.execute(operation, *args, description=description)
        except NotFound as exc:
            logger.info("    %s: not found (%s)", description, exc)
        except ExhaustedError as exc:
            logger.info("    %s: giving up (%s)", description, exc.last_error)
        return None

    def _apply(
        self,
        res: _Resolution,
        payload: RawPayload,
        fields: List[Tuple[str, str]],
        method: str,
    ) -> None:
        for record_field, payload_field in fields:
            res.builder.fill(record_field, extract(payload, payload_field), method)

        raw = extract(payload, LAT_LON)
        if raw is None:
            return
        pair = parse_coordinates(raw, longitude_first=self._longitude_first)
        if pair is None:
            logger.info("    [%s] Unparseable lat_lon %r", method, raw)
        elif res.builder.fill(COORDINATES, pair, method):
            logger.info("    [%s] Coordinates: %s", method, format_coordinates(pair, ", "))
