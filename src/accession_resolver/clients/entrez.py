"""Fetch nucleotide, SRA run and BioSample records from NCBI E-utilities."""

import logging
import time
from typing import Callable, List, Optional

import requests

from accession_resolver.clients.base import RecordClient
from accession_resolver.config import ResolverConfig
from accession_resolver.errors import NotFound, ParseFailure, TransientError
from accession_resolver.models import Accession, SourceKind
from accession_resolver.payloads import AttributeList, FlatRecord
from accession_resolver.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

EUTILS_BASE = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
ESEARCH_URL = f"{EUTILS_BASE}/esearch.fcgi"
EFETCH_URL = f"{EUTILS_BASE}/efetch.fcgi"
ELINK_URL = f"{EUTILS_BASE}/elink.fcgi"
ESUMMARY_URL = f"{EUTILS_BASE}/esummary.fcgi"

TOOL_NAME = "accession-resolver"
USER_AGENT = "accession-resolver/0.1.0"

_ENTREZ_DB = {
    SourceKind.NUCLEOTIDE: "nuccore",
    SourceKind.RUN: "sra",
}


class EntrezClient(RecordClient):
    """E-utilities client.

    ``timeout`` bounds a whole ``fetch_*`` call, including every esearch,
    elink and esummary request it chains, not each request on its own.
    """

    def __init__(
        self,
        session: requests.Session,
        rate_limiter: RateLimiter,
        timeout: float = 17.0,
        api_key: Optional[str] = None,
        email: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session = session
        self._limiter = rate_limiter
        self._timeout = timeout
        self._api_key = api_key
        self._email = email
        self._clock = clock

    @classmethod
    def from_config(
        cls, config: ResolverConfig, session: Optional[requests.Session] = None
    ) -> "EntrezClient":
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": USER_AGENT})
        return cls(
            session,
            RateLimiter(config.request_rate),
            timeout=config.per_call_timeout,
            api_key=config.ncbi_api_key,
            email=config.email,
        )

    # --- RecordClient operations ---

    def fetch_nucleotide_record(self, accession: Accession) -> FlatRecord:
        deadline = self._deadline()
        params = {"db": "nuccore", "id": accession.identifier, "rettype": "gb", "retmode": "text"}
        text = self._http_get(EFETCH_URL, params, deadline).text
        if not text.lstrip().startswith("LOCUS"):
            raise NotFound(f"No GenBank record for {accession}")
        return FlatRecord(text)

    def fetch_run_summary(self, accession: Accession) -> AttributeList:
        deadline = self._deadline()
        uid = self._search_uid("sra", accession.identifier, deadline)
        params = {"db": "sra", "id": uid, "rettype": "runinfo", "retmode": "text"}
        text = self._http_get(EFETCH_URL, params, deadline).text
        payload = AttributeList.from_runinfo(text, accession.identifier)
        if not payload.attributes:
            raise NotFound(f"No RunInfo rows for {accession}")
        return payload

    def fetch_linked_sample(self, accession: Accession) -> str:
        deadline = self._deadline()
        db = _ENTREZ_DB[accession.source]
        uid = self._search_uid(db, accession.identifier, deadline)
        sample_uids = self._link_biosample(db, uid, deadline)
        if not sample_uids:
            raise NotFound(f"No BioSample linked to {accession}")
        return self._biosample_accession(sample_uids[0], deadline)

    def fetch_sample_attributes(self, sample_id: str) -> AttributeList:
        deadline = self._deadline()
        params = {"db": "biosample", "id": sample_id, "retmode": "xml"}
        text = self._http_get(EFETCH_URL, params, deadline).text
        try:
            payload = AttributeList.from_biosample_xml(text)
        except ParseFailure as exc:
            # A cut-off download is the usual cause; worth another attempt.
            raise TransientError(f"BioSample {sample_id}: {exc}") from exc
        if payload.accession is None and not payload.attributes:
            raise NotFound(f"No BioSample record {sample_id}")
        return payload

    # --- E-utility helpers ---

    def _deadline(self) -> float:
        return self._clock() + self._timeout

    def _remaining(self, deadline: float, url: str) -> float:
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise TransientError(f"Timed out after {self._timeout}s: {url}")
        return remaining

    def _search_uid(self, db: str, term: str, deadline: float) -> str:
        params = {"db": db, "term": term, "retmode": "json", "retmax": "1"}
        data = self._get_json(ESEARCH_URL, params, deadline)
        ids = data.get("esearchresult", {}).get("idlist", [])
        if not ids:
            raise NotFound(f"{term} not found in {db}")
        return str(ids[0])

    def _link_biosample(self, db: str, uid: str, deadline: float) -> List[str]:
        params = {"dbfrom": db, "db": "biosample", "id": uid, "retmode": "json"}
        data = self._get_json(ELINK_URL, params, deadline)
        links: List[str] = []
        for linkset in data.get("linksets", []):
            for linksetdb in linkset.get("linksetdbs", []):
                if linksetdb.get("linkname") == f"{db}_biosample":
                    links.extend(str(lid) for lid in linksetdb.get("links", []))
        return links

    def _biosample_accession(self, uid: str, deadline: float) -> str:
        params = {"db": "biosample", "id": uid, "retmode": "json"}
        data = self._get_json(ESUMMARY_URL, params, deadline)
        doc = data.get("result", {}).get(uid) or {}
        accession = doc.get("accession", "")
        if not accession:
            raise NotFound(f"BioSample UID {uid} has no accession")
        return accession

    def _get_json(self, url: str, params: dict, deadline: float) -> dict:
        resp = self._http_get(url, params, deadline)
        try:
            data = resp.json()
        except ValueError as exc:
            raise TransientError(f"Invalid JSON from {url}") from exc
        if not isinstance(data, dict):
            raise NotFound(f"Unexpected response from {url}")
        error = data.get("error") or data.get("esearchresult", {}).get("ERROR")
        if error:
            if "rate limit" in str(error).lower():
                raise TransientError(f"Rate limited: {error}")
            raise NotFound(str(error))
        return data

    def _http_get(self, url: str, params: dict, deadline: float) -> requests.Response:
        """GET with the shared rate limit, translating failures into NotFound/TransientError.

        Each request may only use what is left of the calling operation's budget.
        """
        params = dict(params, tool=TOOL_NAME)
        if self._api_key:
            params["api_key"] = self._api_key
        if self._email:
            params["email"] = self._email

        self._limiter.acquire()
        remaining = self._remaining(deadline, url)
        try:
            resp = self._session.get(url, params=params, timeout=remaining)
        except requests.Timeout as exc:
            raise TransientError(f"Timed out after {self._timeout}s: {url}") from exc
        except requests.ConnectionError as exc:
            raise TransientError(f"Connection failed: {url}") from exc
        # requests' timeout only bounds connect and each read
        self._remaining(deadline, url)

        status = resp.status_code
        if status == 429 or status >= 500:
            raise TransientError(f"HTTP {status} from {url}")
        if status >= 400:
            logger.debug("HTTP %d from %s: %s", status, url, resp.text[:200])
            raise NotFound(f"HTTP {status} from {url}")
        return resp
