"""Resolver configuration."""

import os
from dataclasses import dataclass
from typing import Optional

from accession_resolver.rate_limiter import NCBI_RATE, NCBI_RATE_WITH_KEY


@dataclass
class ResolverConfig:
    max_retry_attempts: int = 5
    retry_base_delay: float = 3.0  # seconds; doubled on every retry
    retry_jitter: float = 2.0  # upper bound of the uniform jitter added to each wait
    per_call_timeout: float = 17.0
    inter_accession_delay: float = 0.5
    longitude_first: bool = False
    ncbi_api_key: Optional[str] = None
    email: Optional[str] = None
    requests_per_second: Optional[float] = None

    def __post_init__(self):
        if self.max_retry_attempts < 1:
            raise ValueError("max_retry_attempts must be at least 1")
        for name in ("retry_base_delay", "retry_jitter", "inter_accession_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.per_call_timeout <= 0:
            raise ValueError("per_call_timeout must be positive")

    @property
    def request_rate(self) -> float:
        if self.requests_per_second:
            return self.requests_per_second
        return NCBI_RATE_WITH_KEY if self.ncbi_api_key else NCBI_RATE

    @classmethod
    def from_env(cls, **overrides) -> "ResolverConfig":
        """Defaults plus NCBI_API_KEY / NCBI_EMAIL from the environment.

        Keyword overrides whose value is None are ignored, so CLI flags that
        were not given fall through to the defaults.
        """
        values = {
            "ncbi_api_key": os.environ.get("NCBI_API_KEY") or None,
            "email": os.environ.get("NCBI_EMAIL") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
