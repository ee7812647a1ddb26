"""Error taxonomy shared by the clients, the retry executor and the resolver."""

from typing import Optional


class ResolverError(Exception):
    """Base class for every error raised by accession-resolver."""


class NotFound(ResolverError):
    """The remote service has no such record or link. Never retried."""


class TransientError(ResolverError):
    """Timeout, dropped connection or throttling. Safe to retry."""


class ParseFailure(ResolverError):
    """A field marker was found but its value could not be extracted."""


class ExhaustedError(ResolverError):
    """Retries for one remote call ran out."""

    def __init__(
        self,
        description: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{description}: gave up after {attempts} attempt(s) ({last_error})"
        )


class EmptyAccessionList(ResolverError):
    """Raised before a batch starts when there is nothing to resolve."""
