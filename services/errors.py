from __future__ import annotations


class EnrichmentError(Exception):
    """Base class for errors raised by the enrichment engine."""


class FormatError(EnrichmentError, ValueError):
    """No row in the input carries both mandatory header markers."""


class ColumnMappingError(EnrichmentError, ValueError):
    """A header row was found but a mandatory column could not be resolved."""

    def __init__(self, message: str, headers: list[str] | None = None) -> None:
        super().__init__(message)
        self.headers = list(headers or [])


class SourceUnavailable(EnrichmentError, RuntimeError):
    """The tabular source could not be fetched (bad status, empty body, network)."""


class MissingCredential(EnrichmentError, RuntimeError):
    """A lookup provider was invoked without a credential."""


class UnknownProvider(EnrichmentError, KeyError):
    pass


class RecordInProgress(EnrichmentError, RuntimeError):
    """A manual edit targeted a record that is part of an in-flight batch."""


class UnknownRecord(EnrichmentError, KeyError):
    """No record in the working set carries the requested id."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class ConfigurationError(EnrichmentError, ValueError):
    """Settings or session values cannot be used (empty key, unusable provider, no source)."""
