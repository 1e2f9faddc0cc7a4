"""
Exception hierarchy for the scanner.

Scorer errors never reach the user as failures: the scan orchestrator
catches every RemoteScorerError and substitutes the mock score.
"""


class ScannerError(Exception):
    """Base exception for all scanner errors."""

    pass


class InputTooShort(ScannerError):
    """Input text is below the minimum length for a reliable scan."""

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Text too short for reliable analysis ({length} < {minimum} characters)"
        )


class ScanInProgress(ScannerError):
    """A scan is already running on this orchestrator."""

    pass


class RemoteScorerError(ScannerError):
    """Base class for remote scoring failures."""

    pass


class RemoteScorerTransportError(RemoteScorerError):
    """Network failure or non-success HTTP status from the scoring API."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteScorerParseError(RemoteScorerError):
    """Response body was malformed or missing expected fields."""

    pass


class ModelLoadingTransient(RemoteScorerError):
    """Classifier model is still loading; the request may be retried later."""

    pass


class CatalogFetchError(ScannerError):
    """Model catalog could not be fetched or parsed."""

    pass


class PersistenceError(ScannerError):
    """Local store could not read or write a value."""

    pass
