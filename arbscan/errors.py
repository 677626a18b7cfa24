from __future__ import annotations

from typing import Iterable, List, Optional


class ArbScanError(Exception):
    """Base class for every error the scanner reports to its caller."""

    exit_code = 1


class ConfigurationError(ArbScanError):
    exit_code = 3


class InvalidInputError(ArbScanError, ValueError):
    """A calculation received data it cannot work with (empty list, price <= 0)."""


class SourceFailure(ArbScanError):
    """A single quote source failed after the fetch wrapper gave up on it."""

    def __init__(self, source: str, cause: Optional[BaseException], message: str) -> None:
        super().__init__(message)
        self.source = source
        self.cause = cause


class ExchangeProtocolError(SourceFailure):
    def __init__(self, source: str, cause: Optional[BaseException]) -> None:
        super().__init__(source, cause, f"{source} API error: {cause}")


class ExchangeUnavailableError(SourceFailure):
    def __init__(self, source: str, cause: Optional[BaseException], attempts: int = 0) -> None:
        detail = f" after {attempts} attempts" if attempts else ""
        super().__init__(source, cause, f"{source} network error{detail}: {cause}")
        self.attempts = attempts


class AllSourcesUnavailableError(ArbScanError):
    exit_code = 4

    def __init__(self, failed_sources: Iterable[str]) -> None:
        self.failed_sources: List[str] = list(failed_sources)
        super().__init__(
            "All exchanges are unavailable. Failed exchanges: " + ", ".join(self.failed_sources)
        )


class NoCommonPairsError(ArbScanError):
    exit_code = 5

    def __init__(self, sources: Iterable[str]) -> None:
        self.sources: List[str] = list(sources)
        super().__init__("No common pairs found across exchanges: " + ", ".join(self.sources))


class PairNotFoundError(ArbScanError):
    exit_code = 5

    def __init__(self, pair: str, failed_sources: Iterable[str] = ()) -> None:
        self.pair = pair
        self.failed_sources: List[str] = list(failed_sources)
        message = f"Trading pair '{pair}' not found on any exchange"
        if self.failed_sources:
            message += ". Failed exchanges: " + ", ".join(self.failed_sources)
        super().__init__(message)


# Raised by adapters; the fetch wrapper decides whether to retry.


class SourceError(Exception):
    pass


class TransientSourceError(SourceError):
    pass


class PermanentSourceError(SourceError):
    pass
