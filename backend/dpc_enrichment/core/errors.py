"""Error taxonomy for the enrichment pipeline.

Only ``FatalSetupFailure`` is allowed to escape a run. Everything else is
caught at the item boundary by the runner and surfaced as a counter plus a
status line.
"""


class EnrichmentError(Exception):
    """Base class for every pipeline error."""


class FetchFailure(EnrichmentError):
    """Network error, timeout, or non-success status from a source."""

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ParseFailure(EnrichmentError):
    """Source returned content in a shape we do not understand."""


class NoMatchFound(EnrichmentError):
    """No target row, or every location strategy came up empty."""


class ValidationRejection(NoMatchFound):
    """A resolved value failed a sanity filter (bad state, name-like city, MD ZIP)."""


class FatalSetupFailure(EnrichmentError):
    """Credentials or the primary source are unavailable before the loop starts."""
