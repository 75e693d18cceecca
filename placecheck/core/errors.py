"""
Error types raised while validating discovered places.

Every error here is caught at the single-item boundary and converted into a
tagged result or an annotation on the itinerary item.
"""

from typing import Any


class PlaceValidationError(Exception):
    """Base class for place validation failures."""


class NotFoundError(PlaceValidationError):
    """The place search returned zero candidates."""


class AmbiguousMatchError(PlaceValidationError):
    """The best candidate scored below the match threshold."""

    def __init__(self, message: str, candidates: list[Any], confidence: float):
        super().__init__(message)
        self.candidates = candidates
        self.confidence = confidence


class DetailFetchError(PlaceValidationError):
    """A candidate was selected but its details could not be fetched."""


class TransportError(PlaceValidationError):
    """The places provider was unreachable or returned an error status."""


class ParseError(PlaceValidationError):
    """Opening-hours text could not be parsed."""
