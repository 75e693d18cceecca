from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

# =============================================================================
# Places Schemas
# =============================================================================


class Coordinates(BaseModel):
    lat: float
    lng: float


class DiscoveredPlace(BaseModel):
    """An unverified place suggested by an upstream content generator."""

    name: str
    address: str | None = None
    cuisine: str | None = None
    estimated_cost: str | float | None = None
    why_special: str | None = None
    uniqueness_score: float | None = Field(None, description="Discovery-time uniqueness (0-10)")
    description: str | None = None
    source: str | None = Field(None, description="Which generator produced the place")
    type: str | None = None


class CandidateEntity(BaseModel):
    """A real-world place returned by the search provider."""

    place_id: str
    name: str = ""
    formatted_address: str | None = None
    location: Coordinates | None = None
    rating: float | None = None
    user_ratings_total: int | None = None
    price_level: int | None = Field(None, description="Provider price level (0-4)")
    types: list[str] = Field(default_factory=list)
    business_status: str | None = None

    @classmethod
    def from_google(cls, raw: dict[str, Any]) -> "CandidateEntity":
        """Build a candidate from a Google Places text search result."""
        location = None
        geometry = raw.get("geometry")
        if geometry and geometry.get("location"):
            loc = geometry["location"]
            if loc.get("lat") is not None and loc.get("lng") is not None:
                location = Coordinates(lat=loc["lat"], lng=loc["lng"])

        return cls(
            place_id=raw.get("place_id", ""),
            name=raw.get("name") or "",
            formatted_address=raw.get("formatted_address"),
            location=location,
            rating=raw.get("rating"),
            user_ratings_total=raw.get("user_ratings_total"),
            price_level=raw.get("price_level"),
            types=raw.get("types", []),
            business_status=raw.get("business_status"),
        )


class MatchScore(BaseModel):
    name: float = 0.0
    address: float = 0.0
    city: float = 0.0
    type: float = 0.0
    status: float = 0.0
    total: float = 0.0


class Photo(BaseModel):
    reference: str
    width: int | None = None
    height: int | None = None
    url: str
    attributions: list[str] = Field(default_factory=list)


class Review(BaseModel):
    author: str | None = None
    rating: float | None = None
    text: str | None = None
    relative_time: str | None = None


class OpeningHours(BaseModel):
    weekday_text: list[str] = Field(
        default_factory=list, description="Seven day schedules, index 0 = Sunday"
    )
    periods: list[dict[str, Any]] = Field(default_factory=list)
    is_open_now: bool | None = None


class ValidatedPlace(BaseModel):
    """A discovered place merged with verified provider data."""

    # Original discovery data
    discovered_name: str
    discovered_from: str = "ai"
    discovered_description: str | None = None
    discovered_type: str | None = None
    cuisine: str | None = None
    estimated_cost: str | float | None = None
    why_special: str | None = None
    uniqueness_score: float | None = None

    # Verified provider data
    place_id: str
    verified_name: str
    formatted_address: str | None = None
    coordinates: Coordinates | None = None
    rating: float | None = None
    review_count: int | None = None
    price_level: int | None = None
    opening_hours: list[str] = Field(default_factory=list)
    opening_hours_periods: list[dict[str, Any]] = Field(default_factory=list)
    is_open_now: bool | None = None
    photos: list[Photo] = Field(default_factory=list)
    primary_photo: str | None = None
    google_maps_url: str | None = None
    website: str | None = None
    phone: str | None = None
    top_reviews: list[Review] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    business_status: str | None = None
    editorial: str | None = None

    # Validation metadata
    quality_score: float = 0.5
    validation_confidence: float = 0.0
    validated_at: datetime = Field(default_factory=datetime.now)


class ValidationContext(BaseModel):
    itinerary_id: str | None = None
    near_location: Coordinates | None = None
    date: str | None = None
    scheduled_time: str | None = None
    meal_type: str | None = None


# =============================================================================
# Validation Results
# =============================================================================


class ValidatedResult(BaseModel):
    status: Literal["validated"] = "validated"
    place: ValidatedPlace
    confidence: float
    match_score: MatchScore
    original_place: DiscoveredPlace

    @property
    def valid(self) -> bool:
        return True


class NotFoundResult(BaseModel):
    status: Literal["not_found"] = "not_found"
    reason: str
    original_place: DiscoveredPlace
    confidence: float = 0.0

    @property
    def valid(self) -> bool:
        return False


class AmbiguousResult(BaseModel):
    status: Literal["ambiguous"] = "ambiguous"
    reason: str
    original_place: DiscoveredPlace
    candidates: list[CandidateEntity] = Field(default_factory=list)
    confidence: float = 0.0

    @property
    def valid(self) -> bool:
        return False


class ErrorResult(BaseModel):
    status: Literal["error"] = "error"
    reason: str
    original_place: DiscoveredPlace
    confidence: float = 0.0

    @property
    def valid(self) -> bool:
        return False


ValidationResult = Annotated[
    Union[ValidatedResult, NotFoundResult, AmbiguousResult, ErrorResult],
    Field(discriminator="status"),
]


class ValidatorStats(BaseModel):
    attempted: int = 0
    validated: int = 0
    not_found: int = 0
    ambiguous: int = 0
    errors: int = 0

    @property
    def validation_rate(self) -> float:
        return self.validated / self.attempted if self.attempted > 0 else 0.0


class AmbiguousEntry(BaseModel):
    original: DiscoveredPlace
    candidates: list[CandidateEntity] = Field(default_factory=list)


class ErrorEntry(BaseModel):
    original: DiscoveredPlace
    error: str


class BatchStats(BaseModel):
    total: int = 0
    validated: int = 0
    not_found: int = 0
    ambiguous: int = 0
    errors: int = 0
    validation_rate: float = 0.0
    average_quality: float = 0.0


class BatchValidationResult(BaseModel):
    validated: list[ValidatedPlace] = Field(default_factory=list)
    not_found: list[DiscoveredPlace] = Field(default_factory=list)
    ambiguous: list[AmbiguousEntry] = Field(default_factory=list)
    errors: list[ErrorEntry] = Field(default_factory=list)
    stats: BatchStats = Field(default_factory=BatchStats)


# =============================================================================
# Availability Schemas
# =============================================================================


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class TimeRange(BaseModel):
    open: str = Field(..., description="24-hour HH:MM")
    close: str = Field(..., description="24-hour HH:MM")
    open_display: str | None = None
    close_display: str | None = None


class OpenDay(BaseModel):
    day: str
    day_index: int
    schedule: str


class AlternativeDays(BaseModel):
    best_day: str
    open_days: list[OpenDay] = Field(default_factory=list)
    all_open_days: list[str] = Field(default_factory=list)


class AlternativeTime(BaseModel):
    time: str
    reason: str
    suggested_at: datetime


class AlternativeTimes(BaseModel):
    suggested: str
    options: list[AlternativeTime] = Field(default_factory=list)


class AvailabilityCheck(BaseModel):
    available: bool | Literal["unknown"]
    confidence: float
    reason: str
    recommendation: str
    alternatives: AlternativeDays | AlternativeTimes | None = None
    critical: bool = False
    warning: str | None = None
    raw_schedule: str | None = None
    opening_hours: list[TimeRange] | None = None

    @property
    def status(self) -> AvailabilityStatus:
        if self.available is True:
            return AvailabilityStatus.AVAILABLE
        if self.available is False:
            return AvailabilityStatus.UNAVAILABLE
        return AvailabilityStatus.UNKNOWN


class ScheduledCheck(BaseModel):
    place: ValidatedPlace
    scheduled_time: datetime
    check: AvailabilityCheck


class AvailabilityBatch(BaseModel):
    available: list[ScheduledCheck] = Field(default_factory=list)
    warnings: list[ScheduledCheck] = Field(default_factory=list)
    unavailable: list[ScheduledCheck] = Field(default_factory=list)
    unknown: list[ScheduledCheck] = Field(default_factory=list)


class CriticalIssue(BaseModel):
    place: str
    scheduled_time: datetime
    reason: str
    recommendation: str


class Recommendation(BaseModel):
    priority: Literal["high", "medium", "low"]
    message: str
    action: str


class AvailabilityReport(BaseModel):
    total_places: int = 0
    available_count: int = 0
    unavailable_count: int = 0
    unknown_count: int = 0
    warning_count: int = 0
    critical_issues: list[CriticalIssue] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)


# =============================================================================
# Orchestrator Schemas
# =============================================================================


class ValidationOptions(BaseModel):
    # Regeneration is accepted but not acted on; no regeneration policy exists yet.
    enable_regeneration: bool = False
    max_regeneration_attempts: int = Field(2, ge=0)
    min_confidence: float = Field(0.5, ge=0.0, le=1.0)
    max_concurrency: int = Field(1, ge=1, description="Items validated concurrently per day")


class RunStatistics(BaseModel):
    total: int = 0
    validated: int = 0
    failed: int = 0
    enriched: int = 0
    availability_issues: int = 0
    regenerated: int = 0

    @property
    def validation_rate(self) -> float:
        return self.validated / self.total if self.total > 0 else 0.0

    @property
    def enrichment_rate(self) -> float:
        return self.enriched / self.total if self.total > 0 else 0.0
