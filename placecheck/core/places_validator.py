"""
Validation of discovered places against the Google Places API.

Resolves each loosely-specified place to a single verified entity, scores the
match and the place's quality, and records successful validations in the
validated places registry.
"""

import asyncio
import logging
import math
from typing import Any

from placecheck.core.errors import AmbiguousMatchError, DetailFetchError, NotFoundError
from placecheck.core.place_matcher import build_search_query, find_best_match
from placecheck.core.places_service import GooglePlacesService
from placecheck.core.repository import ValidatedPlacesRepo
from placecheck.core.schemas import (
    AmbiguousEntry,
    AmbiguousResult,
    BatchStats,
    BatchValidationResult,
    CandidateEntity,
    Coordinates,
    DiscoveredPlace,
    ErrorEntry,
    ErrorResult,
    NotFoundResult,
    ValidatedPlace,
    ValidatedResult,
    ValidationContext,
    ValidationResult,
    ValidatorStats,
)
from placecheck.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

QUALITY_WEIGHTS = {
    "rating": 0.35,
    "reviews": 0.25,
    "uniqueness": 0.2,
    "completeness": 0.2,
}

COMPLETENESS_FIELDS = [
    "formatted_address",
    "coordinates",
    "rating",
    "review_count",
    "opening_hours",
    "photos",
    "website",
    "phone",
    "types",
]


def calculate_data_completeness(place: ValidatedPlace) -> float:
    """Fraction of key fields that are present and non-empty."""
    complete = sum(1 for field in COMPLETENESS_FIELDS if getattr(place, field))
    return complete / len(COMPLETENESS_FIELDS)


def calculate_quality_score(place: ValidatedPlace) -> float:
    """
    Calculate a 0-1 quality score for a validated place.

    Each term only counts when its source data exists, and the result is
    renormalized over the weights of the terms that counted.

    Args:
        place: Enriched place

    Returns:
        Quality score between 0.0 and 1.0 (0.5 when nothing can be scored)
    """
    score = 0.0
    weight = 0.0

    # Rating (0-5 scale)
    if place.rating:
        score += (place.rating / 5) * QUALITY_WEIGHTS["rating"]
        weight += QUALITY_WEIGHTS["rating"]

    # Review volume, log scale capped at 10,000 reviews
    if place.review_count:
        review_score = min(math.log10(place.review_count) / 4, 1.0)
        score += review_score * QUALITY_WEIGHTS["reviews"]
        weight += QUALITY_WEIGHTS["reviews"]

    # Uniqueness from discovery (0-10 scale)
    if place.uniqueness_score:
        score += (place.uniqueness_score / 10) * QUALITY_WEIGHTS["uniqueness"]
        weight += QUALITY_WEIGHTS["uniqueness"]

    score += calculate_data_completeness(place) * QUALITY_WEIGHTS["completeness"]
    weight += QUALITY_WEIGHTS["completeness"]

    return score / weight if weight > 0 else 0.5


class PlacesValidator:
    """Validates discovered places and enriches them with verified data."""

    def __init__(
        self,
        places_service: GooglePlacesService,
        repository: ValidatedPlacesRepo | None = None,
        settings: Settings | None = None,
    ):
        self.places_service = places_service
        self.repository = repository
        self.settings = settings or get_settings()
        self.stats = ValidatorStats()
        self._pending_writes: set[asyncio.Task] = set()

    async def validate_place(
        self,
        discovered: DiscoveredPlace,
        city: str,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """
        Validate a single discovered place.

        Args:
            discovered: Place suggested upstream (name, address, type, ...)
            city: City the place should be in
            context: Optional itinerary ID and search bias

        Returns:
            ValidatedResult on success, otherwise NotFoundResult,
            AmbiguousResult or ErrorResult. Never raises.
        """
        context = context or ValidationContext()
        self.stats.attempted += 1

        try:
            logger.info(f"[PlacesValidator] Validating '{discovered.name}' in {city}")

            query = build_search_query(discovered, city)
            candidates = await self.places_service.text_search(query, context.near_location)
            if not candidates:
                raise NotFoundError("Place not found in Google Places")

            candidate, match_score = find_best_match(discovered, candidates, city)
            if match_score.total < self.settings.match_threshold:
                raise AmbiguousMatchError(
                    "Multiple possible matches, confidence too low",
                    candidates=candidates[:3],
                    confidence=match_score.total,
                )

            details = await self.places_service.get_place_details(candidate.place_id)
            if not details:
                raise DetailFetchError("Failed to fetch place details")

            place = self.enrich_place(discovered, candidate, details)
            place.validation_confidence = match_score.total
            place.quality_score = calculate_quality_score(place)

        except NotFoundError as e:
            logger.info(f"[PlacesValidator] Not found: '{discovered.name}'")
            self.stats.not_found += 1
            return NotFoundResult(reason=str(e), original_place=discovered)

        except AmbiguousMatchError as e:
            logger.info(
                f"[PlacesValidator] Ambiguous match for '{discovered.name}' "
                f"(best confidence {e.confidence:.2f})"
            )
            self.stats.ambiguous += 1
            return AmbiguousResult(
                reason=str(e),
                original_place=discovered,
                candidates=e.candidates,
                confidence=e.confidence,
            )

        except Exception as e:
            logger.error(f"[PlacesValidator] Error validating '{discovered.name}': {e}")
            self.stats.errors += 1
            return ErrorResult(reason=str(e), original_place=discovered)

        self._schedule_save(place, context.itinerary_id)
        self.stats.validated += 1

        logger.info(
            f"[PlacesValidator] Validated '{place.verified_name}' "
            f"(confidence: {match_score.total:.0%}, quality: {place.quality_score:.2f})"
        )
        return ValidatedResult(
            place=place,
            confidence=match_score.total,
            match_score=match_score,
            original_place=discovered,
        )

    async def _validate_safely(
        self, discovered: DiscoveredPlace, city: str, context: ValidationContext | None
    ) -> ValidationResult:
        try:
            return await self.validate_place(discovered, city, context)
        except Exception as e:
            return ErrorResult(reason=str(e), original_place=discovered)

    async def batch_validate(
        self,
        discovered_places: list[DiscoveredPlace],
        city: str,
        context: ValidationContext | None = None,
    ) -> BatchValidationResult:
        """
        Validate many places in fixed-size concurrent groups.

        Groups run one after another with a short pause in between to stay
        inside the provider's rate limits.

        Args:
            discovered_places: Places to validate
            city: City the places should be in
            context: Shared validation context

        Returns:
            Places bucketed by outcome, plus summary stats
        """
        logger.info(
            f"[PlacesValidator] Batch validating {len(discovered_places)} places in {city}"
        )

        results = BatchValidationResult()
        batch_size = self.settings.validation_batch_size
        delay = self.settings.validation_batch_delay_ms / 1000

        for start in range(0, len(discovered_places), batch_size):
            batch = discovered_places[start : start + batch_size]

            batch_results = await asyncio.gather(
                *(self._validate_safely(place, city, context) for place in batch)
            )

            for result in batch_results:
                if isinstance(result, ValidatedResult):
                    results.validated.append(result.place)
                elif isinstance(result, NotFoundResult):
                    results.not_found.append(result.original_place)
                elif isinstance(result, AmbiguousResult):
                    results.ambiguous.append(
                        AmbiguousEntry(original=result.original_place, candidates=result.candidates)
                    )
                else:
                    results.errors.append(
                        ErrorEntry(original=result.original_place, error=result.reason)
                    )

            if start + batch_size < len(discovered_places):
                await asyncio.sleep(delay)

        total = len(discovered_places)
        validated = len(results.validated)
        results.stats = BatchStats(
            total=total,
            validated=validated,
            not_found=len(results.not_found),
            ambiguous=len(results.ambiguous),
            errors=len(results.errors),
            validation_rate=validated / total if total else 0.0,
            average_quality=(
                sum(p.quality_score for p in results.validated) / validated if validated else 0.0
            ),
        )

        logger.info(
            f"[PlacesValidator] Batch complete: validated {validated}/{total} "
            f"({results.stats.validation_rate:.0%}), not found {results.stats.not_found}, "
            f"ambiguous {results.stats.ambiguous}, errors {results.stats.errors}, "
            f"avg quality {results.stats.average_quality:.2f}"
        )
        return results

    def enrich_place(
        self,
        discovered: DiscoveredPlace,
        candidate: CandidateEntity,
        details: dict[str, Any],
    ) -> ValidatedPlace:
        """
        Merge discovery data with the search result and place details.

        Search result values win; details fill whatever the search left empty.
        """
        opening_hours = self.places_service.parse_opening_hours(details)
        photos = self.places_service.extract_photos(details, self.settings.max_photos)
        reviews = self.places_service.extract_reviews(details, self.settings.max_reviews)

        coordinates = candidate.location
        if coordinates is None:
            location = (details.get("geometry") or {}).get("location") or {}
            if location.get("lat") is not None and location.get("lng") is not None:
                coordinates = Coordinates(lat=location["lat"], lng=location["lng"])

        def pick(candidate_value: Any, details_key: str) -> Any:
            return candidate_value if candidate_value is not None else details.get(details_key)

        return ValidatedPlace(
            # Original discovery data
            discovered_name=discovered.name,
            discovered_from=discovered.source or "ai",
            discovered_description=discovered.description,
            discovered_type=discovered.type,
            cuisine=discovered.cuisine,
            estimated_cost=discovered.estimated_cost,
            why_special=discovered.why_special,
            uniqueness_score=discovered.uniqueness_score,
            # Verified data
            place_id=candidate.place_id,
            verified_name=candidate.name or details.get("name") or discovered.name,
            formatted_address=pick(candidate.formatted_address, "formatted_address"),
            coordinates=coordinates,
            rating=pick(candidate.rating, "rating"),
            review_count=pick(candidate.user_ratings_total, "user_ratings_total"),
            price_level=pick(candidate.price_level, "price_level"),
            opening_hours=opening_hours.weekday_text,
            opening_hours_periods=opening_hours.periods,
            is_open_now=opening_hours.is_open_now,
            photos=photos,
            primary_photo=photos[0].url if photos else None,
            google_maps_url=details.get("url"),
            website=details.get("website"),
            phone=details.get("formatted_phone_number") or details.get("international_phone_number"),
            top_reviews=reviews,
            types=candidate.types or details.get("types") or [],
            business_status=pick(candidate.business_status, "business_status"),
            editorial=(details.get("editorial_summary") or {}).get("overview"),
        )

    def _schedule_save(self, place: ValidatedPlace, itinerary_id: str | None) -> None:
        """
        Save the place in the background.

        Registry writes are best effort: they run as detached tasks and a
        failed write never changes the validation result.
        """
        if self.repository is None:
            return
        task = asyncio.create_task(self._save_validated_place(place, itinerary_id))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _save_validated_place(self, place: ValidatedPlace, itinerary_id: str | None) -> None:
        try:
            await self.repository.upsert_validated_place(place)

            if itinerary_id:
                await self.repository.append_validation_history(
                    itinerary_id,
                    {
                        "discovered_name": place.discovered_name,
                        "place_id": place.place_id,
                        "validation_status": "found",
                        "confidence_score": place.validation_confidence,
                        "validated_data": place.model_dump(mode="json"),
                    },
                )
        except Exception as e:
            logger.error(f"[PlacesValidator] Failed to save validated place {place.place_id}: {e}")

    async def drain_pending_writes(self) -> None:
        """Wait for in-flight registry writes to finish."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    def get_stats(self) -> dict[str, Any]:
        return {**self.stats.model_dump(), "validation_rate": self.stats.validation_rate}

    def reset_stats(self) -> None:
        self.stats = ValidatorStats()
