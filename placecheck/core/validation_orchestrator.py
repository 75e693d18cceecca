"""
Validation Orchestrator

Runs itinerary activities and restaurants through place validation and
availability checks, merging verified data back onto each item. A failure on
one item never stops the rest of the itinerary.
"""

import asyncio
import logging
from datetime import date as date_type
from datetime import datetime, time
from typing import Any

from placecheck.core.availability import AvailabilityChecker
from placecheck.core.opening_hours_utils import parse_time_to_minutes
from placecheck.core.places_service import GooglePlacesService
from placecheck.core.places_validator import PlacesValidator
from placecheck.core.repository import ValidatedPlacesRepo
from placecheck.core.schemas import (
    AvailabilityCheck,
    DiscoveredPlace,
    RunStatistics,
    ValidatedPlace,
    ValidatedResult,
    ValidationContext,
    ValidationOptions,
)
from placecheck.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

PRICE_RANGE_LABELS = {
    0: "Free",
    1: "$",
    2: "$$",
    3: "$$$",
    4: "$$$$",
}

CONNECTION_PROBE_QUERY = "Eiffel Tower Paris"


def parse_date_time(date_value: str | date_type | datetime, time_value: str) -> datetime:
    """
    Combine an itinerary date and a scheduled time into a naive datetime.

    Args:
        date_value: ISO date ("2024-06-15"), date or datetime
        time_value: "14:00" or "2:00 PM"

    Returns:
        Naive local datetime

    Raises:
        ParseError: If the time cannot be parsed
        ValueError: If the date is not ISO formatted
    """
    if isinstance(date_value, datetime):
        day = date_value.date()
    elif isinstance(date_value, date_type):
        day = date_value
    else:
        day = datetime.fromisoformat(date_value.strip()).date()

    minutes = parse_time_to_minutes(time_value)
    return datetime.combine(day, time(hour=minutes // 60, minute=minutes % 60))


def _dump(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def _start_time(activity: dict[str, Any]) -> str | None:
    # Only the {start, end} shape carries a schedulable start
    scheduled = activity.get("time")
    if isinstance(scheduled, dict):
        return scheduled.get("start")
    return None


def _as_item(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return {**value}
    return {"value": value}


class ValidationOrchestrator:
    """Coordinates the validation workflow for an itinerary."""

    def __init__(
        self,
        places_service: GooglePlacesService | None = None,
        repository: ValidatedPlacesRepo | None = None,
        settings: Settings | None = None,
        api_key: str | None = None,
    ):
        self.settings = settings or get_settings()
        self.places_service = places_service or GooglePlacesService(api_key=api_key)
        self.places_validator = PlacesValidator(
            self.places_service, repository=repository, settings=self.settings
        )
        self.availability_checker = AvailabilityChecker(settings=self.settings)
        self.stats = RunStatistics()

    @staticmethod
    def _options(options: ValidationOptions | dict[str, Any] | None) -> ValidationOptions:
        if options is None:
            return ValidationOptions()
        if isinstance(options, ValidationOptions):
            return options
        return ValidationOptions.model_validate(options)

    async def validate_activities(
        self,
        activity_sets: list[dict[str, Any]],
        itinerary_id: str | None = None,
        options: ValidationOptions | dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Validate and enrich every activity in an itinerary.

        Args:
            activity_sets: Per-city/day sets: {city, day, date, activities: [...]}
            itinerary_id: Recorded in the validation history when given
            options: ValidationOptions or an equivalent dict

        Returns:
            Activity sets in input order, each activity annotated with
            validation_status and, when validated, the verified fields
        """
        opts = self._options(options)
        logger.info(f"[Orchestrator] Validating {len(activity_sets)} activity sets")

        semaphore = asyncio.Semaphore(opts.max_concurrency)
        enriched_sets = []

        for activity_set in activity_sets:
            activities = activity_set.get("activities")
            if not activities:
                enriched_sets.append(activity_set)
                continue

            async def run(activity: dict[str, Any]) -> dict[str, Any]:
                async with semaphore:
                    return await self._process_activity(activity, activity_set, itinerary_id, opts)

            validated = await asyncio.gather(*(run(activity) for activity in activities))
            enriched_sets.append({**activity_set, "activities": list(validated)})

        self.log_validation_stats()
        return enriched_sets

    async def _process_activity(
        self,
        activity: dict[str, Any],
        activity_set: dict[str, Any],
        itinerary_id: str | None,
        opts: ValidationOptions,
    ) -> dict[str, Any]:
        self.stats.total += 1
        name = None

        try:
            name = activity.get("name")
            city = activity_set.get("city") or ""
            set_date = activity_set.get("date")
            start_time = _start_time(activity)

            validation = await self.places_validator.validate_place(
                DiscoveredPlace(
                    name=name,
                    address=activity.get("address"),
                    type=activity.get("type"),
                ),
                city,
                ValidationContext(
                    itinerary_id=itinerary_id,
                    date=str(set_date) if set_date else None,
                    scheduled_time=start_time,
                ),
            )

            if not isinstance(validation, ValidatedResult):
                logger.warning(f"[Orchestrator] Validation failed for '{name}': {validation.status}")
                self.stats.failed += 1
                return {
                    **activity,
                    "validation_status": "unvalidated",
                    "validation_reason": validation.status,
                }

            self._check_confidence(name, validation.confidence, opts)

            availability = None
            if start_time and set_date:
                scheduled_at = parse_date_time(set_date, start_time)
                availability = self.availability_checker.check_availability(
                    validation.place, scheduled_at
                )
                if availability.available is False and availability.critical:
                    logger.warning(
                        f"[Orchestrator] Availability issue for '{name}': {availability.reason}"
                    )
                    self.stats.availability_issues += 1

            enriched = self.merge_activity_data(activity, validation.place, availability)
            enriched["validation_status"] = "validated"
            enriched["validation_confidence"] = validation.confidence

            self.stats.validated += 1
            self.stats.enriched += 1
            logger.info(
                f"[Orchestrator] Validated '{name}' (confidence: {validation.confidence:.2f})"
            )
            return enriched

        except Exception as e:
            logger.error(f"[Orchestrator] Error validating '{name}': {e}")
            self.stats.failed += 1
            return {**_as_item(activity), "validation_status": "error", "validation_error": str(e)}

    async def validate_restaurants(
        self,
        day_restaurants: list[dict[str, Any]],
        itinerary_id: str | None = None,
        options: ValidationOptions | dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Validate and enrich the restaurants for each day of an itinerary.

        Args:
            day_restaurants: Per-day entries: {day, date, city, meals: {meal_type: restaurant}}
            itinerary_id: Recorded in the validation history when given
            options: ValidationOptions or an equivalent dict

        Returns:
            Days in input order with every meal annotated; empty meals stay None
        """
        opts = self._options(options)
        logger.info(f"[Orchestrator] Validating restaurants for {len(day_restaurants)} days")

        semaphore = asyncio.Semaphore(opts.max_concurrency)
        enriched_days = []

        for day in day_restaurants:
            meals = day.get("meals")
            if not meals:
                enriched_days.append(day)
                continue

            async def run(meal_type: str, restaurant: dict[str, Any] | None) -> dict[str, Any] | None:
                if not restaurant:
                    return None
                async with semaphore:
                    return await self._process_restaurant(
                        meal_type, restaurant, day, itinerary_id, opts
                    )

            meal_types = list(meals)
            validated = await asyncio.gather(*(run(m, meals[m]) for m in meal_types))
            enriched_days.append({**day, "meals": dict(zip(meal_types, validated))})

        self.log_validation_stats()
        return enriched_days

    async def _process_restaurant(
        self,
        meal_type: str,
        restaurant: dict[str, Any],
        day: dict[str, Any],
        itinerary_id: str | None,
        opts: ValidationOptions,
    ) -> dict[str, Any]:
        self.stats.total += 1
        name = None

        try:
            name = restaurant.get("name")
            day_date = day.get("date")

            validation = await self.places_validator.validate_place(
                DiscoveredPlace(
                    name=name,
                    address=restaurant.get("location"),
                    type="restaurant",
                    cuisine=restaurant.get("cuisine"),
                ),
                day.get("city") or "",
                ValidationContext(
                    itinerary_id=itinerary_id,
                    date=str(day_date) if day_date else None,
                    meal_type=meal_type,
                ),
            )

            if not isinstance(validation, ValidatedResult):
                logger.warning(
                    f"[Orchestrator] Restaurant validation failed for '{name}': {validation.status}"
                )
                self.stats.failed += 1
                return {
                    **restaurant,
                    "validation_status": "unvalidated",
                    "validation_reason": validation.status,
                }

            self._check_confidence(name, validation.confidence, opts)

            enriched = self.merge_restaurant_data(restaurant, validation.place)
            enriched["validation_status"] = "validated"
            enriched["validation_confidence"] = validation.confidence

            self.stats.validated += 1
            self.stats.enriched += 1
            logger.info(f"[Orchestrator] Validated restaurant '{name}' for {meal_type}")
            return enriched

        except Exception as e:
            logger.error(f"[Orchestrator] Error validating restaurant '{name}': {e}")
            self.stats.failed += 1
            return {**_as_item(restaurant), "validation_status": "error", "validation_error": str(e)}

    @staticmethod
    def _check_confidence(name: str | None, confidence: float, opts: ValidationOptions) -> None:
        if confidence < opts.min_confidence:
            logger.info(
                f"[Orchestrator] '{name}' validated below min confidence "
                f"({confidence:.2f} < {opts.min_confidence:.2f})"
            )

    def merge_activity_data(
        self,
        activity: dict[str, Any],
        place: ValidatedPlace,
        availability: AvailabilityCheck | None = None,
    ) -> dict[str, Any]:
        """Copy verified fields onto an activity without dropping its own fields."""
        enriched = {**activity}

        if place.place_id:
            enriched["place_id"] = place.place_id
        if place.coordinates:
            enriched["coordinates"] = _dump(place.coordinates)
        if place.rating:
            enriched["rating"] = place.rating
            enriched["review_count"] = place.review_count
        if place.photos:
            enriched["image_url"] = place.photos[0].url
            enriched["photos"] = _dump(place.photos)
        if place.opening_hours:
            enriched["opening_hours"] = place.opening_hours
        if place.google_maps_url:
            enriched["google_maps_url"] = place.google_maps_url
        if place.website:
            enriched["website"] = place.website
        if place.phone:
            enriched["phone"] = place.phone
        if place.price_level is not None:
            enriched["price_level"] = place.price_level

        if availability:
            enriched["availability"] = {
                "status": availability.status.value,
                "confidence": availability.confidence,
                "reason": availability.reason,
                "recommendation": availability.recommendation,
                "alternatives": _dump(availability.alternatives),
                "critical": availability.critical,
            }

        if place.quality_score:
            enriched["quality_score"] = place.quality_score

        return enriched

    def merge_restaurant_data(self, restaurant: dict[str, Any], place: ValidatedPlace) -> dict[str, Any]:
        """Like merge_activity_data, minus photos and with a price_range label."""
        enriched = {**restaurant}

        if place.place_id:
            enriched["place_id"] = place.place_id
        if place.coordinates:
            enriched["coordinates"] = _dump(place.coordinates)
        if place.rating:
            enriched["rating"] = place.rating
            enriched["review_count"] = place.review_count
        if place.price_level is not None:
            enriched["price_level"] = place.price_level
            enriched["price_range"] = PRICE_RANGE_LABELS.get(place.price_level)
        if place.opening_hours:
            enriched["opening_hours"] = place.opening_hours
        if place.google_maps_url:
            enriched["google_maps_url"] = place.google_maps_url
        if place.website:
            enriched["website"] = place.website
        if place.phone:
            enriched["phone"] = place.phone
        if place.quality_score:
            enriched["quality_score"] = place.quality_score

        return enriched

    def get_stats(self) -> dict[str, Any]:
        return {
            **self.stats.model_dump(),
            "validation_rate": self.stats.validation_rate,
            "enrichment_rate": self.stats.enrichment_rate,
        }

    def log_validation_stats(self) -> None:
        stats = self.stats
        logger.info(
            f"[Orchestrator] Validation stats: total={stats.total} "
            f"validated={stats.validated} ({stats.validation_rate:.1%}) "
            f"enriched={stats.enriched} ({stats.enrichment_rate:.1%}) "
            f"failed={stats.failed} availability_issues={stats.availability_issues}"
        )
        if stats.regenerated > 0:
            logger.info(f"[Orchestrator] Regenerated: {stats.regenerated}")

    def reset_stats(self) -> None:
        self.stats = RunStatistics()
        self.places_validator.reset_stats()

    async def drain_pending_writes(self) -> None:
        await self.places_validator.drain_pending_writes()

    async def test_connection(self) -> dict[str, Any]:
        """Probe the Places API with a known query. Never raises."""
        try:
            results = await self.places_service.text_search(CONNECTION_PROBE_QUERY)
            return {
                "working": len(results) > 0,
                "message": "Google Places API connection successful",
            }
        except Exception as e:
            logger.error(f"[Orchestrator] Places API connection test failed: {e}")
            return {"working": False, "message": str(e)}
