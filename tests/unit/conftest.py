import pytest

from placecheck.core.schemas import (
    CandidateEntity,
    Coordinates,
    DiscoveredPlace,
    MatchScore,
    ValidatedPlace,
    ValidatedResult,
)
from placecheck.core.settings import Settings

# Sunday-first, the way ValidatedPlace.opening_hours is stored
NINE_TO_SIX = [
    "Sunday: 9:00 AM – 6:00 PM",
    "Monday: 9:00 AM – 6:00 PM",
    "Tuesday: 9:00 AM – 6:00 PM",
    "Wednesday: 9:00 AM – 6:00 PM",
    "Thursday: 9:00 AM – 6:00 PM",
    "Friday: 9:00 AM – 6:00 PM",
    "Saturday: 9:00 AM – 6:00 PM",
]


@pytest.fixture
def settings():
    return Settings(
        google_maps_api_key="test-key",
        mongodb_uri="",
        validation_batch_delay_ms=0,
    )


@pytest.fixture
def make_place():
    def _make(**overrides) -> ValidatedPlace:
        data = {
            "discovered_name": "Louvre",
            "place_id": "place-louvre",
            "verified_name": "Louvre Museum",
            "formatted_address": "Rue de Rivoli, 75001 Paris, France",
            "coordinates": Coordinates(lat=48.8606, lng=2.3376),
            "rating": 4.7,
            "review_count": 250000,
            "opening_hours": list(NINE_TO_SIX),
            "business_status": "OPERATIONAL",
        }
        data.update(overrides)
        return ValidatedPlace(**data)

    return _make


@pytest.fixture
def eiffel_candidate():
    return CandidateEntity(
        place_id="place-eiffel",
        name="Eiffel Tower - Official",
        formatted_address="Champ de Mars, 5 Av. Anatole France, 75007 Paris, France",
        location=Coordinates(lat=48.8584, lng=2.2945),
        rating=4.7,
        user_ratings_total=380000,
        price_level=2,
        types=["tourist_attraction", "point_of_interest"],
        business_status="OPERATIONAL",
    )


@pytest.fixture
def make_validated_result(make_place):
    def _make(name: str = "Louvre", confidence: float = 0.9, **place_overrides) -> ValidatedResult:
        place = make_place(discovered_name=name, **place_overrides)
        return ValidatedResult(
            place=place,
            confidence=confidence,
            match_score=MatchScore(total=confidence),
            original_place=DiscoveredPlace(name=name),
        )

    return _make
