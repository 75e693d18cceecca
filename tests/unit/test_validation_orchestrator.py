import asyncio
from datetime import date, datetime
from unittest.mock import AsyncMock

import pytest

from placecheck.core.errors import ParseError, TransportError
from placecheck.core.places_service import GooglePlacesService
from placecheck.core.schemas import DiscoveredPlace, NotFoundResult, Photo, ValidationOptions
from placecheck.core.validation_orchestrator import ValidationOrchestrator, parse_date_time

SUNDAY_CLOSED = [
    "Sunday: Closed",
    "Monday: 9:00 AM – 6:00 PM",
    "Tuesday: 9:00 AM – 6:00 PM",
    "Wednesday: 9:00 AM – 6:00 PM",
    "Thursday: 9:00 AM – 6:00 PM",
    "Friday: 9:00 AM – 6:00 PM",
    "Saturday: 9:00 AM – 6:00 PM",
]


@pytest.fixture
def orchestrator(settings):
    service = GooglePlacesService(api_key="test-key")
    service.text_search = AsyncMock(return_value=[])
    service.get_place_details = AsyncMock(return_value=None)
    orchestrator = ValidationOrchestrator(places_service=service, settings=settings)
    orchestrator.places_validator.validate_place = AsyncMock()
    return orchestrator


def not_found(name: str) -> NotFoundResult:
    return NotFoundResult(reason="Place not found in Google Places", original_place=DiscoveredPlace(name=name))


@pytest.mark.asyncio
async def test_every_item_survives_injected_failures(orchestrator, make_validated_result):
    orchestrator.places_validator.validate_place.side_effect = [
        make_validated_result("Louvre"),
        RuntimeError("provider exploded"),
        not_found("Ghost Museum"),
        make_validated_result("Orsay"),
    ]
    activity_sets = [
        {
            "city": "Paris",
            "day": 1,
            "date": "2024-06-18",
            "activities": [
                {"name": "Louvre", "time": {"start": "10:00"}},
                {"name": "Broken"},
                {"name": "Ghost Museum"},
            ],
        },
        {"city": "Paris", "day": 2, "date": "2024-06-19", "activities": []},
        {"city": "Paris", "day": 3, "activities": [{"name": "Orsay", "time": {"start": "10:00"}}]},
    ]

    result = await orchestrator.validate_activities(activity_sets, "itin-1")

    assert len(result) == 3
    first_day = result[0]["activities"]
    assert [a["name"] for a in first_day] == ["Louvre", "Broken", "Ghost Museum"]
    assert first_day[0]["validation_status"] == "validated"
    assert first_day[1]["validation_status"] == "error"
    assert first_day[1]["validation_error"] == "provider exploded"
    assert first_day[2]["validation_status"] == "unvalidated"
    assert first_day[2]["validation_reason"] == "not_found"
    assert result[1] is activity_sets[1]
    # No date on the set, so no availability check
    assert "availability" not in result[2]["activities"][0]

    stats = orchestrator.get_stats()
    assert stats["total"] == 4
    assert stats["validated"] == 2
    assert stats["failed"] == 2
    assert stats["validation_rate"] == 0.5


@pytest.mark.asyncio
async def test_activity_is_enriched_without_losing_fields(orchestrator, make_validated_result):
    orchestrator.places_validator.validate_place.return_value = make_validated_result(
        "Louvre",
        confidence=0.92,
        photos=[Photo(reference="r1", url="https://photos/r1"), Photo(reference="r2", url="https://photos/r2")],
        website="https://www.louvre.fr",
        price_level=2,
        google_maps_url="https://maps.google.com/?cid=7",
        quality_score=0.8,
    )
    activity = {
        "name": "Louvre",
        "description": "World's largest art museum",
        "type": "museum",
        "time": {"start": "11:00", "end": "13:00"},
    }

    result = await orchestrator.validate_activities(
        [{"city": "Paris", "day": 1, "date": "2024-06-18", "activities": [activity]}]
    )

    enriched = result[0]["activities"][0]
    assert enriched["description"] == "World's largest art museum"
    assert enriched["time"] == {"start": "11:00", "end": "13:00"}
    assert enriched["place_id"] == "place-louvre"
    assert enriched["coordinates"] == {"lat": 48.8606, "lng": 2.3376}
    assert enriched["rating"] == 4.7
    assert enriched["review_count"] == 250000
    assert enriched["image_url"] == "https://photos/r1"
    assert len(enriched["photos"]) == 2
    assert enriched["website"] == "https://www.louvre.fr"
    assert enriched["price_level"] == 2
    assert enriched["quality_score"] == 0.8
    assert enriched["validation_confidence"] == 0.92
    assert enriched["availability"]["status"] == "available"
    assert enriched["availability"]["recommendation"] == "Good timing!"
    assert "validation_status" not in activity

    call = orchestrator.places_validator.validate_place.await_args
    assert call.args[0].name == "Louvre"
    assert call.args[0].type == "museum"
    assert call.args[1] == "Paris"
    assert call.args[2].scheduled_time == "11:00"


@pytest.mark.asyncio
async def test_critical_availability_issue_is_counted(orchestrator, make_validated_result):
    orchestrator.places_validator.validate_place.return_value = make_validated_result(
        "Louvre", opening_hours=SUNDAY_CLOSED
    )

    result = await orchestrator.validate_activities(
        [
            {
                "city": "Paris",
                "date": "2024-06-16",
                "activities": [{"name": "Louvre", "time": {"start": "2:00 PM"}}],
            }
        ]
    )

    availability = result[0]["activities"][0]["availability"]
    assert availability["status"] == "unavailable"
    assert availability["critical"] is True
    assert availability["alternatives"]["best_day"] == "Monday"
    assert orchestrator.stats.availability_issues == 1
    assert orchestrator.stats.validated == 1


@pytest.mark.asyncio
async def test_restaurants(orchestrator, make_validated_result):
    orchestrator.places_validator.validate_place.side_effect = [
        make_validated_result(
            "Chez Janou", price_level=2, photos=[Photo(reference="r", url="https://photos/r")]
        ),
        not_found("Le Fantôme"),
    ]
    days = [
        {
            "day": 1,
            "date": "2024-06-18",
            "city": "Marseille",
            "meals": {
                "breakfast": None,
                "lunch": {"name": "Chez Janou", "location": "2 Rue Roger", "cuisine": "Provençal"},
                "dinner": {"name": "Le Fantôme", "cuisine": "French"},
            },
        },
        {"day": 2, "date": "2024-06-19", "city": "Marseille"},
    ]

    result = await orchestrator.validate_restaurants(days, "itin-2")

    meals = result[0]["meals"]
    assert list(meals) == ["breakfast", "lunch", "dinner"]
    assert meals["breakfast"] is None
    assert meals["lunch"]["price_range"] == "$$"
    assert meals["lunch"]["cuisine"] == "Provençal"
    assert meals["lunch"]["validation_status"] == "validated"
    assert "photos" not in meals["lunch"]
    assert "image_url" not in meals["lunch"]
    assert meals["dinner"]["validation_status"] == "unvalidated"
    assert result[1] is days[1]

    discovered, city, context = orchestrator.places_validator.validate_place.await_args_list[0].args
    assert discovered.type == "restaurant"
    assert discovered.address == "2 Rue Roger"
    assert city == "Marseille"
    assert context.meal_type == "lunch"
    assert context.itinerary_id == "itin-2"

    assert orchestrator.stats.total == 2
    assert orchestrator.stats.failed == 1


@pytest.mark.asyncio
async def test_concurrent_run_preserves_order(orchestrator, make_validated_result):
    delays = {"Slow": 0.03, "Medium": 0.02, "Fast": 0.0}

    async def validate(discovered, city, context):
        await asyncio.sleep(delays[discovered.name])
        return make_validated_result(discovered.name)

    orchestrator.places_validator.validate_place.side_effect = validate

    result = await orchestrator.validate_activities(
        [{"city": "Paris", "activities": [{"name": n} for n in delays]}],
        options={"max_concurrency": 3},
    )

    assert [a["name"] for a in result[0]["activities"]] == ["Slow", "Medium", "Fast"]
    assert orchestrator.stats.validated == 3


@pytest.mark.asyncio
async def test_stats_accumulate_until_reset(orchestrator, make_validated_result):
    orchestrator.places_validator.validate_place.return_value = make_validated_result()
    activity_sets = [{"city": "Paris", "activities": [{"name": "Louvre"}]}]

    await orchestrator.validate_activities(activity_sets)
    await orchestrator.validate_activities(activity_sets, options=ValidationOptions(min_confidence=0.95))
    assert orchestrator.get_stats()["total"] == 2
    assert orchestrator.get_stats()["enrichment_rate"] == 1.0

    orchestrator.reset_stats()
    assert orchestrator.get_stats()["total"] == 0
    assert orchestrator.get_stats()["validation_rate"] == 0.0


def test_merge_restaurant_free_price_level(orchestrator, make_place):
    enriched = orchestrator.merge_restaurant_data({"name": "Soup Kitchen"}, make_place(price_level=0))
    assert enriched["price_range"] == "Free"
    assert enriched["price_level"] == 0


@pytest.mark.asyncio
async def test_connection_probe(orchestrator, eiffel_candidate):
    orchestrator.places_service.text_search.return_value = [eiffel_candidate]

    status = await orchestrator.test_connection()

    assert status["working"] is True
    orchestrator.places_service.text_search.assert_awaited_once_with("Eiffel Tower Paris")


@pytest.mark.asyncio
async def test_connection_probe_failure(orchestrator):
    orchestrator.places_service.text_search.side_effect = TransportError("REQUEST_DENIED")

    status = await orchestrator.test_connection()

    assert status == {"working": False, "message": "REQUEST_DENIED"}


@pytest.mark.parametrize(
    "date_value, time_value, expected",
    [
        ("2024-06-15", "14:00", datetime(2024, 6, 15, 14, 0)),
        ("2024-06-15", "2:30 PM", datetime(2024, 6, 15, 14, 30)),
        (date(2024, 6, 15), "12:00 AM", datetime(2024, 6, 15, 0, 0)),
        (datetime(2024, 6, 15, 8, 45), "09:05", datetime(2024, 6, 15, 9, 5)),
    ],
)
def test_parse_date_time(date_value, time_value, expected):
    assert parse_date_time(date_value, time_value) == expected


def test_parse_date_time_rejects_bad_time():
    with pytest.raises(ParseError):
        parse_date_time("2024-06-15", "lunchtime")


@pytest.mark.asyncio
async def test_malformed_activity_does_not_stop_the_set(orchestrator, make_validated_result):
    orchestrator.places_validator.validate_place.side_effect = [
        make_validated_result("Louvre"),
        make_validated_result("Orsay"),
    ]
    activity_sets = [
        {
            "city": "Paris",
            "date": "2024-06-18",
            "activities": [
                {"name": "Louvre", "time": "09:00 AM"},
                "Sainte-Chapelle",
                {"name": "Orsay", "time": {"start": "10:00"}},
            ],
        }
    ]

    result = await orchestrator.validate_activities(activity_sets)

    louvre, chapelle, orsay = result[0]["activities"]
    # A plain-string time has no start, so no availability check
    assert louvre["validation_status"] == "validated"
    assert louvre["time"] == "09:00 AM"
    assert "availability" not in louvre
    assert chapelle["validation_status"] == "error"
    assert chapelle["value"] == "Sainte-Chapelle"
    assert orsay["validation_status"] == "validated"
    assert orsay["availability"]["status"] == "available"
    assert orchestrator.stats.total == 3
    assert orchestrator.stats.failed == 1


@pytest.mark.asyncio
async def test_malformed_meal_does_not_stop_the_day(orchestrator, make_validated_result):
    orchestrator.places_validator.validate_place.return_value = make_validated_result("Chez Janou")
    days = [
        {
            "date": "2024-06-18",
            "city": "Marseille",
            "meals": {"lunch": "Chez Janou", "dinner": {"name": "Chez Janou"}},
        }
    ]

    result = await orchestrator.validate_restaurants(days)

    meals = result[0]["meals"]
    assert meals["lunch"]["validation_status"] == "error"
    assert meals["lunch"]["value"] == "Chez Janou"
    assert meals["dinner"]["validation_status"] == "validated"
    assert orchestrator.stats.failed == 1
