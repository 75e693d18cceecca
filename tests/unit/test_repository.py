from unittest.mock import MagicMock

import pytest

from placecheck.core.repository import ValidatedPlacesRepo


@pytest.fixture
def repo(settings):
    return ValidatedPlacesRepo(client=MagicMock(), settings=settings)


def test_requires_mongodb_uri(settings):
    with pytest.raises(ValueError):
        ValidatedPlacesRepo(settings=settings)


def test_creates_indexes(repo):
    repo.places_collection.create_index.assert_called_once_with("place_id", unique=True)
    repo.history_collection.create_index.assert_called_once_with("itinerary_id")


@pytest.mark.asyncio
async def test_upsert_validated_place(repo, make_place):
    place = make_place()

    await repo.upsert_validated_place(place)

    query, update = repo.places_collection.update_one.call_args.args
    assert query == {"place_id": "place-louvre"}
    assert update["$inc"] == {"used_count": 1}
    assert update["$set"]["verified_name"] == "Louvre Museum"
    assert update["$set"]["validation_status"] == "valid"
    assert "discovered_name" not in update["$set"]
    assert update["$setOnInsert"]["discovered_name"] == "Louvre"
    assert repo.places_collection.update_one.call_args.kwargs["upsert"] is True


@pytest.mark.asyncio
async def test_append_validation_history(repo):
    await repo.append_validation_history("itin-9", {"place_id": "abc", "confidence_score": 0.8})

    doc = repo.history_collection.insert_one.call_args.args[0]
    assert doc["itinerary_id"] == "itin-9"
    assert doc["place_id"] == "abc"
    assert "created_at" in doc
