from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pymongo import MongoClient

from placecheck.core.schemas import ValidatedPlace
from placecheck.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ValidatedPlacesRepo:
    """MongoDB registry of validated places and their validation history."""

    def __init__(self, client: Optional[MongoClient] = None, settings: Settings | None = None):
        settings = settings or get_settings()

        if client is None:
            if not settings.mongodb_uri:
                raise ValueError("MONGODB_URI environment variable is required")
            client = MongoClient(
                settings.mongodb_uri,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
                socketTimeoutMS=20000,
                retryWrites=True,
                retryReads=True,
            )

        self.client = client
        self.db = self.client[settings.database_name]

        # Collections
        self.places_collection = self.db.validated_places
        self.history_collection = self.db.place_validation_history

        try:
            self.places_collection.create_index("place_id", unique=True)
            self.history_collection.create_index("itinerary_id")
        except Exception as e:
            logger.warning(f"Index creation failed (might already exist): {e}")

    async def upsert_validated_place(self, place: ValidatedPlace) -> None:
        """Insert or refresh a validated place, bumping its usage counter."""
        now = datetime.now(timezone.utc)
        doc = place.model_dump(
            mode="json",
            exclude={"discovered_name", "discovered_from", "validated_at"},
        )
        doc.update(
            {
                "validation_status": "valid",
                "last_checked_at": now,
                "last_used_at": now,
                "updated_at": now,
            }
        )

        def _upsert():
            return self.places_collection.update_one(
                {"place_id": place.place_id},
                {
                    "$set": doc,
                    "$inc": {"used_count": 1},
                    "$setOnInsert": {
                        "discovered_name": place.discovered_name,
                        "discovered_from": place.discovered_from,
                        "created_at": now,
                    },
                },
                upsert=True,
            )

        await asyncio.to_thread(_upsert)

    async def append_validation_history(self, itinerary_id: str, record: dict[str, Any]) -> None:
        """Append an immutable validation record for an itinerary."""
        history_doc = {
            "itinerary_id": itinerary_id,
            "created_at": datetime.now(timezone.utc),
            **record,
        }

        def _insert():
            return self.history_collection.insert_one(history_doc)

        await asyncio.to_thread(_insert)


_repo: ValidatedPlacesRepo | None = None


def get_repository() -> ValidatedPlacesRepo:
    """Get or create the shared repository instance."""
    global _repo
    if _repo is None:
        _repo = ValidatedPlacesRepo()
    return _repo
