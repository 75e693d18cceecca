#!/usr/bin/env python3
"""
Validate an itinerary file against Google Places and print the enriched result.

The file holds {"activities": [...], "restaurants": [...]}. Validated places
are saved to MongoDB when MONGODB_URI is set.

Usage:
    python scripts/validate_itinerary.py itinerary.json [--itinerary-id ID]
"""

import argparse
import asyncio
import json
import logging
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from placecheck.core.repository import ValidatedPlacesRepo
from placecheck.core.settings import configure_logging, get_settings
from placecheck.core.validation_orchestrator import ValidationOrchestrator

logger = logging.getLogger(__name__)


def print_section(title: str):
    """Print a formatted section header."""
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80 + "\n")


async def validate_itinerary(path: str, itinerary_id: str | None) -> int:
    with open(path, encoding="utf-8") as f:
        itinerary = json.load(f)

    settings = get_settings()
    repository = ValidatedPlacesRepo(settings=settings) if settings.mongodb_uri else None
    if repository is None:
        logger.info("MONGODB_URI not set, validated places will not be saved")

    orchestrator = ValidationOrchestrator(repository=repository, settings=settings)

    connection = await orchestrator.test_connection()
    if not connection["working"]:
        print(f"❌ Google Places API unavailable: {connection['message']}")
        return 1

    activities = await orchestrator.validate_activities(
        itinerary.get("activities") or [], itinerary_id
    )
    restaurants = await orchestrator.validate_restaurants(
        itinerary.get("restaurants") or [], itinerary_id
    )
    await orchestrator.drain_pending_writes()

    print_section("Enriched Itinerary")
    print(json.dumps({**itinerary, "activities": activities, "restaurants": restaurants}, indent=2))

    print_section("Validation Statistics")
    stats = orchestrator.get_stats()
    print(f"Total places: {stats['total']}")
    print(f"✓ Validated: {stats['validated']} ({stats['validation_rate']:.1%})")
    print(f"✓ Enriched: {stats['enriched']} ({stats['enrichment_rate']:.1%})")
    print(f"❌ Failed: {stats['failed']}")
    print(f"⚠️  Availability issues: {stats['availability_issues']}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate an itinerary against Google Places")
    parser.add_argument("itinerary", help="Path to the itinerary JSON file")
    parser.add_argument("--itinerary-id", default=None, help="ID recorded in validation history")
    args = parser.parse_args()

    configure_logging()
    return asyncio.run(validate_itinerary(args.itinerary, args.itinerary_id))


if __name__ == "__main__":
    sys.exit(main())
