"""
Google Places API integration for candidate search, place details, photos and hours.
"""

import logging
from typing import Any

import httpx

from placecheck.core.errors import TransportError
from placecheck.core.schemas import CandidateEntity, Coordinates, OpeningHours, Photo, Review
from placecheck.core.settings import get_settings

logger = logging.getLogger(__name__)

PLACES_API_BASE = "https://maps.googleapis.com/maps/api/place"

DETAILS_FIELDS = (
    "place_id,name,formatted_address,formatted_phone_number,"
    "international_phone_number,geometry,rating,user_ratings_total,price_level,"
    "opening_hours,current_opening_hours,photos,types,website,url,reviews,"
    "editorial_summary,business_status"
)

# Bias radius around near_location for text search
SEARCH_RADIUS_M = 5000


class GooglePlacesService:
    """Async client for the Google Places text search and details endpoints."""

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("GOOGLE_MAPS_API_KEY not found in environment variables")
        self.timeout = timeout if timeout is not None else settings.places_request_timeout
        self._transport = transport

    async def _get(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{PLACES_API_BASE}/{endpoint}/json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params={**params, "key": self.api_key})
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            raise TransportError(f"Places API request to {endpoint} failed: {e}") from e

    async def text_search(
        self, query: str, near_location: Coordinates | None = None
    ) -> list[CandidateEntity]:
        """
        Search for places matching a free-text query.

        Args:
            query: Search query (e.g., "Louvre Museum Paris museum")
            near_location: Optional coordinates to bias results toward

        Returns:
            Candidates in provider order; empty list when nothing matches

        Raises:
            TransportError: On HTTP failure or a non-OK provider status
        """
        params: dict[str, Any] = {"query": query}
        if near_location:
            params["location"] = f"{near_location.lat},{near_location.lng}"
            params["radius"] = SEARCH_RADIUS_M

        data = await self._get("textsearch", params)

        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            message = data.get("error_message", "")
            raise TransportError(f"Places search failed: {status} {message}".strip())

        results = [CandidateEntity.from_google(raw) for raw in data.get("results", [])]
        logger.debug(f"[PlacesService] '{query}' returned {len(results)} candidates")
        return results

    async def get_place_details(self, place_id: str) -> dict[str, Any] | None:
        """
        Get detailed information about a specific place.

        Args:
            place_id: Google Place ID

        Returns:
            Raw details result, or None when the provider has no details for the ID

        Raises:
            TransportError: On HTTP failure
        """
        data = await self._get("details", {"place_id": place_id, "fields": DETAILS_FIELDS})

        if data.get("status") != "OK":
            logger.warning(f"[PlacesService] Place details failed for {place_id}: {data.get('status')}")
            return None

        return data.get("result") or None

    def get_place_photo_url(self, photo_reference: str, max_width: int = 800) -> str | None:
        """
        Get a photo URL from a photo reference.

        Args:
            photo_reference: Photo reference from Places API
            max_width: Maximum width in pixels (default 800)

        Returns:
            Photo URL string
        """
        if not photo_reference:
            return None

        return (
            f"{PLACES_API_BASE}/photo"
            f"?maxwidth={max_width}"
            f"&photo_reference={photo_reference}"
            f"&key={self.api_key}"
        )

    def extract_photos(self, details: dict[str, Any], count: int = 5) -> list[Photo]:
        photos = []
        for photo in (details.get("photos") or [])[:count]:
            reference = photo.get("photo_reference")
            if not reference:
                continue
            photos.append(
                Photo(
                    reference=reference,
                    width=photo.get("width"),
                    height=photo.get("height"),
                    url=self.get_place_photo_url(reference, 800),
                    attributions=photo.get("html_attributions", []),
                )
            )
        return photos

    def extract_reviews(self, details: dict[str, Any], count: int = 3) -> list[Review]:
        return [
            Review(
                author=review.get("author_name"),
                rating=review.get("rating"),
                text=review.get("text"),
                relative_time=review.get("relative_time_description"),
            )
            for review in (details.get("reviews") or [])[:count]
        ]

    def parse_opening_hours(self, details: dict[str, Any]) -> OpeningHours:
        """
        Parse opening hours from place details.

        Google lists weekday_text Monday first; the returned list starts on
        Sunday so it can be indexed by Weekday.
        """
        hours = details.get("current_opening_hours") or details.get("opening_hours")
        if not hours:
            return OpeningHours()

        weekday_text = list(hours.get("weekday_text") or [])
        if len(weekday_text) == 7:
            weekday_text = weekday_text[-1:] + weekday_text[:-1]

        return OpeningHours(
            weekday_text=weekday_text,
            periods=hours.get("periods") or [],
            is_open_now=hours.get("open_now"),
        )
