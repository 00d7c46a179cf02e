import logging
from typing import Protocol
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"


class PhotoLookup(Protocol):
    def lookup(self, place_id: str) -> str | None: ...

    def photo_url(self, reference: str) -> str: ...


class PlacesLookupError(Exception):
    """The Places API answered with an error status or an unexpected payload."""


class PlacesClient:
    """Google Places Details lookup for a place's first photo."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        max_width: int = 800,
        http_client: httpx.Client | None = None,
    ):
        self._api_key = api_key
        self.max_width = max_width
        self._http = http_client or httpx.Client(timeout=timeout)

    def lookup(self, place_id: str) -> str | None:
        """
        Return the reference of the place's first photo, or None if it has none.

        Raises:
            PlacesLookupError: Missing API key, error status, or malformed payload.
            httpx.HTTPError: Network failure or non-2xx response.
        """
        if not self._api_key:
            raise PlacesLookupError("GOOGLE_PLACES_API_KEY is not set")

        response = self._http.get(
            DETAILS_URL,
            params={"place_id": place_id, "fields": "photos", "key": self._api_key},
        )
        response.raise_for_status()
        payload = response.json()

        status = payload.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise PlacesLookupError(
                f"details lookup failed: {status} {payload.get('error_message', '')}".strip()
            )

        photos = (payload.get("result") or {}).get("photos") or []
        if not photos:
            return None
        reference = photos[0].get("photo_reference") if isinstance(photos[0], dict) else None
        if not isinstance(reference, str) or not reference:
            raise PlacesLookupError("photo entry without photo_reference")

        logger.debug("Found photo reference for place %s", place_id)
        return reference

    def photo_url(self, reference: str) -> str:
        query = urlencode(
            {"maxwidth": self.max_width, "photo_reference": reference, "key": self._api_key}
        )
        return f"{PHOTO_URL}?{query}"

    def close(self) -> None:
        self._http.close()
