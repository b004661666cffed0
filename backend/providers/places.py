# providers/places.py
# Google Places: details lookup for address enrichment, nearby search for seeding

import httpx
from typing import List, Optional

HEADERS = {
    "User-Agent": "CampusPlans/0.1",
    "Accept": "application/json",
}

DETAILS_URL = "https://places.googleapis.com/v1/places/{place_id}"
NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"


async def fetch_place_details(place_id: str, api_key: str) -> dict:
    """
    Returns {"address": ..., "mapsUrl": ...} (either may be missing).
    Non-200 -> {}. Transport errors propagate to the caller's timeout wrapper.
    """
    if not api_key:
        return {}
    params = {"fields": "formattedAddress,googleMapsUri", "key": api_key}
    async with httpx.AsyncClient(timeout=20.0, headers=HEADERS) as client:
        r = await client.get(DETAILS_URL.format(place_id=place_id), params=params)
        if r.status_code != 200:
            return {}
        js = r.json() or {}
        out = {}
        if js.get("formattedAddress"):
            out["address"] = js["formattedAddress"]
        if js.get("googleMapsUri"):
            out["mapsUrl"] = js["googleMapsUri"]
        return out


def photo_url(photo_reference: Optional[str], api_key: str, max_width: int = 400) -> str:
    if not photo_reference:
        return ""
    return f"{PHOTO_URL}?maxwidth={max_width}&photo_reference={photo_reference}&key={api_key}"


async def fetch_nearby(center: tuple[float, float], radius_m: int, keyword: str, api_key: str) -> List[dict]:
    """Raw Nearby Search results (first page only)."""
    if not api_key:
        return []
    lat, lng = center
    params = {
        "key": api_key,
        "location": f"{lat},{lng}",
        "radius": radius_m,
        "keyword": keyword,
    }
    async with httpx.AsyncClient(timeout=20.0, headers=HEADERS) as client:
        r = await client.get(NEARBY_URL, params=params)
        if r.status_code != 200:
            return []
        return (r.json() or {}).get("results") or []
