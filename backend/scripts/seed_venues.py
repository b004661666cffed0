"""Pull nearby venues from Google Places and write them to the venue store.

Usage (from backend/):
    python -m scripts.seed_venues --lat 37.3352 --lng -121.8811 --radius 1600 --city sjsu

Each vibe category is searched with one or more Places keywords; results are
deduped by place id and stored with a computed geohash so the campus plan
engine can find them with range queries. GOOGLE_PLACES_KEY must be set.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from geo import geohash_for_location
from models import Venue
from providers.places import fetch_nearby, photo_url
from providers.venues import FirestoreVenueStore, InMemoryVenueStore, VenueStore
from settings import settings

LOG = logging.getLogger("seed_venues")

# vibe category -> Places search keywords
CATEGORIES: Dict[str, Sequence[str]] = {
    "bubble_tea": ("bubble_tea", "boba", "tea_house"),
    "cafe": ("cafe", "coffee", "coffee_shop"),
    "bar": ("bar", "cocktail_bar", "speakeasy", "brewpub", "wine_bar"),
    "dessert_shop": ("bakery", "dessert", "ice_cream", "gelato"),
    "arcade": (
        "amusement_arcade", "barcade", "arcade", "video_game_store",
        "entertainment_center", "recreation_center", "bowling_alley",
    ),
    "music_venue": ("music_venue", "live_music", "concert_hall", "piano_bar", "jazz_club"),
    "art_gallery": ("art_gallery", "museum", "exhibit", "modern_art"),
    "outdoor_walk": ("park", "garden", "arboretum", "scenic_view"),
    "board_games": ("board_game_cafe", "board_games", "tabletop"),
    "sports_bar": ("sports_bar", "sports_grill"),
}

NearbyFetch = Callable[[tuple, int, str, str], Awaitable[List[dict]]]


def venue_from_place(result: dict, category: str, city: str, api_key: str) -> Optional[Venue]:
    loc = ((result.get("geometry") or {}).get("location")) or {}
    if not result.get("place_id") or loc.get("lat") is None or loc.get("lng") is None:
        return None
    lat, lng = float(loc["lat"]), float(loc["lng"])
    photos = result.get("photos") or []
    return Venue(
        placeId=result["place_id"],
        name=result.get("name") or "Venue",
        lat=lat,
        lng=lng,
        geohash=geohash_for_location((lat, lng)),
        categories=[category],
        price_level=result.get("price_level", 2),
        photoUrl=photo_url(photos[0].get("photo_reference") if photos else None, api_key),
        source="seedScript",
        city=city,
    )


async def seed(
    store: VenueStore,
    center: tuple[float, float],
    radius_m: int,
    city: str,
    api_key: str,
    fetch: NearbyFetch = fetch_nearby,
) -> int:
    total = 0
    for category, keywords in CATEGORIES.items():
        unique: Dict[str, dict] = {}
        for keyword in keywords:
            results = await fetch(center, radius_m, keyword, api_key)
            LOG.info("fetched %s (%s): %d results", category, keyword, len(results))
            for r in results:
                if r.get("place_id"):
                    unique[r["place_id"]] = r
        venues = [v for v in (venue_from_place(r, category, city, api_key) for r in unique.values()) if v]
        total += await store.upsert_many(venues)
    return total


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--lat", type=float, required=True)
    parser.add_argument("--lng", type=float, required=True)
    parser.add_argument("--radius", type=int, default=1600)
    parser.add_argument("--city", default="campus")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    if not settings.GOOGLE_PLACES_KEY:
        LOG.error("GOOGLE_PLACES_KEY env var missing")
        return 1

    if settings.VENUE_STORE == "firestore":
        store = FirestoreVenueStore.connect(settings.FIRESTORE_PROJECT, settings.VENUES_COLLECTION)
    else:
        store = InMemoryVenueStore.from_json(settings.VENUES_SEED_PATH)

    n = asyncio.run(seed(store, (args.lat, args.lng), args.radius, args.city, settings.GOOGLE_PLACES_KEY))
    if isinstance(store, InMemoryVenueStore):
        store.dump_json(settings.VENUES_SEED_PATH)
        LOG.info("wrote %d venues to %s", len(store), settings.VENUES_SEED_PATH)
    LOG.info("Seeding complete: %d venues written", n)
    return 0


if __name__ == "__main__":
    sys.exit(main())
