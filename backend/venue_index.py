# venue_index.py
# circle + category set -> venues, via geohash range queries and a true-distance post-filter

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from geo import LatLng, distance_m, geohash_query_bounds
from models import Venue
from providers.venues import VenueStore
from utils import chunked, dedupe, run_with_timeout

log = logging.getLogger(__name__)

# array-contains-any accepts at most this many values per query
MAX_CATEGORIES_PER_QUERY = 10


class VenueStoreUnavailable(RuntimeError):
    """Every sub-query of one search failed; nothing was actually searched."""


@dataclass(frozen=True)
class VenueHit:
    venue: Venue
    distance_m: float


class GeospatialVenueIndex:
    def __init__(self, store: VenueStore, timeout_s: float = 12):
        self.store = store
        self.timeout_s = timeout_s

    async def _query(self, bound, chunk) -> Tuple[List[Venue], bool]:
        items, err = await run_with_timeout(
            self.store.query_range(bound[0], bound[1], chunk),
            self.timeout_s,
            f"venue query {bound[0]}..{bound[1]} x{len(chunk)}",
            default=[],
        )
        if err:
            # chunk failures are isolated; the rest of the fan-out still counts
            log.warning("venue chunk skipped: %s", err)
            return [], False
        return items or [], True

    async def search(self, center: LatLng, radius_m: float, categories: Sequence[str]) -> List[VenueHit]:
        """
        All venues within radius_m of center whose categories intersect
        `categories`, deduped by placeId. No ordering guarantee.

        Raises VenueStoreUnavailable when not a single range query succeeded.
        """
        if not categories or radius_m <= 0:
            return []

        bounds = geohash_query_bounds(center, radius_m)
        chunks = chunked(list(categories), MAX_CATEGORIES_PER_QUERY)
        results = await asyncio.gather(*[
            self._query(b, chunk) for b in bounds for chunk in chunks
        ])
        if not any(ok for _, ok in results):
            raise VenueStoreUnavailable(f"all {len(results)} venue queries failed at radius {radius_m}")

        venues = dedupe((v for batch, _ in results for v in batch), key=lambda v: v.placeId)
        hits: List[VenueHit] = []
        for v in venues:
            d = distance_m(center, (v.lat, v.lng))
            if d <= radius_m:
                hits.append(VenueHit(venue=v, distance_m=d))
        log.debug(
            "venue search radius=%s bounds=%d chunks=%d raw=%d within=%d",
            radius_m, len(bounds), len(chunks), len(venues), len(hits),
        )
        return hits
