import asyncio

import pytest

from geo import distance_m
from models import Venue
from providers.venues import InMemoryVenueStore
from venue_index import MAX_CATEGORIES_PER_QUERY, GeospatialVenueIndex, VenueStoreUnavailable

CENTER = (37.3352, -121.8811)


def _venue(pid, north_m, categories, name=None):
    return Venue(
        placeId=pid,
        name=name or pid,
        lat=CENTER[0] + north_m / 111320.0,
        lng=CENTER[1],
        categories=categories,
    )


class RecordingStore:
    def __init__(self, inner, fail_on=None):
        self.inner = inner
        self.fail_on = fail_on
        self.calls = []

    async def query_range(self, start, end, categories):
        self.calls.append((start, end, list(categories)))
        if self.fail_on and self.fail_on in categories:
            raise RuntimeError("backend down")
        return await self.inner.query_range(start, end, categories)

    async def merge(self, place_id, fields):
        return None

    async def upsert_many(self, venues):
        return 0


class EverywhereStore:
    """Returns the same venue for every range, like overlapping bounds would."""

    def __init__(self, venue):
        self.venue = venue

    async def query_range(self, start, end, categories):
        return [self.venue]


def test_radius_and_category_filter():
    store = InMemoryVenueStore([
        _venue("near-cafe", 500, ["cafe"]),
        _venue("far-cafe", 1500, ["cafe"]),
        _venue("near-bar", 300, ["bar"]),
    ])
    hits = asyncio.run(GeospatialVenueIndex(store).search(CENTER, 1000, ["cafe"]))
    assert [h.venue.placeId for h in hits] == ["near-cafe"]
    assert hits[0].distance_m <= 1000
    assert abs(hits[0].distance_m - distance_m(CENTER, (hits[0].venue.lat, hits[0].venue.lng))) < 1e-9


def test_empty_categories_short_circuit():
    store = RecordingStore(InMemoryVenueStore([_venue("a", 10, ["cafe"])]))
    assert asyncio.run(GeospatialVenueIndex(store).search(CENTER, 1000, [])) == []
    assert store.calls == []


def test_categories_are_chunked():
    cats = [f"cat{i}" for i in range(23)] + ["cafe"]
    store = RecordingStore(InMemoryVenueStore([_venue("a", 10, ["cafe"])]))
    hits = asyncio.run(GeospatialVenueIndex(store).search(CENTER, 1000, cats))
    assert [h.venue.placeId for h in hits] == ["a"]

    chunk_sizes = sorted({len(c) for _, _, c in store.calls})
    assert max(chunk_sizes) <= MAX_CATEGORIES_PER_QUERY
    seen = {cat for _, _, c in store.calls for cat in c}
    assert seen == set(cats)
    bounds = {(s, e) for s, e, _ in store.calls}
    assert len(store.calls) == len(bounds) * 3


def test_failed_chunk_is_isolated():
    cats = [f"cat{i}" for i in range(9)] + ["cafe", "bar"]
    store = RecordingStore(
        InMemoryVenueStore([_venue("cafe", 100, ["cafe"]), _venue("bar", 100, ["bar"])]),
        fail_on="bar",
    )
    hits = asyncio.run(GeospatialVenueIndex(store).search(CENTER, 1000, cats))
    assert [h.venue.placeId for h in hits] == ["cafe"]


def test_results_deduped_by_place_id():
    store = EverywhereStore(_venue("dup", 50, ["cafe"]))
    hits = asyncio.run(GeospatialVenueIndex(store).search(CENTER, 1000, ["cafe"]))
    assert [h.venue.placeId for h in hits] == ["dup"]


class DownStore:
    def __init__(self):
        self.calls = 0

    async def query_range(self, start, end, categories):
        self.calls += 1
        raise RuntimeError("connection refused")


def test_all_queries_failing_raises():
    store = DownStore()
    index = GeospatialVenueIndex(store)
    with pytest.raises(VenueStoreUnavailable):
        asyncio.run(index.search(CENTER, 1000, ["cafe", "bar"]))
    assert store.calls >= 1
