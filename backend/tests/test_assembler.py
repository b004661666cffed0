import asyncio
import random
from unittest.mock import AsyncMock

from assembler import ResultAssembler, ThemeCandidate
from ideas import CuratedIdeaMatcher
from models import CuratedIdea, CuratedMatch, FallbackPairing, Venue
from providers.venues import InMemoryVenueStore
from venue_index import VenueHit


def _matcher():
    return CuratedIdeaMatcher([
        CuratedIdea(slug="tea_alley", action="Order blind", photoPrompt="Cups up"),
    ])


def _venue(pid, name="Spot", categories=("restaurant",), address=None):
    return Venue(placeId=pid, name=name, lat=37.0, lng=-121.0, categories=list(categories), address=address)


def _candidate(pid, address=None):
    return ThemeCandidate(
        venue=_venue(pid, address=address),
        distance_m=10.0,
        pairing=FallbackPairing(action="a", photo="p"),
    )


def test_build_candidates_pairs_curated_and_fallback():
    hits = [
        VenueHit(_venue("t", "Tea Alley San Jose", ["bubble_tea"]), 120.4),
        VenueHit(_venue("d", "XYZ Random Diner", ["restaurant"]), 640.6),
        VenueHit(_venue("t", "Tea Alley San Jose", ["bubble_tea"]), 120.4),
    ]
    cands, dropped = ResultAssembler(_matcher()).build_candidates(hits)
    assert dropped == 0
    assert [c.place_id for c in cands] == ["t", "d"]
    assert cands[0].pairing == CuratedMatch(slug="tea_alley", action="Order blind", photo="Cups up")
    assert isinstance(cands[1].pairing, FallbackPairing)

    tea, diner = (c.to_theme() for c in cands)
    assert tea.curated and tea.matchedSlug == "tea_alley"
    assert tea.missionLines == ["Order blind", "Photo Idea: Cups up"]
    assert tea.title == "Tea Alley San Jose Adventure"
    assert tea.distanceMeters == 120
    assert not diner.curated and diner.matchedSlug is None
    assert diner.missionLines[0].startswith("Share plates at XYZ Random Diner")
    assert diner.distanceMeters == 641


def test_curated_only_drops_fallbacks():
    hits = [
        VenueHit(_venue("t", "Tea Alley San Jose"), 1.0),
        VenueHit(_venue("d", "XYZ Random Diner"), 1.0),
    ]
    cands, dropped = ResultAssembler(_matcher()).build_candidates(hits, curated_only=True)
    assert [c.place_id for c in cands] == ["t"]
    assert dropped == 1
    assert all(c.curated for c in cands)


def test_order_is_seeded_permutation():
    cands = [_candidate(f"v{i}") for i in range(20)] + [_candidate("v0")]
    first = ResultAssembler.order(cands, random.Random(7))
    second = ResultAssembler.order(cands, random.Random(7))
    assert [c.place_id for c in first] == [c.place_id for c in second]
    assert sorted(c.place_id for c in first) == sorted(f"v{i}" for i in range(20))


def test_paginate():
    items = [_candidate(f"v{i}") for i in range(25)]
    page, nxt = ResultAssembler.paginate(items, 0, 10)
    assert [c.place_id for c in page] == [f"v{i}" for i in range(10)]
    assert nxt == "10"
    page, nxt = ResultAssembler.paginate(items, 10, 10)
    assert page[0].place_id == "v10" and nxt == "20"
    page, nxt = ResultAssembler.paginate(items, 20, 10)
    assert len(page) == 5 and nxt is None
    page, nxt = ResultAssembler.paginate(items, 99, 10)
    assert page == [] and nxt is None


def test_enrich_merges_into_store():
    store = InMemoryVenueStore([_venue("a"), _venue("b", address="Known St")])
    calls = []

    async def lookup(place_id):
        calls.append(place_id)
        return {"address": "1 Main St", "mapsUrl": "https://maps/a"}

    cands = [ThemeCandidate(store.get(pid), 5.0, FallbackPairing("a", "p")) for pid in ("a", "b")]
    asyncio.run(ResultAssembler(_matcher(), store, lookup).enrich(cands))

    assert calls == ["a"]
    assert cands[0].venue.address == "1 Main St"
    assert cands[0].to_theme().address == "1 Main St"
    assert store.get("a").address == "1 Main St"
    assert store.get("a").mapsUrl == "https://maps/a"
    assert store.get("b").address == "Known St"


def test_enrich_failure_leaves_address_empty():
    store = InMemoryVenueStore([_venue("a"), _venue("b")])

    async def lookup(place_id):
        if place_id == "a":
            raise RuntimeError("quota")
        return {}

    cands = [ThemeCandidate(store.get(pid), 5.0, FallbackPairing("a", "p")) for pid in ("a", "b")]
    asyncio.run(ResultAssembler(_matcher(), store, lookup).enrich(cands))
    assert [c.venue.address for c in cands] == [None, None]
    assert store.get("a").address is None


def test_enrich_without_lookup_is_noop():
    cands = [_candidate("a")]
    asyncio.run(ResultAssembler(_matcher()).enrich(cands))
    assert cands[0].venue.address is None


def test_store_merge_failure_keeps_page_address():
    store = AsyncMock()
    store.merge.side_effect = RuntimeError("firestore down")
    lookup = AsyncMock(return_value={"address": "2 Side St"})

    cands = [_candidate("a")]
    asyncio.run(ResultAssembler(_matcher(), store, lookup).enrich(cands))

    lookup.assert_awaited_once_with("a")
    store.merge.assert_awaited_once_with("a", {"address": "2 Side St", "mapsUrl": None})
    assert cands[0].venue.address == "2 Side St"
