# assembler.py
# candidate pool -> themed, deduped, shuffled, enriched page

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from fallback import build_fallback
from ideas import CuratedIdeaMatcher, IdeaHit
from models import CuratedMatch, GeneratedTheme, Pairing, Venue
from providers.venues import VenueStore
from utils import dedupe, run_with_timeout, shuffle
from venue_index import VenueHit

log = logging.getLogger(__name__)

AddressLookup = Callable[[str], Awaitable[dict]]


@dataclass
class ThemeCandidate:
    venue: Venue
    distance_m: float
    pairing: Pairing

    @property
    def place_id(self) -> str:
        return self.venue.placeId

    @property
    def curated(self) -> bool:
        return isinstance(self.pairing, CuratedMatch)

    def to_theme(self) -> GeneratedTheme:
        return GeneratedTheme.build(self.venue, self.distance_m, self.pairing)


class ResultAssembler:
    def __init__(
        self,
        matcher: CuratedIdeaMatcher,
        store: Optional[VenueStore] = None,
        lookup_address: Optional[AddressLookup] = None,
        timeout_s: float = 12,
    ):
        self.matcher = matcher
        self.store = store
        self.lookup_address = lookup_address
        self.timeout_s = timeout_s

    def pair(self, venue: Venue) -> Pairing:
        outcome = self.matcher.lookup(venue.name)
        if isinstance(outcome, IdeaHit):
            return CuratedMatch(slug=outcome.slug, action=outcome.idea.action, photo=outcome.idea.photoPrompt)
        return build_fallback(venue.name, venue.categories)

    def build_candidates(self, hits: Iterable[VenueHit], curated_only: bool = False) -> Tuple[List[ThemeCandidate], int]:
        """
        Dedupe hits by placeId and attach action/photo content.
        Returns (candidates, dropped_for_curated_only).
        """
        hits = dedupe(hits, key=lambda h: h.venue.placeId)
        out: List[ThemeCandidate] = []
        dropped = 0
        for h in hits:
            pairing = self.pair(h.venue)
            if curated_only and not isinstance(pairing, CuratedMatch):
                dropped += 1
                continue
            out.append(ThemeCandidate(venue=h.venue, distance_m=h.distance_m, pairing=pairing))

        if curated_only:
            log.info(
                "curationCoverage considered=%d curatedMatches=%d droppedForCuratedOnly=%d",
                len(hits), len(out), dropped,
            )
        else:
            log.debug(
                "curationCoverageSample considered=%d curatedMatches=%d",
                len(out), sum(1 for c in out if c.curated),
            )
        return out, dropped

    @staticmethod
    def order(candidates: Iterable[ThemeCandidate], rng: random.Random) -> List[ThemeCandidate]:
        """Dedupe, then one uniform shuffle to interleave venues found under different moods."""
        return shuffle(dedupe(candidates, key=lambda c: c.place_id), rng)

    @staticmethod
    def paginate(items: List[ThemeCandidate], offset: int, page_size: int) -> Tuple[List[ThemeCandidate], Optional[str]]:
        start = min(max(0, offset), len(items))
        end = min(start + page_size, len(items))
        next_cursor = str(end) if end < len(items) else None
        return items[start:end], next_cursor

    async def _enrich_one(self, cand: ThemeCandidate) -> None:
        fetched, err = await run_with_timeout(
            self.lookup_address(cand.place_id),
            self.timeout_s,
            f"address lookup {cand.place_id}",
            default={},
        )
        if err or not fetched:
            return
        address = fetched.get("address") or None
        maps_url = fetched.get("mapsUrl") or cand.venue.mapsUrl
        if not address and not maps_url:
            return
        cand.venue = cand.venue.model_copy(update={"address": address, "mapsUrl": maps_url})
        if self.store is None:
            return
        try:
            await self.store.merge(cand.place_id, {"address": address, "mapsUrl": maps_url})
        except Exception as e:
            log.warning("address merge failed placeId=%s: %s", cand.place_id, e)

    async def enrich(self, candidates: List[ThemeCandidate]) -> None:
        """
        Fill missing addresses concurrently. Best-effort: a failed lookup
        leaves the field empty and never blocks the response.
        """
        if self.lookup_address is None:
            return
        missing = [c for c in candidates if not c.venue.address]
        if missing:
            await asyncio.gather(*[self._enrich_one(c) for c in missing])
