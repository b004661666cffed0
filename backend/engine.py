# engine.py
# startup context + request orchestration for campus plan generation

import functools
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from assembler import AddressLookup, ResultAssembler, ThemeCandidate
from ideas import CuratedIdeaMatcher, load_idea_bank
from ladder import RelaxationLadder
from models import CampusPlanRequest, CampusPlanResponse
from providers.places import fetch_place_details
from providers.venues import FirestoreVenueStore, InMemoryVenueStore, VenueStore
from rules import VibeTimeRuleEngine, load_rule_table
from settings import Settings
from utils import TTLCache, parse_cursor, seeded_rng, session_key
from venue_index import GeospatialVenueIndex

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineContext:
    """
    Everything a request needs, built once at startup. The only mutable
    parts are the venue store (address merges) and the session cache.
    """
    store: VenueStore
    matcher: CuratedIdeaMatcher
    rules: VibeTimeRuleEngine
    lookup_address: Optional[AddressLookup] = None
    target_count: int = 100
    default_page_size: int = 36
    default_radius_m: int = 1600
    require_curated_default: bool = False
    timeout_s: float = 12
    sessions: TTLCache = field(default_factory=lambda: TTLCache(ttl_seconds=600))

    @property
    def index(self) -> GeospatialVenueIndex:
        return GeospatialVenueIndex(self.store, timeout_s=self.timeout_s)

    @property
    def assembler(self) -> ResultAssembler:
        return ResultAssembler(self.matcher, self.store, self.lookup_address, timeout_s=self.timeout_s)


def build_context(cfg: Settings) -> EngineContext:
    if cfg.VENUE_STORE == "firestore":
        store = FirestoreVenueStore.connect(cfg.FIRESTORE_PROJECT, cfg.VENUES_COLLECTION)
    else:
        store = InMemoryVenueStore.from_json(cfg.VENUES_SEED_PATH)

    lookup = None
    if cfg.GOOGLE_PLACES_KEY:
        lookup = functools.partial(fetch_place_details, api_key=cfg.GOOGLE_PLACES_KEY)

    return EngineContext(
        store=store,
        matcher=CuratedIdeaMatcher(load_idea_bank(cfg.VENUE_IDEAS_PATH)),
        rules=VibeTimeRuleEngine(load_rule_table(cfg.VIBE_RULES_PATH)),
        lookup_address=lookup,
        target_count=cfg.TARGET_THEME_COUNT,
        default_page_size=cfg.DEFAULT_PAGE_SIZE,
        default_radius_m=cfg.DEFAULT_RADIUS_M,
        require_curated_default=cfg.REQUIRE_CURATED_ONLY,
        timeout_s=cfg.PROVIDER_TIMEOUT_S,
        sessions=TTLCache(ttl_seconds=cfg.SESSION_TTL_S, max_entries=cfg.SESSION_MAX_ENTRIES),
    )


@dataclass
class _Session:
    ordered: List[ThemeCandidate]
    relaxation_level: int
    radius_used_m: int


async def _build_session(ctx: EngineContext, req: CampusPlanRequest, radius: int, curated_only: bool, key: str) -> _Session:
    center = (req.originLat, req.originLng)
    index = ctx.index
    assembler = ctx.assembler

    async def attempt(radius_m: int, include_aliases: bool) -> List[ThemeCandidate]:
        cats = ctx.rules.resolve(req.moods, req.timeOfDay, include_aliases=include_aliases)
        hits = await index.search(center, radius_m, cats)
        candidates, _ = assembler.build_candidates(hits, curated_only=curated_only)
        return candidates

    result = await RelaxationLadder(target=ctx.target_count).run(attempt, radius)
    ordered = assembler.order(result.candidates, seeded_rng(key))
    return _Session(ordered, result.relaxation_level, result.radius_used_m)


async def generate_campus_plans(ctx: EngineContext, req: CampusPlanRequest) -> CampusPlanResponse:
    radius = req.maxDistanceMeters or ctx.default_radius_m
    curated_only = req.requireCuratedOnly if req.requireCuratedOnly is not None else ctx.require_curated_default
    page_size = req.pageSize or ctx.default_page_size

    # nothing resolves even with aliases: explicit empty result
    if not ctx.rules.resolve(req.moods, req.timeOfDay, include_aliases=True):
        log.info("no categories resolved moods=%s tod=%s", req.moods, req.timeOfDay)
        return CampusPlanResponse(themes=[], nextCursor=None, relaxationLevel=0, radiusUsedMeters=radius)

    key = session_key(
        req.originLat, req.originLng, req.moods, req.timeOfDay, radius, curated_only, college=req.college,
    )
    session = ctx.sessions.get(key)
    if session is None:
        session = await _build_session(ctx, req, radius, curated_only, key)
        if session.ordered:
            # an empty pool usually means the store was down; retry next request
            ctx.sessions.set(key, session)

    page, next_cursor = ResultAssembler.paginate(session.ordered, parse_cursor(req.pageCursor), page_size)
    await ctx.assembler.enrich(page)
    themes = [c.to_theme() for c in page]

    log.info(
        "curationReturnCoverage totalReturned=%d curatedReturned=%d requireCuratedOnly=%s",
        len(themes), sum(1 for t in themes if t.curated), curated_only,
    )
    return CampusPlanResponse(
        themes=themes,
        nextCursor=next_cursor,
        relaxationLevel=session.relaxation_level,
        radiusUsedMeters=session.radius_used_m,
    )
