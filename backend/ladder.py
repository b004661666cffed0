# ladder.py
# progressively looser retrieval until a target count is reached

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from assembler import ThemeCandidate

log = logging.getLogger(__name__)

# dynamic expansion after the fixed rungs
DYNAMIC_STEP_M = 2000
DYNAMIC_CAP_M = 10000


@dataclass(frozen=True)
class Rung:
    include_aliases: bool
    radius_factor: int


# 0 strict, 1 alias cats, 2 radius x2, 3 radius x5
RUNGS: Sequence[Rung] = (
    Rung(include_aliases=False, radius_factor=1),
    Rung(include_aliases=True, radius_factor=1),
    Rung(include_aliases=True, radius_factor=2),
    Rung(include_aliases=True, radius_factor=5),
)

# (radius_m, include_aliases) -> candidates found at that breadth
Attempt = Callable[[int, bool], Awaitable[List[ThemeCandidate]]]


@dataclass
class LadderResult:
    candidates: List[ThemeCandidate]
    relaxation_level: int
    radius_used_m: int


def merge_pool(pool: List[ThemeCandidate], extra: List[ThemeCandidate], limit: Optional[int] = None) -> List[ThemeCandidate]:
    """Append unseen placeIds; entries already in the pool win."""
    merged = list(pool)
    seen = {c.place_id for c in merged}
    for c in extra:
        if limit is not None and len(merged) >= limit:
            break
        if c.place_id not in seen:
            merged.append(c)
            seen.add(c.place_id)
    return merged


class RelaxationLadder:
    def __init__(
        self,
        target: int,
        rungs: Sequence[Rung] = RUNGS,
        step_m: int = DYNAMIC_STEP_M,
        cap_m: int = DYNAMIC_CAP_M,
    ):
        self.target = target
        self.rungs = tuple(rungs)
        self.step_m = step_m
        self.cap_m = cap_m

    async def _try(self, attempt: Attempt, radius: int, include_aliases: bool, label: str) -> Optional[List[ThemeCandidate]]:
        try:
            return await attempt(radius, include_aliases)
        except Exception:
            log.exception("%s failed radius=%d aliases=%s", label, radius, include_aliases)
            return None

    async def run(self, attempt: Attempt, base_radius_m: int) -> LadderResult:
        """
        Rungs run strictly in order; the pool only ever grows, so a later
        rung never returns fewer candidates than an earlier one found.
        """
        pool: List[ThemeCandidate] = []
        radius_used = 0

        for level, rung in enumerate(self.rungs):
            radius = base_radius_m * rung.radius_factor
            found = await self._try(attempt, radius, rung.include_aliases, f"ladder rung {level}")
            if found is None:
                continue
            pool = merge_pool(pool, found)
            radius_used = max(radius_used, radius)
            log.info("ladder rung %d radius=%d aliases=%s pool=%d", level, radius, rung.include_aliases, len(pool))
            if len(pool) >= self.target:
                return LadderResult(pool, level, radius)

        # floor pass at the widest fixed breadth, runs even if every rung failed
        level = len(self.rungs)
        widest = self.rungs[-1]
        floor_radius = base_radius_m * widest.radius_factor
        found = await self._try(attempt, floor_radius, True, "ladder floor")
        if found is not None:
            pool = merge_pool(pool, found)
            radius_used = max(radius_used, floor_radius)

        # grow the radius until the target is met or the cap is reached
        dynamic = floor_radius
        while len(pool) < self.target and dynamic < self.cap_m:
            dynamic += self.step_m
            extra = await self._try(attempt, dynamic, True, "dynamic expand")
            if extra is None:
                # persistent backend failure must not spin forever
                break
            pool = merge_pool(pool, extra, limit=self.target)
            radius_used = max(radius_used, dynamic)
            log.info("dynamic expand radius=%d pool=%d", dynamic, len(pool))

        # nothing answered: report the requested radius, not one never searched
        return LadderResult(pool, level, radius_used or base_radius_m)
