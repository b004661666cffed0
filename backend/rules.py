# rules.py
# vibe + time-of-day -> allowed venue categories

import json
import logging
import os
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

log = logging.getLogger(__name__)

ANY_TIME = "any"

# used when a vibe has no entry in the rule table at all
DEFAULT_VIBE_CATS: Mapping[str, Sequence[str]] = MappingProxyType({
    "artsy": ("museum", "art_gallery"),
    "outdoorsy": ("park", "trail", "outdoor_walk"),
    "romantic": ("restaurant", "dessert_shop"),
    "arcade": ("arcade", "board_games"),
    "live music": ("live_music", "music_venue", "bar"),
    "boba stop": ("bubble_tea", "cafe", "dessert_shop"),
    "comfort bites": ("restaurant", "dessert_shop"),
    "bar hop": ("bar", "sports_bar"),
})

# looser neighbours admitted by the "include aliases" rungs
CATEGORY_ALIASES: Mapping[str, Sequence[str]] = MappingProxyType({
    "bubble_tea": ("cafe", "dessert_shop"),
    "arcade": ("barcade", "video_game_store"),
})

RuleTable = Mapping[str, Mapping[str, Sequence[str]]]


def load_rule_table(path: str | None) -> RuleTable:
    """
    Read {vibe: {timeOfDay | "any": [category, ...]}} from JSON.

    A missing or unreadable file yields an empty table so every vibe falls
    through to DEFAULT_VIBE_CATS.
    """
    if not path or not os.path.exists(path):
        return MappingProxyType({})
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        log.warning("vibe rules unreadable at %s: %s", path, e)
        return MappingProxyType({})
    if not isinstance(data, dict):
        log.warning("vibe rules at %s is not an object, ignoring", path)
        return MappingProxyType({})

    table = {}
    for vibe, buckets in data.items():
        if not isinstance(buckets, dict):
            continue
        table[str(vibe).lower()] = MappingProxyType({
            str(tod).lower(): tuple(cats or ())
            for tod, cats in buckets.items()
            if isinstance(cats, list)
        })
    return MappingProxyType(table)


class VibeTimeRuleEngine:
    def __init__(self, rules: RuleTable | None = None):
        self.rules = rules or MappingProxyType({})

    def _categories_for(self, vibe: str, time_of_day: str) -> Sequence[str]:
        rule = self.rules.get(vibe)
        if rule is not None:
            # an explicit (even empty) bucket for this time wins over "any"
            key = time_of_day if time_of_day in rule else ANY_TIME
            return rule.get(key, ())
        if vibe in DEFAULT_VIBE_CATS:
            log.debug("no rule for vibe %r, using defaults", vibe)
            return DEFAULT_VIBE_CATS[vibe]
        return ()

    def resolve(self, moods: Iterable[str], time_of_day: str, include_aliases: bool = False) -> list[str]:
        """
        Union of allowed categories over every mood, in first-seen order.

        An empty list means nothing resolved; callers treat that as zero
        results rather than an error.
        """
        tod = (time_of_day or ANY_TIME).lower()
        allowed: dict[str, None] = {}
        for mood in moods:
            vibe = mood.strip().lower()
            if not vibe:
                continue
            for cat in self._categories_for(vibe, tod):
                allowed[cat] = None
                if include_aliases:
                    for alias in CATEGORY_ALIASES.get(cat, ()):
                        allowed[alias] = None
        return list(allowed)
