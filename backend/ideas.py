# ideas.py
# curated idea bank: slug normalization, tolerant loading, exact/alias + scored fuzzy lookup

import json
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from models import CuratedIdea

log = logging.getLogger(__name__)

CITY_SUFFIXES = ("_san_jose", "_sj")

# matching hygiene only, never used for alias generation
STOPWORDS = frozenset({
    "san", "jose", "sj", "the", "and", "bar", "pub", "brew", "brewing", "bakery", "cafe", "coffee", "tea", "boba",
    "market", "center", "garden", "park", "museum", "gallery", "studio", "house", "street", "st", "ave", "avenue",
    "blvd", "road", "rd",
})

# tokens/bigrams shared by more ideas than this carry no signal
NOISE_THRESHOLD = 10


def _fold(s: str) -> str:
    """lower-case, &/+ -> and, strip diacritics"""
    lowered = re.sub(r"[&+]", " and ", s.lower())
    decomposed = unicodedata.normalize("NFD", lowered)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify(name: str) -> str:
    """
    Deterministic lookup key for a venue name.

    "Tea & Alley" -> "tea_and_alley", "Café Lumière" -> "cafe_lumiere".
    Idempotent: slugify(slugify(x)) == slugify(x).
    """
    return re.sub(r"[^a-z0-9]+", "_", _fold(name)).strip("_")


def norm_for_match(s: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^a-z0-9\s]", " ", _fold(s))).strip()


def tokenize(s: str) -> List[str]:
    return [t for t in norm_for_match(s).split(" ") if t and t not in STOPWORDS]


def bigrams(tokens: Sequence[str]) -> List[str]:
    return [f"{a} {b}" for a, b in zip(tokens, tokens[1:])]


# -------- loading --------

def parse_loose_ideas(text: str) -> List[dict]:
    """
    Pull every well-formed top-level {...} object out of text.

    Tolerates NDJSON, objects not wrapped in an array, stray commas and
    corrupted regions between objects. Braces inside strings are ignored.
    """
    items: List[dict] = []
    depth = 0
    in_str = False
    esc = False
    start = -1
    for i, ch in enumerate(text):
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}":
            if depth == 0:
                # unbalanced close in a corrupted region
                continue
            depth -= 1
            if depth == 0 and start >= 0:
                try:
                    obj = json.loads(text[start:i + 1])
                except ValueError:
                    obj = None
                if isinstance(obj, dict):
                    items.append(obj)
                start = -1
    return items


def parse_idea_bank(text: str) -> Tuple[CuratedIdea, ...]:
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    raw = parsed if isinstance(parsed, list) else parse_loose_ideas(text)

    ideas: List[CuratedIdea] = []
    for obj in raw:
        try:
            ideas.append(CuratedIdea.model_validate(obj))
        except ValidationError:
            log.debug("skipping malformed idea entry: %r", obj)
    return tuple(ideas)


def load_idea_bank(path: str) -> Tuple[CuratedIdea, ...]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        log.warning("failed to read idea bank file %s: %s", path, e)
        return ()
    ideas = parse_idea_bank(content)
    log.info("loaded %d curated ideas from %s", len(ideas), path)
    return ideas


# -------- alias map --------

def _connector_variants(slug: str) -> List[str]:
    out = []
    if "_and_" in slug:
        out.append(slug.replace("_and_", "_n_"))
        out.append(slug.replace("_and_", "_"))
    if "_n_" in slug:
        out.append(slug.replace("_n_", "_and_"))
        out.append(slug.replace("_n_", "_"))
    return out


def derived_aliases(idea: CuratedIdea) -> List[str]:
    """Manual aliases plus city-suffix and connector variants of the slug."""
    aliases = list(idea.aliases)
    aliases += [idea.slug + suffix for suffix in CITY_SUFFIXES]
    aliases += _connector_variants(idea.slug)
    for suffix in CITY_SUFFIXES:
        if idea.slug.endswith(suffix):
            aliases.append(idea.slug[: -len(suffix)])
    return list(dict.fromkeys(a for a in aliases if a))


def build_idea_map(ideas: Iterable[CuratedIdea]) -> Mapping[str, CuratedIdea]:
    """
    slug/alias -> idea. Own slugs always bind; an alias never overwrites an
    existing binding.
    """
    ideas = list(ideas)
    mapping: Dict[str, CuratedIdea] = {idea.slug: idea for idea in ideas}
    for idea in ideas:
        for alias in derived_aliases(idea):
            bound = mapping.setdefault(alias, idea)
            if bound is not idea:
                log.debug("alias collision skipped alias=%s slug=%s", alias, idea.slug)
    return MappingProxyType(mapping)


def query_variants(slug: str) -> List[str]:
    """The slug itself, then connector-dropped and city-stripped forms."""
    variants = [slug]
    for v in [slug] + _connector_variants(slug):
        for suffix in CITY_SUFFIXES:
            if v.endswith(suffix) and len(v) > len(suffix):
                variants.append(v[: -len(suffix)])
        variants.append(v)
    return list(dict.fromkeys(variants))


# -------- matcher --------

@dataclass(frozen=True)
class _IdeaMeta:
    idea: CuratedIdea
    tokens: frozenset
    bigrams: frozenset
    norm_aliases: frozenset


@dataclass(frozen=True)
class IdeaHit:
    idea: CuratedIdea
    slug: str
    exact: bool
    score: int = 0
    token_matches: Tuple[str, ...] = ()
    bigram_matches: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IdeaMiss:
    """No curated idea cleared the gate; kept for curation-bank expansion."""
    name: str
    slug: str
    tokens: Tuple[str, ...] = field(default_factory=tuple)


MatchOutcome = Union[IdeaHit, IdeaMiss]


class CuratedIdeaMatcher:
    """
    Immutable once built. Construct one at startup and share it.
    """

    def __init__(self, ideas: Iterable[CuratedIdea]):
        self.ideas: Tuple[CuratedIdea, ...] = tuple(ideas)
        self.idea_map = build_idea_map(self.ideas)

        metas = []
        for idea in self.ideas:
            ts = tokenize(" ".join([idea.slug.replace("_", " "), *idea.aliases]))
            metas.append(_IdeaMeta(
                idea=idea,
                tokens=frozenset(ts),
                bigrams=frozenset(bigrams(ts)),
                norm_aliases=frozenset(norm_for_match(a) for a in idea.aliases),
            ))
        self._metas: Tuple[_IdeaMeta, ...] = tuple(metas)

        df: Dict[str, int] = {}
        for m in self._metas:
            for key in (*m.tokens, *m.bigrams):
                df[key] = df.get(key, 0) + 1
        self._df: Mapping[str, int] = MappingProxyType(df)

    def __len__(self) -> int:
        return len(self.ideas)

    def _exact(self, slug: str) -> Optional[CuratedIdea]:
        for candidate in query_variants(slug):
            idea = self.idea_map.get(candidate)
            if idea is not None:
                return idea
        return None

    def _fuzzy(self, name: str) -> Optional[IdeaHit]:
        q_tokens = tokenize(name)
        q_bigrams = bigrams(q_tokens)
        q_norm = norm_for_match(name)

        best: Optional[IdeaHit] = None
        best_key = None
        for m in self._metas:
            token_matches = tuple(t for t in q_tokens if t in m.tokens and self._df.get(t, 0) <= NOISE_THRESHOLD)
            bigram_matches = tuple(b for b in q_bigrams if b in m.bigrams and self._df.get(b, 0) <= NOISE_THRESHOLD)
            if not token_matches and not bigram_matches:
                continue

            score = len(token_matches) + 2 * len(bigram_matches)
            if q_norm in m.norm_aliases:
                score += 5

            # accept on 2+ combined matches or score >= 3
            if len(token_matches) + len(bigram_matches) < 2 and score < 3:
                continue

            key = (-score, -len(bigram_matches), -len(token_matches), m.idea.slug)
            if best_key is None or key < best_key:
                best_key = key
                best = IdeaHit(
                    idea=m.idea,
                    slug=m.idea.slug,
                    exact=False,
                    score=score,
                    token_matches=token_matches,
                    bigram_matches=bigram_matches,
                )
        return best

    def lookup(self, name: str) -> MatchOutcome:
        """Resolve a raw venue name. Never raises."""
        slug = slugify(name)

        idea = self._exact(slug)
        if idea is not None:
            log.info("exact matched venue name=%r slug=%s matched=%s", name, slug, idea.slug)
            return IdeaHit(idea=idea, slug=idea.slug, exact=True)

        hit = self._fuzzy(name)
        if hit is not None:
            log.debug(
                "fuzzy matched venue name=%r slug=%s matched=%s score=%d tokens=%s bigrams=%s",
                name, slug, hit.slug, hit.score, hit.token_matches, hit.bigram_matches,
            )
            return hit

        miss = IdeaMiss(name=name, slug=slug, tokens=tuple(t for t in slug.split("_") if t))
        log.info("no idea found for venue name=%r slug=%s tokens=%s", miss.name, miss.slug, list(miss.tokens))
        return miss

    def idea_for_venue(self, name: str) -> Optional[CuratedIdea]:
        outcome = self.lookup(name)
        return outcome.idea if isinstance(outcome, IdeaHit) else None
