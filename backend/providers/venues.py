# providers/venues.py
# venue store: geohash range + category membership queries, merge writes.
# Firestore in production, in-memory (seeded from JSON) for local dev and tests.

import json
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import ValidationError

from models import Venue

log = logging.getLogger(__name__)

# Firestore caps a single batch at 500 writes
FIRESTORE_BATCH_LIMIT = 500


class VenueStore(Protocol):
    async def query_range(self, start: str, end: str, categories: Sequence[str]) -> List[Venue]:
        """Venues with start <= geohash <= end whose categories intersect `categories`."""
        ...

    async def merge(self, place_id: str, fields: dict) -> None:
        """Merge non-null fields into an existing venue; never deletes."""
        ...

    async def upsert_many(self, venues: Iterable[Venue]) -> int:
        ...


class InMemoryVenueStore:
    def __init__(self, venues: Optional[Iterable[Venue]] = None):
        self._venues: Dict[str, Venue] = {}
        for v in venues or []:
            self._venues[v.placeId] = v

    @classmethod
    def from_json(cls, path: str) -> "InMemoryVenueStore":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            log.warning("venue seed unreadable at %s: %s", path, e)
            return cls()
        venues = []
        for item in data if isinstance(data, list) else []:
            try:
                venues.append(Venue.model_validate(item))
            except ValidationError:
                log.debug("skipping malformed venue entry: %r", item)
        log.info("loaded %d venues from %s", len(venues), path)
        return cls(venues)

    def dump_json(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump([v.model_dump(exclude_none=True) for v in self._venues.values()], f, indent=2)

    def get(self, place_id: str) -> Optional[Venue]:
        return self._venues.get(place_id)

    def __len__(self) -> int:
        return len(self._venues)

    async def query_range(self, start: str, end: str, categories: Sequence[str]) -> List[Venue]:
        wanted = set(categories)
        return [
            v for v in sorted(self._venues.values(), key=lambda v: v.geohash)
            if start <= v.geohash <= end and wanted.intersection(v.categories)
        ]

    async def merge(self, place_id: str, fields: dict) -> None:
        current = self._venues.get(place_id)
        if current is None:
            return
        update = {k: v for k, v in fields.items() if v is not None}
        self._venues[place_id] = current.model_copy(update=update)

    async def upsert_many(self, venues: Iterable[Venue]) -> int:
        n = 0
        for v in venues:
            self._venues[v.placeId] = v
            n += 1
        return n


class FirestoreVenueStore:
    def __init__(self, client: firestore.AsyncClient, collection: str = "campusVenues"):
        self.client = client
        self.collection = collection

    @classmethod
    def connect(cls, project: Optional[str] = None, collection: str = "campusVenues") -> "FirestoreVenueStore":
        return cls(firestore.AsyncClient(project=project), collection)

    async def query_range(self, start: str, end: str, categories: Sequence[str]) -> List[Venue]:
        query = (
            self.client.collection(self.collection)
            .where(filter=FieldFilter("categories", "array_contains_any", list(categories)))
            .order_by("geohash")
            .start_at({"geohash": start})
            .end_at({"geohash": end})
        )
        snaps = await query.get()
        out: List[Venue] = []
        for snap in snaps:
            data = snap.to_dict() or {}
            data.setdefault("placeId", snap.id)
            try:
                out.append(Venue.model_validate(data))
            except ValidationError:
                log.debug("skipping malformed venue doc %s", snap.id)
        return out

    async def merge(self, place_id: str, fields: dict) -> None:
        update = {k: v for k, v in fields.items() if v is not None}
        if not update:
            return
        await self.client.collection(self.collection).document(place_id).set(update, merge=True)

    async def upsert_many(self, venues: Iterable[Venue]) -> int:
        venues = list(venues)
        for i in range(0, len(venues), FIRESTORE_BATCH_LIMIT):
            batch = self.client.batch()
            for v in venues[i:i + FIRESTORE_BATCH_LIMIT]:
                ref = self.client.collection(self.collection).document(v.placeId)
                batch.set(ref, v.model_dump(exclude_none=True))
            await batch.commit()
        return len(venues)
