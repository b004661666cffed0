# models.py
# typed request/response models, stored venue shape and the theme record

from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from geo import geohash_for_location


class Venue(BaseModel):
    """One document of the venue store. address/mapsUrl are filled lazily."""
    placeId: str
    name: str
    lat: float
    lng: float
    # derived from lat/lng when the source document lacks it
    geohash: str = ""
    categories: List[str] = Field(default_factory=list)
    price_level: Optional[int] = 2
    photoUrl: Optional[str] = ""
    address: Optional[str] = None
    mapsUrl: Optional[str] = None
    city: Optional[str] = None
    source: Optional[str] = None

    @model_validator(mode="after")
    def _derive_geohash(self) -> "Venue":
        if not self.geohash:
            self.geohash = geohash_for_location((self.lat, self.lng))
        return self


class CuratedIdea(BaseModel):
    model_config = ConfigDict(frozen=True)

    slug: str = Field(..., min_length=1)
    aliases: tuple[str, ...] = ()
    action: str = Field(..., min_length=1)
    photoPrompt: str = Field(..., min_length=1)

    @field_validator("aliases", mode="before")
    @classmethod
    def _null_aliases(cls, v):
        return () if v is None else v


# action/photo content of a theme: either a curated hit or a category fallback
@dataclass(frozen=True)
class CuratedMatch:
    slug: str
    action: str
    photo: str


@dataclass(frozen=True)
class FallbackPairing:
    action: str
    photo: str


Pairing = Union[CuratedMatch, FallbackPairing]


class GeneratedTheme(BaseModel):
    id: str
    title: str
    venueName: str
    photoUrl: str = ""
    distanceMeters: int
    address: Optional[str] = None
    missionLines: List[str]
    curated: bool
    matchedSlug: Optional[str] = None

    @classmethod
    def build(cls, venue: Venue, distance_m: float, pairing: Pairing) -> "GeneratedTheme":
        curated = isinstance(pairing, CuratedMatch)
        return cls(
            id=venue.placeId,
            title=f"{venue.name} Adventure",
            venueName=venue.name,
            photoUrl=venue.photoUrl or "",
            distanceMeters=round(distance_m),
            address=venue.address or None,
            missionLines=[pairing.action, f"Photo Idea: {pairing.photo}"],
            curated=curated,
            matchedSlug=pairing.slug if curated else None,
        )


class CampusPlanRequest(BaseModel):
    originLat: float = Field(..., ge=-90, le=90)
    originLng: float = Field(..., ge=-180, le=180)
    # list or comma separated string
    moods: List[str] = Field(..., min_length=1)
    timeOfDay: str = "any"
    maxDistanceMeters: Optional[int] = Field(None, gt=0)
    pageCursor: Optional[str] = None
    pageSize: Optional[int] = Field(None, gt=0)
    requireCuratedOnly: Optional[bool] = None
    college: Optional[str] = None

    @field_validator("moods", mode="before")
    @classmethod
    def _split_moods(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, (list, tuple)):
            return v
        return [str(m).strip().lower() for m in v if str(m).strip()]

    @field_validator("timeOfDay")
    @classmethod
    def _lower_tod(cls, v: str) -> str:
        return (v or "any").strip().lower() or "any"


class CampusPlanResponse(BaseModel):
    themes: List[GeneratedTheme]
    nextCursor: Optional[str] = None
    relaxationLevel: int
    radiusUsedMeters: int
