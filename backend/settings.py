# settings.py
# env driven config, read once at startup and handed to the engine context

import os
from dotenv import load_dotenv

load_dotenv()

BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BACKEND_DIR, "data")


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val not in (None, "") else default
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.GOOGLE_PLACES_KEY: str = os.getenv("GOOGLE_PLACES_KEY", "")
        # memory | firestore
        self.VENUE_STORE: str = os.getenv("VENUE_STORE", "memory").lower()
        self.FIRESTORE_PROJECT: str | None = os.getenv("FIRESTORE_PROJECT") or None
        self.VENUES_COLLECTION: str = os.getenv("VENUES_COLLECTION", "campusVenues")
        self.VENUES_SEED_PATH: str = os.getenv("VENUES_SEED_PATH", os.path.join(DATA_DIR, "campus_venues.json"))
        self.VENUE_IDEAS_PATH: str = os.getenv("VENUE_IDEAS_PATH", os.path.join(DATA_DIR, "venue_ideas.json"))
        self.VIBE_RULES_PATH: str = os.getenv("VIBE_RULES_PATH", os.path.join(DATA_DIR, "vibe_time_rules.json"))

        self.REQUIRE_CURATED_ONLY: bool = _as_bool(os.getenv("REQUIRE_CURATED_ONLY"), False)
        self.TARGET_THEME_COUNT: int = _as_int(os.getenv("TARGET_THEME_COUNT"), 100)
        self.DEFAULT_PAGE_SIZE: int = _as_int(os.getenv("DEFAULT_PAGE_SIZE"), 36)
        self.DEFAULT_RADIUS_M: int = _as_int(os.getenv("DEFAULT_RADIUS_M"), 1600)

        # provider timeout (seconds)
        self.PROVIDER_TIMEOUT_S: int = _as_int(os.getenv("PROVIDER_TIMEOUT_S"), 12)
        # shuffled candidate lists are kept this long for paging
        self.SESSION_TTL_S: int = _as_int(os.getenv("SESSION_TTL_S"), 600)
        self.SESSION_MAX_ENTRIES: int = _as_int(os.getenv("SESSION_MAX_ENTRIES"), 512)

        origins = os.getenv("FRONTEND_ORIGINS", "http://localhost:3000")
        self.FRONTEND_ORIGINS: list[str] = [o.strip() for o in origins.split(",") if o.strip()]


settings = Settings()
