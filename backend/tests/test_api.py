import dataclasses

from fastapi.testclient import TestClient

import main
from providers.venues import InMemoryVenueStore
from settings import settings

SJSU = {"originLat": 37.3352, "originLng": -121.8811}


def _client():
    client = TestClient(main.app)
    return client


def _use_bundled_data():
    # no live Places lookups from tests
    main.app.state.context = dataclasses.replace(
        main.app.state.context,
        store=InMemoryVenueStore.from_json(settings.VENUES_SEED_PATH),
        lookup_address=None,
    )


def test_health_reports_loaded_ideas():
    with _client() as client:
        resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["ideas"] > 0


def test_curated_venue_comes_back_with_slug():
    with _client() as client:
        _use_bundled_data()
        resp = client.post("/campus-plans", json={
            **SJSU, "moods": ["boba stop"], "timeOfDay": "evening", "maxDistanceMeters": 1600, "pageSize": 100,
        })
    assert resp.status_code == 200
    data = resp.json()
    assert set(data) == {"themes", "nextCursor", "relaxationLevel", "radiusUsedMeters"}
    by_id = {t["id"]: t for t in data["themes"]}
    tea = by_id["demo-tea-alley"]
    assert tea["curated"] is True
    assert tea["matchedSlug"] == "tea_alley"
    assert tea["missionLines"][1].startswith("Photo Idea: ")
    assert len(by_id) == len(data["themes"])
    assert all(t["distanceMeters"] <= data["radiusUsedMeters"] for t in data["themes"])


def test_curated_only_and_csv_moods():
    with _client() as client:
        _use_bundled_data()
        resp = client.post("/campus-plans", json={
            **SJSU, "moods": "Boba Stop, Bar Hop", "timeOfDay": "night", "requireCuratedOnly": True,
        })
    assert resp.status_code == 200
    themes = resp.json()["themes"]
    assert themes
    assert all(t["curated"] for t in themes)


def test_invalid_request_is_rejected():
    with _client() as client:
        resp = client.post("/campus-plans", json={"originLat": 100, "originLng": 0, "moods": ["artsy"]})
        assert resp.status_code == 422
        resp = client.post("/campus-plans", json={**SJSU, "moods": []})
        assert resp.status_code == 422


def test_engine_not_ready():
    main.app.state.context = None
    client = TestClient(main.app)
    resp = client.post("/campus-plans", json={**SJSU, "moods": ["artsy"]})
    assert resp.status_code == 503
    assert resp.json() == {"error": "Engine not ready"}
