from starlette.testclient import TestClient

from placescout.api.app import app
from placescout.config.settings import get_settings
from placescout.discovery.orchestrator import DiscoveryOrchestrator
from placescout.domain.models import GeoPoint, PlaceCandidate

PAYLOAD = {
    "category": "food",
    "mood": 80,
    "budget": "PPP",
    "distanceRange": 20,
    "origin": {"lat": 14.5509, "lng": 121.0509},
}


class _StubSearch:
    def __init__(self, count: int):
        self.count = count
        self.calls = 0

    async def search(self, origin, radius_m, place_types, *, price_tiers=None, open_now=None):
        self.calls += 1
        return [
            PlaceCandidate(
                id=f"p{i}",
                name=f"Place {i}",
                location=GeoPoint(lat=14.551, lon=121.051),
                types=["restaurant", "night_club"],
                rating=4.0 + i / 10,
                review_count=50 * (i + 1),
                price_tier=3,
            )
            for i in range(self.count)
        ]


def _patch_orchestrator(monkeypatch, count: int = 6) -> _StubSearch:
    # Patch the cached orchestrator factory so API tests stay offline.
    import placescout.api.routes as routes

    search = _StubSearch(count)
    orchestrator = DiscoveryOrchestrator(get_settings(), search)
    monkeypatch.setattr(routes, "_orchestrator", lambda: orchestrator)
    return search


def test_discover_then_next_returns_disjoint_batches(monkeypatch):
    search = _patch_orchestrator(monkeypatch, count=8)

    with TestClient(app) as c:
        first = c.post("/api/discover", json=PAYLOAD)
        second = c.post("/api/discover/next", json=PAYLOAD)

    assert first.status_code == 200
    assert second.status_code == 200
    a, b = first.json(), second.json()
    assert a["loading_state"] == "COMPLETE"
    assert a["signature"] == b["signature"]
    assert len(a["places"]) == 4
    assert {p["id"] for p in a["places"]}.isdisjoint({p["id"] for p in b["places"]})
    assert a["places"][0]["combined_score"] >= a["places"][-1]["combined_score"]
    assert a["expansion"]["expansion_count"] == 0
    assert search.calls == 1


def test_missing_origin_is_a_400(monkeypatch):
    _patch_orchestrator(monkeypatch)

    with TestClient(app) as c:
        resp = c.post("/api/discover", json={"category": "food", "mood": 50})

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_ORIGIN"


def test_clamped_values_come_back_as_warnings(monkeypatch):
    _patch_orchestrator(monkeypatch)

    with TestClient(app) as c:
        resp = c.post("/api/discover", json={**PAYLOAD, "mood": 250})

    assert resp.status_code == 200
    warnings = resp.json()["warnings"]
    assert any(w["code"] == "clamped" and w["field"] == "mood" for w in warnings)


def test_reset_drops_the_pool(monkeypatch):
    search = _patch_orchestrator(monkeypatch)

    with TestClient(app) as c:
        c.post("/api/discover", json=PAYLOAD)
        first = c.post("/api/discover/reset", json=PAYLOAD)
        second = c.post("/api/discover/reset", json=PAYLOAD)
        c.post("/api/discover", json=PAYLOAD)

    assert first.json() == {"reset": True}
    assert second.json() == {"reset": False}
    assert search.calls == 2


def test_public_settings_do_not_leak_credentials():
    with TestClient(app) as c:
        resp = c.get("/api/settings")

    assert resp.status_code == 200
    data = resp.json()
    assert data["discovery"]["min_results"] == 4
    assert "api_key" not in data["place_search"]


def test_healthz():
    with TestClient(app) as c:
        resp = c.get("/healthz")
    assert resp.json() == {"status": "ok"}
