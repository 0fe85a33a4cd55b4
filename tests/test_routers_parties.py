"""
test_routers_parties.py — Tests for party and follow-up routes

Covers create (sequencing, validation), list/search, code lookup, update,
guarded delete, stats, dev-only reset, follow-ups and reminder queries.

Called by: pytest
Depends on: app/routers/parties.py, app/routers/follow_ups.py, conftest.py
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

PARTY = {
    "name": "  John Doe ",
    "phone": "+91-9876543210",
    "address": "123 Main Street, Mumbai",
    "email": "John.Doe@Email.com",
}


def _create(client, **overrides) -> dict:
    resp = client.post("/api/parties", json={**PARTY, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Create & read ───────────────────────────────────────────────────


def test_create_assigns_sequential_codes(client):
    first = _create(client)
    second = _create(client, name="Jane Smith")
    assert first["party_id"] == "P0001"
    assert second["party_id"] == "P0002"
    assert first["name"] == "John Doe"
    assert first["email"] == "john.doe@email.com"
    assert first["next_follow_up"] is None


def test_create_ignores_client_supplied_code(client):
    data = _create(client, party_id="P9999")
    assert data["party_id"] == "P0001"


def test_create_requires_name_phone_address(client):
    resp = client.post("/api/parties", json={"name": "   ", "phone": "1", "address": "x"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["status_code"] == 422
    assert body["detail"]


def test_create_rejects_bad_email(client):
    resp = client.post("/api/parties", json={**PARTY, "email": "not-an-email"})
    assert resp.status_code == 422


def test_get_by_id_and_code(client):
    created = _create(client)
    assert client.get(f"/api/parties/{created['id']}").json()["party_id"] == "P0001"
    assert client.get("/api/parties/code/P0001").json()["id"] == created["id"]


def test_unknown_party_is_404(client):
    resp = client.get("/api/parties/9999")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Party 9999 not found"
    assert client.get("/api/parties/code/P0404").status_code == 404


def test_list_search_and_filters(client):
    _create(client, name="Acme Systems", tags=["gamer", "vip"])
    _create(client, name="Globex", tags=["office"])
    _create(client, name="Initech")

    resp = client.get("/api/parties")
    assert resp.json()["total"] == 3
    assert [p["party_id"] for p in resp.json()["parties"]] == ["P0001", "P0002", "P0003"]

    assert client.get("/api/parties", params={"search": "glob"}).json()["total"] == 1
    tagged = client.get("/api/parties", params={"tag": "vip"}).json()
    assert [p["name"] for p in tagged["parties"]] == ["Acme Systems"]


def test_list_orders_widened_codes_numerically(client, make_party):
    make_party("P10000", name="Wide Co")
    make_party("P9999", name="Narrow Co")
    make_party("P0002", name="Early Co")

    codes = [p["party_id"] for p in client.get("/api/parties").json()["parties"]]

    assert codes == ["P0002", "P9999", "P10000"]


def test_search_treats_wildcards_literally(client):
    _create(client, name="100% Cotton Traders")
    _create(client, name="Plain Goods")
    _create(client, name="Under_Score Ltd")

    percent = client.get("/api/parties", params={"search": "%"}).json()
    underscore = client.get("/api/parties", params={"search": "_"}).json()

    assert [p["name"] for p in percent["parties"]] == ["100% Cotton Traders"]
    assert [p["name"] for p in underscore["parties"]] == ["Under_Score Ltd"]


def test_update_keeps_code(client):
    created = _create(client)
    resp = client.put(
        f"/api/parties/{created['id']}",
        json={"phone": "555-0199", "party_id": "P0042", "is_active": False},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["phone"] == "555-0199"
    assert data["party_id"] == "P0001"
    assert data["is_active"] is False


# ── Delete guard ────────────────────────────────────────────────────


def test_delete_blocked_by_quotations(client, line_items):
    party = _create(client)
    client.post("/api/quotations", json={"party_id": party["id"], "line_items": line_items})

    resp = client.delete(f"/api/parties/{party['id']}")

    assert resp.status_code == 409
    assert "quotation" in resp.json()["error"]


def test_delete_without_quotations(client):
    party = _create(client)
    resp = client.delete(f"/api/parties/{party['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "party_id": "P0001"}
    assert client.get(f"/api/parties/{party['id']}").status_code == 404


# ── Stats & reset ───────────────────────────────────────────────────


def test_stats(client, line_items):
    party = _create(client)
    _create(client, name="Jane Smith")
    client.post("/api/quotations", json={"party_id": party["id"], "line_items": line_items})

    stats = client.get("/api/parties/stats").json()

    assert stats["total_parties"] == 2
    assert stats["parties_with_quotations"] == 1
    assert stats["parties_without_quotations"] == 1
    assert stats["quotation_counter_available"] is True


def test_reset_in_development(client):
    _create(client)
    resp = client.post("/api/parties/reset")
    assert resp.status_code == 200
    assert resp.json()["removed"]["parties"] == 1
    assert _create(client)["party_id"] == "P0001"


def test_reset_forbidden_outside_development(client):
    _create(client)
    with patch("app.routers.parties.settings") as mock_settings:
        mock_settings.is_development = False
        resp = client.post("/api/parties/reset")
    assert resp.status_code == 403
    assert client.get("/api/parties").json()["total"] == 1


# ── Follow-ups ──────────────────────────────────────────────────────


def test_follow_up_flow(client):
    party = _create(client)
    now = datetime.now(timezone.utc)
    later = (now + timedelta(days=5)).isoformat()
    sooner = (now + timedelta(days=2)).isoformat()

    r1 = client.post(f"/api/parties/{party['id']}/follow-ups", json={"scheduled_at": later, "note": "call"})
    r2 = client.post(f"/api/parties/{party['id']}/follow-ups", json={"scheduled_at": sooner})
    assert r1.status_code == 201
    assert r2.json()["next_follow_up"]["follow_up_id"] == r2.json()["follow_up"]["id"]

    done = client.post(
        f"/api/parties/{party['id']}/follow-ups/{r2.json()['follow_up']['id']}/complete"
    )
    assert done.status_code == 200
    assert done.json()["next_follow_up"]["follow_up_id"] == r1.json()["follow_up"]["id"]

    listing = client.get(f"/api/parties/{party['id']}/follow-ups").json()
    assert [f["is_completed"] for f in listing["follow_ups"]] == [False, True]


def test_complete_unknown_follow_up_is_404(client):
    party = _create(client)
    resp = client.post(f"/api/parties/{party['id']}/follow-ups/777/complete")
    assert resp.status_code == 404


def test_reminder_routes(client):
    overdue_party = _create(client, name="Late Co")
    today_party = _create(client, name="Today Co")
    now = datetime.now(timezone.utc)
    client.post(
        f"/api/parties/{overdue_party['id']}/follow-ups",
        json={"scheduled_at": (now - timedelta(days=3)).isoformat()},
    )
    client.post(
        f"/api/parties/{today_party['id']}/follow-ups",
        json={"scheduled_at": (now + timedelta(days=1)).isoformat()},
    )

    overdue = client.get("/api/follow-ups/overdue").json()
    assert [p["name"] for p in overdue["parties"]] == ["Late Co"]

    tomorrow = (now + timedelta(days=1)).date().isoformat()
    upcoming = client.get("/api/follow-ups/upcoming", params={"date": tomorrow}).json()
    assert [p["name"] for p in upcoming["parties"]] == ["Today Co"]
    assert upcoming["date"] == tomorrow


def test_v1_prefix_reaches_party_routes(client):
    _create(client)
    resp = client.get("/api/v1/parties/code/P0001")
    assert resp.status_code == 200
    assert resp.headers.get("X-API-Version") == "v1"
