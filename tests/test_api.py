from datetime import datetime, timedelta

import pytest

from salon.models.generated import Bookings

from conftest import CRON_SECRET, MONDAY

TEN = MONDAY.replace(hour=10)


def _as(user_id: str) -> dict:
    return {"X-User-Id": user_id}


@pytest.fixture
def ids(salon, client_user, admin_user):
    hairdresser, service = salon
    return {"hairdresser": hairdresser.id, "service": service.id}


def _book(client, ids, user="client-1", start=TEN):
    return client.post(
        "/bookings/",
        json={
            "hairdresser_id": ids["hairdresser"],
            "service_id": ids["service"],
            "appointment_date": start.isoformat(),
        },
        headers=_as(user),
    )


# ── Slots ───────────────────────────────────────────────────────────────


def test_slots_day(client, ids):
    _book(client, ids)

    resp = client.get("/slots/day", params={"date": "2030-01-07", "service_id": ids["service"]})

    assert resp.status_code == 200
    body = resp.json()
    assert body["duration_minutes"] == 30
    assert body["slot_step_minutes"] == 30
    assert len(body["slots"]) == 6
    unavailable = [s["start_time"] for s in body["slots"] if not s["available"]]
    assert unavailable == ["2030-01-07T10:00:00"]


def test_slots_day_only_available(client, ids):
    _book(client, ids)

    resp = client.get(
        "/slots/day",
        params={"date": "2030-01-07", "service_id": ids["service"], "only_available": True},
    )

    assert len(resp.json()["slots"]) == 5


def test_slots_unknown_service_is_404(client, ids):
    resp = client.get("/slots/day", params={"date": "2030-01-07", "service_id": 9999})

    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_slots_bad_date_is_422(client, ids):
    assert client.get("/slots/day", params={"date": "07.01.2030"}).status_code == 422


# ── Bookings ────────────────────────────────────────────────────────────


def test_create_requires_identity(client, ids):
    resp = client.post(
        "/bookings/",
        json={"hairdresser_id": ids["hairdresser"], "service_id": ids["service"], "appointment_date": TEN.isoformat()},
    )
    assert resp.status_code == 401


def test_create_and_conflict(client, ids, notifier):
    first = _book(client, ids)
    assert first.status_code == 201
    assert first.json()["status"] == "booked"
    assert notifier.types() == ["booking_created"]

    second = _book(client, ids, start=TEN + timedelta(minutes=15))
    assert second.status_code == 409
    assert second.json()["code"] == "slot_unavailable"
    assert second.json()["conflicting_booking_ids"] == [first.json()["id"]]


def test_create_for_someone_else_needs_admin(client, ids, make_user):
    make_user("client-2")
    payload = {
        "hairdresser_id": ids["hairdresser"],
        "service_id": ids["service"],
        "appointment_date": TEN.isoformat(),
        "user_id": "client-2",
    }

    assert client.post("/bookings/", json=payload, headers=_as("client-1")).status_code == 403
    resp = client.post("/bookings/", json=payload, headers=_as("admin-1"))
    assert resp.status_code == 201
    assert resp.json()["user_id"] == "client-2"


def test_my_bookings_and_get(client, ids, make_user):
    make_user("client-2")
    mine = _book(client, ids).json()
    _book(client, ids, user="client-2", start=TEN + timedelta(hours=1))

    listed = client.get("/bookings/mine", headers=_as("client-1")).json()
    assert [b["id"] for b in listed] == [mine["id"]]
    assert listed[0]["service"]["name"] == "Haircut"

    assert client.get(f"/bookings/{mine['id']}", headers=_as("client-1")).status_code == 200
    assert client.get(f"/bookings/{mine['id']}", headers=_as("client-2")).status_code == 403
    assert client.get(f"/bookings/{mine['id']}", headers=_as("admin-1")).status_code == 200
    assert client.get("/bookings/9999", headers=_as("client-1")).status_code == 404


def test_cancel_flow(client, ids):
    booking = _book(client, ids).json()

    resp = client.post(f"/bookings/{booking['id']}/cancel", json={"reason": "sick"}, headers=_as("client-1"))
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["cancellation_reason"] == "sick"

    again = client.post(f"/bookings/{booking['id']}/cancel", headers=_as("client-1"))
    assert again.status_code == 409
    assert again.json()["code"] == "already_cancelled"


def test_reschedule_flow(client, ids):
    booking = _book(client, ids).json()

    resp = client.patch(
        f"/bookings/{booking['id']}/reschedule",
        json={"new_appointment_date": (TEN + timedelta(hours=1)).isoformat(), "reason": "late"},
        headers=_as("client-1"),
    )
    assert resp.status_code == 200
    assert resp.json()["appointment_date"] == "2030-01-07T11:00:00"

    past = client.patch(
        f"/bookings/{booking['id']}/reschedule",
        json={"new_appointment_date": (MONDAY - timedelta(days=1)).isoformat()},
        headers=_as("client-1"),
    )
    assert past.status_code == 422
    assert past.json()["code"] == "past_date"


# ── Admin ───────────────────────────────────────────────────────────────


def test_admin_list_filters(client, ids, make_user):
    make_user("client-2", first_name="Zofia", last_name="Wisniewska")
    a = _book(client, ids).json()
    b = _book(client, ids, user="client-2", start=TEN + timedelta(hours=1)).json()
    client.post(f"/bookings/{a['id']}/cancel", headers=_as("client-1"))

    assert client.get("/admin/bookings", headers=_as("client-1")).status_code == 403

    everything = client.get("/admin/bookings", headers=_as("admin-1")).json()
    assert [row["id"] for row in everything] == [b["id"], a["id"]]
    assert everything[0]["hairdresser"]["first_name"] == "Ewa"

    booked = client.get("/admin/bookings", params={"status": "booked"}, headers=_as("admin-1")).json()
    assert [row["id"] for row in booked] == [b["id"]]

    found = client.get("/admin/bookings", params={"search": "wisn"}, headers=_as("admin-1")).json()
    assert [row["user"]["user_id"] for row in found] == ["client-2"]

    other_day = client.get("/admin/bookings", params={"date": "2030-01-08"}, headers=_as("admin-1")).json()
    assert other_day == []


# ── Hairdressers / services ─────────────────────────────────────────────


def test_hairdresser_crud(client, ids):
    created = client.post(
        "/hairdressers/",
        json={
            "first_name": "Jan",
            "last_name": "Nowicki",
            "service_ids": [ids["service"]],
            "availability": [{"day_of_week": "tuesday", "start_time": "10:00", "end_time": "14:00"}],
        },
        headers=_as("admin-1"),
    )
    assert created.status_code == 201
    hid = created.json()["id"]
    assert [s["id"] for s in created.json()["services"]] == [ids["service"]]

    updated = client.patch(
        f"/hairdressers/{hid}",
        json={"availability": [
            {"day_of_week": "friday", "start_time": "08:00", "end_time": "12:00"},
            {"day_of_week": "friday", "start_time": "13:00", "end_time": "16:00"},
        ]},
        headers=_as("admin-1"),
    ).json()
    assert [w["day_of_week"] for w in updated["availability"]] == ["friday", "friday"]
    assert [s["id"] for s in updated["services"]] == [ids["service"]]

    assert client.delete(f"/hairdressers/{hid}", headers=_as("admin-1")).status_code == 204
    assert client.get(f"/hairdressers/{hid}").status_code == 404


def test_hairdresser_window_must_end_after_start(client, ids):
    resp = client.post(
        "/hairdressers/",
        json={
            "first_name": "Jan",
            "last_name": "Nowicki",
            "availability": [{"day_of_week": "monday", "start_time": "14:00", "end_time": "10:00"}],
        },
        headers=_as("admin-1"),
    )
    assert resp.status_code == 422


def test_hairdresser_writes_need_admin(client, ids):
    resp = client.post("/hairdressers/", json={"first_name": "A", "last_name": "B"}, headers=_as("client-1"))
    assert resp.status_code == 403


def test_delete_with_bookings_refused(client, ids):
    _book(client, ids)

    assert client.delete(f"/hairdressers/{ids['hairdresser']}", headers=_as("admin-1")).status_code == 409
    assert client.delete(f"/services/{ids['service']}", headers=_as("admin-1")).status_code == 409


def test_service_crud(client, ids):
    created = client.post(
        "/services/",
        json={"name": "Beard trim", "price": "25.50", "time_required": 20},
        headers=_as("admin-1"),
    )
    assert created.status_code == 201
    sid = created.json()["id"]
    assert created.json()["price"] == "25.50"

    patched = client.patch(f"/services/{sid}", json={"time_required": 25}, headers=_as("admin-1")).json()
    assert patched["time_required"] == 25

    assert client.post(
        "/services/", json={"name": "Bad", "price": "1", "time_required": 0}, headers=_as("admin-1")
    ).status_code == 422

    assert client.delete(f"/services/{sid}", headers=_as("admin-1")).status_code == 204


# ── Internal ────────────────────────────────────────────────────────────


def test_cron_sweep(client, ids, clock, session_factory):
    booking = _book(client, ids).json()
    clock.now = TEN + timedelta(minutes=1)

    assert client.post("/internal/cron/update-past-bookings").status_code == 401
    assert client.get(
        "/internal/cron/update-past-bookings", headers={"Authorization": "Bearer wrong"}
    ).status_code == 401

    auth = {"Authorization": f"Bearer {CRON_SECRET}"}
    first = client.post("/internal/cron/update-past-bookings", headers=auth)
    assert first.json() == {"success": True, "updated_count": 1}
    second = client.get("/internal/cron/update-past-bookings", headers=auth)
    assert second.json() == {"success": True, "updated_count": 0}

    with session_factory() as db:
        assert db.get(Bookings, booking["id"]).status == "past"


def test_google_status_disconnected(client, ids):
    resp = client.get("/integrations/google/status", headers=_as("admin-1"))

    assert resp.status_code == 200
    assert resp.json()["is_connected"] is False
    assert client.delete("/integrations/google", headers=_as("admin-1")).status_code == 404


class FakeRedis:
    def __init__(self):
        self.values = {}

    def set(self, key, value, ex=None):
        self.values[key] = value
        return True

    def getdel(self, key):
        return self.values.pop(key, None)


@pytest.fixture
def google_oauth(monkeypatch):
    from salon.config import settings
    from salon.routers import integrations

    fake = FakeRedis()
    monkeypatch.setattr(settings, "google_client_id", "client")
    monkeypatch.setattr(settings, "google_client_secret", "secret")
    monkeypatch.setattr(integrations, "redis_client", fake)
    monkeypatch.setattr(integrations, "get_oauth_url", lambda state: f"https://accounts.example/auth?state={state}")
    monkeypatch.setattr(
        integrations,
        "exchange_code_for_tokens",
        lambda code: {
            "access_token": "a",
            "refresh_token": "r",
            "scope": "calendar",
            "token_type": "Bearer",
            "expiry_date": datetime(2100, 1, 1),
        },
    )
    return fake


def _issue_state(client) -> str:
    resp = client.get("/integrations/google/auth-url", headers=_as("admin-1"))
    assert resp.status_code == 200
    return resp.json()["auth_url"].split("state=")[1]


def test_google_callback_stores_tokens(client, ids, google_oauth):
    state = _issue_state(client)

    resp = client.get(
        "/integrations/google/callback",
        params={"code": "xyz", "state": state},
        headers=_as("admin-1"),
    )

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get("/integrations/google/status", headers=_as("admin-1")).json()["is_connected"] is True
    assert client.delete("/integrations/google", headers=_as("admin-1")).status_code == 204


def test_google_callback_requires_identity(client, ids, google_oauth):
    state = _issue_state(client)

    resp = client.get("/integrations/google/callback", params={"code": "xyz", "state": state})

    assert resp.status_code == 401
    assert client.get("/integrations/google/status", headers=_as("admin-1")).json()["is_connected"] is False


def test_google_callback_requires_admin(client, ids, google_oauth):
    state = _issue_state(client)

    resp = client.get(
        "/integrations/google/callback",
        params={"code": "xyz", "state": state},
        headers=_as("client-1"),
    )

    assert resp.status_code == 403
    assert client.get("/integrations/google/status", headers=_as("admin-1")).json()["is_connected"] is False


def test_google_callback_rejects_unknown_state(client, ids, google_oauth):
    resp = client.get(
        "/integrations/google/callback",
        params={"code": "xyz", "state": "forged"},
        headers=_as("admin-1"),
    )

    assert resp.status_code == 400
    assert client.get("/integrations/google/status", headers=_as("admin-1")).json()["is_connected"] is False


def test_google_callback_state_is_single_use(client, ids, google_oauth):
    state = _issue_state(client)
    params = {"code": "xyz", "state": state}

    first = client.get("/integrations/google/callback", params=params, headers=_as("admin-1"))
    replay = client.get("/integrations/google/callback", params=params, headers=_as("admin-1"))

    assert first.status_code == 200
    assert replay.status_code == 400


def test_google_callback_state_bound_to_issuer(client, ids, make_user, google_oauth):
    make_user("admin-2", role="admin")
    state = _issue_state(client)

    resp = client.get(
        "/integrations/google/callback",
        params={"code": "xyz", "state": state},
        headers=_as("admin-2"),
    )

    assert resp.status_code == 400


# ── Profile ─────────────────────────────────────────────────────────────


def _sign_up(client, caller_id, email=None, **extra):
    return client.post(
        "/profile/",
        json={
            "first_name": "Ewa",
            "last_name": "Kowalska",
            "email": email or f"{caller_id}@example.com",
            **extra,
        },
        headers=_as(caller_id),
    )


def test_new_client_signs_up_then_books(client, ids):
    assert client.get("/profile/", headers=_as("client-new")).status_code == 404
    assert _book(client, ids, user="client-new").status_code == 404

    resp = _sign_up(client, "client-new", phone_number="+48 600 000 000")

    assert resp.status_code == 201
    body = resp.json()
    assert body["user_id"] == "client-new"
    assert body["role"] == "user"
    assert client.get("/profile/", headers=_as("client-new")).json()["email"] == "client-new@example.com"
    assert _book(client, ids, user="client-new").status_code == 201


def test_sign_up_requires_identity(client, ids):
    resp = client.post(
        "/profile/",
        json={"first_name": "Ewa", "last_name": "Kowalska", "email": "ewa@example.com"},
    )
    assert resp.status_code == 401


def test_sign_up_only_for_yourself(client, ids):
    resp = _sign_up(client, "client-new", user_id="someone-else")

    assert resp.status_code == 403
    assert client.get("/profile/", headers=_as("someone-else")).status_code == 404


def test_sign_up_twice_is_409(client, ids):
    assert _sign_up(client, "client-new").status_code == 201

    assert _sign_up(client, "client-new", email="other@example.com").status_code == 409
    # email already taken by client-1's profile
    assert _sign_up(client, "client-other", email="client-1@example.com").status_code == 409


def test_sign_up_cannot_claim_admin(client, ids):
    resp = _sign_up(client, "client-new", role="admin")

    assert resp.status_code == 201
    assert resp.json()["role"] == "user"
    assert client.get("/integrations/google/status", headers=_as("client-new")).status_code == 403




def test_health(client, monkeypatch):
    from salon import main

    monkeypatch.setattr(main.redis_client, "ping", lambda: True)

    assert client.get("/health").json() == {"status": "ok", "redis": True}
