"""HTTP contract tests through the FastAPI app."""

import dataclasses
from datetime import timedelta

import pytest

from comebookus import deps
from comebookus.config import settings
from comebookus.routers import cron_routes
from tests.conftest import future_at


def _book(client, service_id, start, **extra):
    body = {
        "service_id": service_id,
        "start_time": start.isoformat(),
        "client_email": "guest@example.com",
        "client_name": "Jamie",
    }
    body.update(extra)
    return client.post("/bookings", json=body)


class TestHealthAndAuth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_me(self, client, auth_headers):
        resp = client.get("/me", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["booking_page_slug"] == "fade-and-co"

    def test_duplicate_email(self, client, auth_headers):
        resp = client.post("/users", json={"email": "owner@salon.test", "password": "anotherpass"})
        assert resp.status_code == 409

    def test_bad_password(self, client, auth_headers):
        resp = client.post("/auth/login", data={"username": "owner@salon.test", "password": "wrong-pass"})
        assert resp.status_code == 401

    def test_requires_token(self, client):
        assert client.get("/services").status_code == 401

    def test_update_preferences(self, client, auth_headers):
        resp = client.patch("/me", headers=auth_headers, json={"sms_notifications": True})
        assert resp.status_code == 200
        assert resp.json()["sms_notifications"] is True


class TestServices:
    def test_duration_bounds(self, client, auth_headers):
        resp = client.post("/services", headers=auth_headers, json={
            "name": "Too quick", "duration": 10, "price": 1000,
        })
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "duration"

    def test_update_and_list(self, client, auth_headers, api_service):
        resp = client.put(f"/services/{api_service['id']}", headers=auth_headers, json={"buffer_time": 15})
        assert resp.status_code == 200
        assert resp.json()["buffer_time"] == 15
        assert [s["name"] for s in client.get("/services", headers=auth_headers).json()] == ["Haircut"]

    def test_delete_blocked_by_future_booking(self, client, auth_headers, api_service):
        assert _book(client, api_service["id"], future_at(10)).status_code == 201
        resp = client.delete(f"/services/{api_service['id']}", headers=auth_headers)
        assert resp.status_code == 400

    def test_delete_unused(self, client, auth_headers, api_service):
        resp = client.delete(f"/services/{api_service['id']}", headers=auth_headers)
        assert resp.status_code == 200
        assert client.get(f"/services/{api_service['id']}", headers=auth_headers).status_code == 404


class TestCreateBooking:
    def test_confirmed_booking(self, client, api_service, sender):
        resp = _book(client, api_service["id"], future_at(14))
        assert resp.status_code == 201
        body = resp.json()
        assert body["payment_intent"] is None
        assert body["booking"]["status"] == "CONFIRMED"
        assert body["booking"]["payment_status"] == "PAID"
        assert len(sender.emails) == 1

    def test_slot_taken(self, client, api_service):
        assert _book(client, api_service["id"], future_at(14)).status_code == 201
        resp = _book(client, api_service["id"], future_at(14, 30))
        assert resp.status_code == 409
        assert resp.json()["code"] == "SLOT_TAKEN"

    def test_back_to_back(self, client, api_service):
        assert _book(client, api_service["id"], future_at(14)).status_code == 201
        assert _book(client, api_service["id"], future_at(15)).status_code == 201

    def test_validation_errors_are_400(self, client, api_service):
        resp = client.post("/bookings", json={"service_id": api_service["id"], "client_email": "nope"})
        assert resp.status_code == 400
        fields = {e["field"] for e in resp.json()["errors"]}
        assert {"start_time", "client_email"} <= fields

    def test_unknown_service(self, client, auth_headers):
        resp = _book(client, 9999, future_at(14))
        assert resp.status_code == 404
        assert resp.json()["code"] == "SERVICE_NOT_FOUND"

    def test_past_start(self, client, api_service):
        resp = _book(client, api_service["id"], future_at(10, days_ahead=-2))
        assert resp.status_code == 400

    def test_beyond_advance_window(self, client, api_service):
        resp = _book(client, api_service["id"], future_at(10, days_ahead=45))
        assert resp.status_code == 400

    def test_paid_booking_gets_payment_intent(self, client, api_service, gateway, sender):
        resp = _book(client, api_service["id"], future_at(11), requires_payment=True)
        assert resp.status_code == 201
        body = resp.json()
        assert body["booking"]["status"] == "PENDING"
        assert body["payment_intent"] == {"id": "pi_test_1", "client_secret": "pi_test_1_secret"}
        assert body["booking"]["payment_intent_id"] == "pi_test_1"
        assert gateway.created[0][0] == 4500
        assert sender.emails == []

    def test_payment_intent_failure_releases_slot(self, client, api_service, gateway):
        gateway.fail = True
        resp = _book(client, api_service["id"], future_at(11), requires_payment=True)
        assert resp.status_code == 502
        gateway.fail = False
        assert _book(client, api_service["id"], future_at(11)).status_code == 201


class TestPaymentWebhook:
    def _event(self, kind, intent_id):
        return {"type": kind, "data": {"object": {"id": intent_id}}}

    def test_duplicate_success_delivery(self, client, api_service, sender):
        booking = _book(client, api_service["id"], future_at(11), requires_payment=True).json()["booking"]
        event = self._event("payment_intent.succeeded", booking["payment_intent_id"])

        first = client.post("/webhooks/payments", json=event).json()
        second = client.post("/webhooks/payments", json=event).json()
        assert first["status"] == second["status"] == "CONFIRMED"
        assert first["payment_status"] == second["payment_status"] == "PAID"
        assert len(sender.emails) == 1

    def test_failure_cancels(self, client, api_service):
        booking = _book(client, api_service["id"], future_at(11), requires_payment=True).json()["booking"]
        event = self._event("payment_intent.payment_failed", booking["payment_intent_id"])
        body = client.post("/webhooks/payments", json=event).json()
        assert (body["status"], body["payment_status"]) == ("CANCELLED", "FAILED")

    def test_unknown_reference_is_acknowledged(self, client):
        resp = client.post("/webhooks/payments", json=self._event("payment_intent.succeeded", "pi_nope"))
        assert resp.status_code == 200
        assert resp.json() == {"received": True}

    def test_unhandled_type(self, client):
        resp = client.post("/webhooks/payments", json=self._event("charge.refunded", "ch_1"))
        assert resp.json() == {"received": True}


class TestManageBookings:
    @pytest.fixture
    def booking(self, client, api_service):
        return _book(client, api_service["id"], future_at(14)).json()["booking"]

    def test_list_and_get(self, client, auth_headers, booking):
        listed = client.get("/bookings", headers=auth_headers).json()
        assert [b["id"] for b in listed] == [booking["id"]]
        assert client.get(f"/bookings/{booking['id']}", headers=auth_headers).status_code == 200

    def test_list_by_status(self, client, auth_headers, booking):
        resp = client.get("/bookings", headers=auth_headers, params={"status": "CANCELLED"})
        assert resp.json() == []

    def test_reschedule_over_itself(self, client, auth_headers, booking):
        new_start = future_at(14, 30)
        resp = client.put(f"/bookings/{booking['id']}", headers=auth_headers, json={
            "start_time": new_start.isoformat(),
            "end_time": (new_start + timedelta(minutes=60)).isoformat(),
        })
        assert resp.status_code == 200
        assert resp.json()["start_time"].startswith(new_start.strftime("%Y-%m-%dT%H:%M"))

    def test_reschedule_into_conflict(self, client, auth_headers, api_service, booking):
        other = _book(client, api_service["id"], future_at(16)).json()["booking"]
        resp = client.put(f"/bookings/{other['id']}", headers=auth_headers, json={
            "start_time": future_at(14, 30).isoformat(),
        })
        assert resp.status_code == 409
        assert resp.json()["code"] == "SLOT_TAKEN"

    def test_end_without_start(self, client, auth_headers, booking):
        resp = client.put(f"/bookings/{booking['id']}", headers=auth_headers, json={
            "end_time": future_at(18).isoformat(),
        })
        assert resp.status_code == 400

    def test_edit_notes(self, client, auth_headers, booking):
        resp = client.put(f"/bookings/{booking['id']}", headers=auth_headers, json={"notes": "prefers scissors"})
        assert resp.json()["notes"] == "prefers scissors"

    def test_invalid_status_change(self, client, auth_headers, booking):
        client.put(f"/bookings/{booking['id']}", headers=auth_headers, json={"status": "COMPLETED"})
        resp = client.put(f"/bookings/{booking['id']}", headers=auth_headers, json={"status": "PENDING"})
        assert resp.status_code == 409
        assert resp.json()["code"] == "INVALID_TRANSITION"

    def test_cancel_frees_slot(self, client, auth_headers, api_service, booking):
        resp = client.delete(f"/bookings/{booking['id']}", headers=auth_headers)
        assert resp.json()["status"] == "CANCELLED"
        assert _book(client, api_service["id"], future_at(14)).status_code == 201

    def test_other_provider_cannot_see(self, client, booking):
        client.post("/users", json={"email": "rival@salon.test", "password": "rivalpass1"})
        token = client.post(
            "/auth/login", data={"username": "rival@salon.test", "password": "rivalpass1"}
        ).json()["access_token"]
        resp = client.get(f"/bookings/{booking['id']}", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 404

    def test_clients_summary(self, client, auth_headers, booking):
        clients = client.get("/clients", headers=auth_headers).json()
        assert len(clients) == 1
        assert clients[0]["email"] == "guest@example.com"
        assert clients[0]["total_bookings"] == 1
        assert clients[0]["total_spent"] == 4500

    def test_rejected_update_keeps_booking(self, client, auth_headers, booking):
        resp = client.put(f"/bookings/{booking['id']}", headers=auth_headers, json={
            "start_time": future_at(17).isoformat(),
            "status": "PENDING",
            "notes": "running late",
        })
        assert resp.status_code == 409
        current = client.get(f"/bookings/{booking['id']}", headers=auth_headers).json()
        assert current["start_time"] == booking["start_time"]
        assert current["notes"] is None

    def test_unpaid_booking_cannot_be_confirmed_by_hand(self, client, auth_headers, api_service, sender):
        pending = _book(client, api_service["id"], future_at(11), requires_payment=True).json()["booking"]
        resp = client.put(f"/bookings/{pending['id']}", headers=auth_headers, json={"status": "CONFIRMED"})
        assert resp.status_code == 409
        current = client.get(f"/bookings/{pending['id']}", headers=auth_headers).json()
        assert (current["status"], current["payment_status"]) == ("PENDING", "PENDING")
        assert sender.emails == []

    def test_move_into_the_past(self, client, auth_headers, booking):
        resp = client.put(f"/bookings/{booking['id']}", headers=auth_headers, json={
            "start_time": future_at(10, days_ahead=-1).isoformat(),
        })
        assert resp.status_code == 400
        assert resp.json()["code"] == "OUTSIDE_BOOKING_WINDOW"

    def test_move_beyond_advance_window(self, client, auth_headers, booking):
        resp = client.put(f"/bookings/{booking['id']}", headers=auth_headers, json={
            "start_time": future_at(10, days_ahead=45).isoformat(),
        })
        assert resp.status_code == 400
        assert resp.json()["code"] == "OUTSIDE_BOOKING_WINDOW"


class TestPublicPage:
    def test_page_lists_active_services(self, client, api_service):
        resp = client.get("/public/fade-and-co")
        assert resp.status_code == 200
        assert [s["id"] for s in resp.json()["services"]] == [api_service["id"]]

    def test_unknown_slug(self, client):
        assert client.get("/public/nobody").status_code == 404

    def test_availability_excludes_booked_slot(self, client, api_service):
        assert _book(client, api_service["id"], future_at(10)).status_code == 201
        resp = client.get("/public/fade-and-co/availability", params={
            "service_id": api_service["id"],
            "date": future_at(10).date().isoformat(),
        })
        starts = resp.json()["available_starts"]
        assert "10:00" not in starts
        assert "09:15" not in starts
        assert "09:00" in starts
        assert "11:00" in starts


class TestCron:
    def test_secret_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(
            cron_routes, "settings", dataclasses.replace(cron_routes.settings, cron_secret="s3cret")
        )
        assert client.get("/cron/reminders").status_code == 401
        resp = client.get("/cron/reminders", headers={"Authorization": "Bearer s3cret"})
        assert resp.status_code == 200
        assert resp.json()["processed"] == 0


class TestBusyCalendar:
    def test_answers_503_with_retry_after(self, client, auth_headers, api_service, monkeypatch):
        provider_id = client.get("/me", headers=auth_headers).json()["id"]
        monkeypatch.setattr(deps.provider_locks, "timeout", 0.05)

        with deps.provider_locks.hold(provider_id):
            resp = _book(client, api_service["id"], future_at(10))
        assert resp.status_code == 503
        assert resp.json()["code"] == "BUSY"
        assert resp.headers["Retry-After"] == str(settings.busy_retry_after)

        assert _book(client, api_service["id"], future_at(10)).status_code == 201


class TestClients:
    @pytest.fixture
    def guest(self, client, auth_headers, api_service):
        assert _book(client, api_service["id"], future_at(14)).status_code == 201
        return client.get("/clients", headers=auth_headers).json()[0]

    def test_detail_lists_bookings(self, client, auth_headers, guest):
        resp = client.get(f"/clients/{guest['id']}", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["total_bookings"] == 1
        assert [b["client_email"] for b in body["bookings"]] == ["guest@example.com"]

    def test_update(self, client, auth_headers, guest):
        resp = client.put(f"/clients/{guest['id']}", headers=auth_headers, json={
            "name": "Jamie Lee",
            "notes": "allergic to lavender",
        })
        assert resp.status_code == 200
        assert resp.json()["name"] == "Jamie Lee"
        assert resp.json()["notes"] == "allergic to lavender"
        assert resp.json()["total_bookings"] == 1

    def test_update_to_taken_email(self, client, auth_headers, guest):
        client.post("/clients", headers=auth_headers, json={"email": "other@example.com"})
        resp = client.put(f"/clients/{guest['id']}", headers=auth_headers, json={"email": "other@example.com"})
        assert resp.status_code == 409

    def test_delete_with_bookings(self, client, auth_headers, guest):
        assert client.delete(f"/clients/{guest['id']}", headers=auth_headers).status_code == 400

    def test_delete_unused(self, client, auth_headers):
        created = client.post("/clients", headers=auth_headers, json={
            "email": "walkin@example.com", "name": "Walk In",
        }).json()
        assert client.delete(f"/clients/{created['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"/clients/{created['id']}", headers=auth_headers).status_code == 404

    def test_unknown_client(self, client, auth_headers):
        assert client.get("/clients/9999", headers=auth_headers).status_code == 404


class TestDashboard:
    def test_requires_token(self, client):
        assert client.get("/dashboard").status_code == 401

    def test_lists_recent_bookings(self, client, auth_headers, api_service):
        booking = _book(client, api_service["id"], future_at(14)).json()["booking"]
        resp = client.get("/dashboard", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert [b["id"] for b in body["recent_bookings"]] == [booking["id"]]
        assert set(body) == {
            "this_month", "last_month", "growth",
            "upcoming_bookings", "recent_bookings", "service_performance",
        }
