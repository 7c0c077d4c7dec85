"""End-to-end tests through the FastAPI app."""

from types import SimpleNamespace

import pytest


@pytest.fixture
def staff(shop, session):
    ids = SimpleNamespace(max=shop.max.id, tom=shop.tom.id)
    # hand the shared connection back to the app's sessions
    session.close()
    return ids


def appointment_body(barber_id, day="2024-06-04", time_slot="10:00", name="Anna"):
    return {
        "barber_id": barber_id,
        "date": day,
        "time_slot": time_slot,
        "customer_name": name,
        "customer_email": f"{name.lower()}@example.com",
    }


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestAuth:
    def test_login(self, client, admin_headers):
        resp = client.post("/auth/login", data={"username": "ADMIN@shop.de", "password": "secret-pass"})
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

    def test_login_wrong_password(self, client, admin_headers):
        resp = client.post("/auth/login", data={"username": "admin@shop.de", "password": "nope"})
        assert resp.status_code == 401

    def test_me(self, client, barber_headers):
        resp = client.get("/me", headers=barber_headers)
        assert resp.json()["role"] == "barber"

    def test_missing_token(self, client):
        assert client.get("/me").status_code == 401

    def test_create_user_admin_only(self, client, admin_headers, barber_headers, staff):
        body = {"email": "Tom@Shop.de", "password": "long-enough", "role": "barber", "staff_id": staff.tom}
        assert client.post("/users", json=body, headers=barber_headers).status_code == 403

        resp = client.post("/users", json=body, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["email"] == "tom@shop.de"
        assert client.post("/users", json=body, headers=admin_headers).status_code == 409


class TestStaff:
    def test_list_is_public(self, client, staff):
        assert [s["name"] for s in client.get("/staff").json()] == ["Max", "Tom"]

    def test_create_requires_admin(self, client, barber_headers, admin_headers):
        body = {"name": "Ali", "free_day": 3}
        assert client.post("/staff", json=body, headers=barber_headers).status_code == 403
        assert client.post("/staff", json=body, headers=admin_headers).status_code == 201

    def test_day_availability(self, client, staff):
        resp = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"})
        data = resp.json()
        assert resp.status_code == 200
        assert data["available_starts"][0] == "09:00"
        assert len(data["available_starts"]) == 18

    def test_week_availability(self, client, staff):
        data = client.get(f"/staff/{staff.max}/availability/week").json()
        assert data["monday"] == "2024-05-27"
        assert data["iso_week"] == 22
        assert data["days"]["2024-05-27"] == []

    def test_negative_week_offset(self, client, staff):
        resp = client.get(f"/staff/{staff.tom}/availability/week", params={"offset": -1})
        assert resp.status_code == 422

    def test_working_hours(self, client, admin_headers, staff):
        body = {"day_of_week": 2, "start_time": "12:00", "end_time": "14:00"}
        assert client.put(f"/staff/{staff.tom}/working-hours", json=body, headers=admin_headers).status_code == 200

        data = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"}).json()
        assert data["available_starts"] == ["12:00", "12:30", "13:00", "13:30"]

        assert client.delete(f"/staff/{staff.tom}/working-hours/2", headers=admin_headers).status_code == 204
        data = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"}).json()
        assert len(data["available_starts"]) == 18
        assert client.delete(f"/staff/{staff.tom}/working-hours/2", headers=admin_headers).status_code == 404

    def test_drop_free_day_exception(self, client, admin_headers, staff):
        params = {"date": "2024-06-03"}
        body = {"date": "2024-06-03", "start_time": "10:00", "end_time": "12:00"}
        exception = client.post(f"/staff/{staff.max}/free-day-exceptions", json=body, headers=admin_headers).json()
        assert client.get(f"/staff/{staff.max}/availability", params=params).json()["available_starts"] == [
            "10:00",
            "10:30",
            "11:00",
            "11:30",
        ]

        url = f"/staff/{staff.max}/free-day-exceptions/{exception['id']}"
        assert client.delete(f"/staff/{staff.tom}/free-day-exceptions/{exception['id']}", headers=admin_headers).status_code == 404
        assert client.delete(url, headers=admin_headers).status_code == 204
        assert client.get(f"/staff/{staff.max}/availability", params=params).json()["available_starts"] == []


class TestAppointments:
    def test_create_and_conflict(self, client, barber_headers, staff):
        resp = client.post("/appointments", json=appointment_body(staff.tom), headers=barber_headers)
        assert resp.status_code == 201
        assert resp.json()["status"] == "confirmed"

        resp = client.post("/appointments", json=appointment_body(staff.tom, name="Ben"), headers=barber_headers)
        assert resp.status_code == 409

    def test_booked_slot_leaves_availability(self, client, barber_headers, staff):
        client.post("/appointments", json=appointment_body(staff.tom), headers=barber_headers)
        data = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"}).json()
        assert "10:00" not in data["available_starts"]

    def test_blank_name_is_rejected(self, client, barber_headers, staff):
        resp = client.post("/appointments", json=appointment_body(staff.tom, name=" "), headers=barber_headers)
        assert resp.status_code == 422

    def test_list_range(self, client, barber_headers, staff):
        client.post("/appointments", json=appointment_body(staff.tom), headers=barber_headers)
        resp = client.get("/appointments", params={"start": "2024-06-01", "end": "2024-06-30"}, headers=barber_headers)
        assert [a["customer_name"] for a in resp.json()] == ["Anna"]

    def test_move_cancel_restore(self, client, barber_headers, staff):
        appt_id = client.post("/appointments", json=appointment_body(staff.tom), headers=barber_headers).json()["id"]

        move = {"barber_id": staff.max, "date": "2024-06-05", "time_slot": "11:00"}
        assert client.patch(f"/appointments/{appt_id}/move", json=move, headers=barber_headers).json()["barber_id"] == staff.max

        cancelled = client.patch(f"/appointments/{appt_id}/cancel", headers=barber_headers).json()
        assert (cancelled["status"], cancelled["cancelled_by"]) == ("cancelled", "barber")

        restored = client.patch(f"/appointments/{appt_id}/restore", headers=barber_headers).json()
        assert restored["status"] == "confirmed"

    def test_unknown_appointment(self, client, barber_headers):
        assert client.patch("/appointments/999/cancel", headers=barber_headers).status_code == 404

    def test_online_booking_and_customer_cancel(self, client, staff):
        resp = client.post("/bookings", json=appointment_body(staff.tom))
        assert resp.status_code == 201
        appt = resp.json()
        assert appt["source"] == "online"

        resp = client.post(f"/bookings/{appt['id']}/cancel", json={"customer_email": "anna@example.com"})
        assert resp.json()["cancelled_by"] == "customer"

    def test_online_booking_on_free_day(self, client, staff):
        resp = client.post("/bookings", json=appointment_body(staff.max, day="2024-06-03"))
        assert resp.status_code == 422


class TestDeleteAndUndo:
    def test_delete_then_undo(self, client, barber_headers, staff):
        appt_id = client.post("/appointments", json=appointment_body(staff.tom), headers=barber_headers).json()["id"]

        assert client.delete(f"/appointments/{appt_id}", headers=barber_headers).json() == {
            "deleted": 1,
            "undo_available": True,
        }
        resp = client.post("/undo", headers=barber_headers)
        assert resp.json() == {"restored": 1, "failed": 0, "exceptions_removed": 0}
        assert client.post("/undo", headers=barber_headers).status_code == 409

    def test_bulk_delete_then_expire(self, client, barber_headers, staff):
        ids = [
            client.post("/appointments", json=appointment_body(staff.tom, time_slot=slot), headers=barber_headers).json()["id"]
            for slot in ("09:00", "09:30")
        ]
        resp = client.post("/appointments/bulk-delete", json={"ids": ids}, headers=barber_headers)
        assert resp.json()["deleted"] == 2

        assert client.post("/undo/expire", headers=barber_headers).status_code == 204
        assert client.post("/undo", headers=barber_headers).status_code == 409

    def test_undo_is_per_user(self, client, barber_headers, admin_headers, staff):
        appt_id = client.post("/appointments", json=appointment_body(staff.tom), headers=barber_headers).json()["id"]
        client.delete(f"/appointments/{appt_id}", headers=barber_headers)
        assert client.post("/undo", headers=admin_headers).status_code == 409

    def test_deleting_nothing_offers_no_undo(self, client, barber_headers):
        assert client.delete("/appointments/999", headers=barber_headers).json() == {
            "deleted": 0,
            "undo_available": False,
        }


class TestSeries:
    def series_body(self, barber_id, **extra):
        body = {
            "barber_id": barber_id,
            "day_of_week": 2,
            "time_slot": "14:00",
            "customer_name": "Stammkunde",
            "start_date": "2024-05-28",
            "end_date": "2024-06-18",
        }
        body.update(extra)
        return body

    def test_create_reports_skips(self, client, barber_headers, staff):
        client.post("/appointments", json=appointment_body(staff.tom, day="2024-06-11", time_slot="14:00"), headers=barber_headers)

        resp = client.post("/series", json=self.series_body(staff.tom), headers=barber_headers)

        assert resp.status_code == 201
        generation = resp.json()["generation"]
        assert (generation["created"], generation["skipped"]) == (3, 1)
        assert generation["skipped_dates"] == ["2024-06-11"]

    def test_pause_series(self, client, barber_headers, staff):
        body = self.series_body(staff.tom, customer_name="Mittag", is_pause=True)
        series = client.post("/series", json=body, headers=barber_headers).json()["series"]
        assert series["customer_name"] == "Pause - Mittag"
        assert series["is_pause"] is True

    def test_custom_interval_needs_weeks(self, client, barber_headers, staff):
        resp = client.post("/series", json=self.series_body(staff.tom, interval_type="custom"), headers=barber_headers)
        assert resp.status_code == 422

    def test_delete_series_then_undo(self, client, barber_headers, staff):
        series_id = client.post("/series", json=self.series_body(staff.tom), headers=barber_headers).json()["series"]["id"]

        resp = client.delete(f"/series/{series_id}", headers=barber_headers)
        assert resp.json() == {"deleted": 4, "undo_available": True}

        assert client.post("/undo", headers=barber_headers).json()["restored"] == 4
        params = {"start": "2024-05-28", "end": "2024-06-18"}
        rows = client.get("/appointments", params=params, headers=barber_headers).json()
        assert [r["series_id"] for r in rows] == [None] * 4

    def test_cancel_occurrence(self, client, barber_headers, staff):
        series_id = client.post("/series", json=self.series_body(staff.tom), headers=barber_headers).json()["series"]["id"]
        resp = client.post(f"/series/{series_id}/occurrences/cancel", json={"date": "2024-06-04"}, headers=barber_headers)
        assert resp.json()["status"] == "cancelled"


class TestTimeOff:
    def test_split_block(self, client, barber_headers, staff):
        body = {
            "staff_id": staff.tom,
            "start_date": "2024-06-04",
            "end_date": "2024-06-04",
            "start_time": "12:00",
            "end_time": "13:30",
        }
        block = client.post("/time-off", json=body, headers=barber_headers).json()

        resp = client.post(f"/time-off/{block['id']}/free-slot", json={"time_slot": "12:30"}, headers=barber_headers)

        assert [(b["start_time"], b["end_time"]) for b in resp.json()] == [("12:00", "12:00"), ("13:00", "13:30")]
        data = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"}).json()
        assert "12:30" in data["available_starts"]
        assert "13:00" not in data["available_starts"]

    def test_update_block(self, client, barber_headers, staff):
        body = {"staff_id": staff.tom, "start_date": "2024-06-04", "end_date": "2024-06-05"}
        block = client.post("/time-off", json=body, headers=barber_headers).json()
        params = {"date": "2024-06-05"}
        assert client.get(f"/staff/{staff.tom}/availability", params=params).json()["available_starts"] == []

        changes = {"end_date": "2024-06-04", "start_time": "12:00", "end_time": "12:30"}
        resp = client.patch(f"/time-off/{block['id']}", json=changes, headers=barber_headers)

        assert resp.status_code == 200
        assert (resp.json()["end_date"], resp.json()["start_time"]) == ("2024-06-04", "12:00")
        assert len(client.get(f"/staff/{staff.tom}/availability", params=params).json()["available_starts"]) == 18
        data = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"}).json()
        assert "12:00" not in data["available_starts"]
        assert "13:00" in data["available_starts"]

    def test_update_block_validates(self, client, barber_headers, staff):
        body = {"staff_id": staff.tom, "start_date": "2024-06-04", "end_date": "2024-06-04"}
        block = client.post("/time-off", json=body, headers=barber_headers).json()
        url = f"/time-off/{block['id']}"

        assert client.patch(url, json={"end_date": "2024-06-01"}, headers=barber_headers).status_code == 422
        assert client.patch(url, json={"start_time": "12:00"}, headers=barber_headers).status_code == 422
        assert client.patch(url, json={"start_date": None}, headers=barber_headers).status_code == 422
        assert client.patch("/time-off/999", json={"reason": "Arzt"}, headers=barber_headers).status_code == 404

    def test_unknown_staff(self, client, barber_headers):
        body = {"staff_id": 999, "start_date": "2024-06-04", "end_date": "2024-06-04"}
        assert client.post("/time-off", json=body, headers=barber_headers).status_code == 404

    def test_vacation_days(self, client, barber_headers, staff):
        body = {"staff_id": staff.tom, "start_date": "2024-08-05", "end_date": "2024-08-09"}
        client.post("/time-off", json=body, headers=barber_headers)
        resp = client.get("/time-off/vacation-days", params={"year": 2024}, headers=barber_headers)
        assert resp.json() == {str(staff.tom): 5}


class TestShopCalendar:
    def test_settings(self, client, admin_headers, barber_headers):
        assert client.put("/calendar/settings/bundesland", json={"value": "BY"}, headers=barber_headers).status_code == 403
        assert client.put("/calendar/settings/bundesland", json={"value": "XX"}, headers=admin_headers).status_code == 422
        assert client.put("/calendar/settings/colour", json={"value": 1}, headers=admin_headers).status_code == 404

        resp = client.put("/calendar/settings/bundesland", json={"value": "BE"}, headers=admin_headers)
        assert resp.json() == {"key": "bundesland", "value": "BE"}
        names = [h["name"] for h in client.get("/calendar/holidays", params={"year": 2024}).json()]
        assert "Internationaler Frauentag" in names
        assert "Fronleichnam" not in names

    def test_closed_date_hides_day(self, client, admin_headers, staff):
        resp = client.post("/calendar/closed-dates", json={"date": "2024-06-04", "reason": "Inventur"}, headers=admin_headers)
        assert resp.status_code == 201
        assert client.post("/calendar/closed-dates", json={"date": "2024-06-04"}, headers=admin_headers).status_code == 409

        data = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"}).json()
        assert data["available_starts"] == []

    def test_open_sunday(self, client, admin_headers, staff):
        body = {"date": "2024-06-09", "open_time": "12:00", "close_time": "14:00"}
        sunday = client.post("/calendar/open-sundays", json=body, headers=admin_headers).json()
        client.post(f"/calendar/open-sundays/{sunday['id']}/staff", json={"staff_id": staff.tom}, headers=admin_headers)

        data = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-09"}).json()
        assert data["available_starts"] == ["12:00", "12:30", "13:00", "13:30"]

    def test_reopen_closed_date(self, client, admin_headers, barber_headers, staff):
        closed = client.post("/calendar/closed-dates", json={"date": "2024-06-04"}, headers=admin_headers).json()
        assert client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"}).json()["available_starts"] == []

        assert client.delete(f"/calendar/closed-dates/{closed['id']}", headers=barber_headers).status_code == 403
        assert client.delete(f"/calendar/closed-dates/{closed['id']}", headers=admin_headers).status_code == 204
        assert client.delete(f"/calendar/closed-dates/{closed['id']}", headers=admin_headers).status_code == 404

        data = client.get(f"/staff/{staff.tom}/availability", params={"date": "2024-06-04"}).json()
        assert len(data["available_starts"]) == 18

    def test_withdraw_open_sunday(self, client, admin_headers, staff):
        body = {"date": "2024-06-09", "open_time": "12:00", "close_time": "14:00"}
        sunday = client.post("/calendar/open-sundays", json=body, headers=admin_headers).json()
        client.post(f"/calendar/open-sundays/{sunday['id']}/staff", json={"staff_id": staff.tom}, headers=admin_headers)
        client.post(f"/calendar/open-sundays/{sunday['id']}/staff", json={"staff_id": staff.max}, headers=admin_headers)
        params = {"date": "2024-06-09"}

        resp = client.delete(f"/calendar/open-sundays/{sunday['id']}/staff/{staff.tom}", headers=admin_headers)
        assert resp.status_code == 204
        assert client.get(f"/staff/{staff.tom}/availability", params=params).json()["available_starts"] == []
        assert len(client.get(f"/staff/{staff.max}/availability", params=params).json()["available_starts"]) == 4

        assert client.delete(f"/calendar/open-sundays/{sunday['id']}", headers=admin_headers).status_code == 204
        assert client.get(f"/staff/{staff.max}/availability", params=params).json()["available_starts"] == []
        resp = client.delete(f"/calendar/open-sundays/{sunday['id']}/staff/{staff.max}", headers=admin_headers)
        assert resp.status_code == 404

    def test_withdraw_open_holiday(self, client, admin_headers, staff):
        # Fronleichnam in NW
        params = {"date": "2024-05-30"}
        assert client.get(f"/staff/{staff.tom}/availability", params=params).json()["available_starts"] == []

        holiday = client.post("/calendar/open-holidays", json=params, headers=admin_headers).json()
        assert len(client.get(f"/staff/{staff.tom}/availability", params=params).json()["available_starts"]) == 18

        assert client.delete(f"/calendar/open-holidays/{holiday['id']}", headers=admin_headers).status_code == 204
        assert client.get(f"/staff/{staff.tom}/availability", params=params).json()["available_starts"] == []
        assert client.delete(f"/calendar/open-holidays/{holiday['id']}", headers=admin_headers).status_code == 404

    def test_open_sunday_must_be_sunday(self, client, admin_headers):
        body = {"date": "2024-06-08", "open_time": "12:00", "close_time": "14:00"}
        assert client.post("/calendar/open-sundays", json=body, headers=admin_headers).status_code == 422

    def test_grid_config_is_public(self, client):
        data = client.get("/calendar/config").json()
        assert data["slot_minutes"] == 30
        assert (data["open_time"], data["close_time"]) == ("08:00", "20:00")
