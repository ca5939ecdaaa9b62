from datetime import date, timedelta

import pytest


def next_weekday(weekday):
    today = date.today()
    return today + timedelta(days=(weekday - today.weekday()) % 7 or 7)


MONDAY = next_weekday(0)
SUNDAY = next_weekday(6)


def appointment_payload(start="10:00", phone="+77010000001", target_date=MONDAY, **kwargs):
    payload = {
        "service_ids": [1],
        "appointment_date": target_date.isoformat(),
        "appointment_time": start,
        "client_name": "Арман",
        "client_phone": phone,
    }
    payload.update(kwargs)
    return payload


@pytest.fixture
def appointment(client):
    response = client.post("/api/appointments", json=appointment_payload(master_id=1))
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_services_localized(client):
    names = [s["name"] for s in client.get("/api/services").json()]
    assert names == ["Мужская стрижка", "Стрижка бороды"]

    names = [s["name"] for s in client.get("/api/services", params={"lang": "en"}).json()]
    assert names[0] == "Men's haircut"


class TestSchedule:

    def test_working_day(self, client):
        response = client.get(f"/api/schedule/{MONDAY.isoformat()}", params={"service_ids": "1"})
        assert response.status_code == 200
        data = response.json()
        assert data["is_working_day"] is True
        assert data["working_hours"] == {"start": "10:00", "end": "20:00"}
        assert data["slots"][0] == "10:00"
        # 60 минут + 10 минут буфера
        assert data["slots"][-1] == "18:30"

    def test_several_services(self, client):
        data = client.get(f"/api/schedule/{MONDAY.isoformat()}", params={"service_ids": "1,2"}).json()
        assert data["slots"][-1] == "18:00"

    def test_day_off(self, client):
        data = client.get(f"/api/schedule/{SUNDAY.isoformat()}").json()
        assert data["is_working_day"] is False
        assert data["slots"] == []

    @pytest.mark.parametrize("date_str,status_code", [
        ("07-01-2030", 400),
        ((date.today() - timedelta(days=1)).isoformat(), 400),
        ((date.today() + timedelta(days=120)).isoformat(), 400),
    ])
    def test_bad_dates(self, client, date_str, status_code):
        assert client.get(f"/api/schedule/{date_str}").status_code == status_code

    def test_unknown_service(self, client):
        response = client.get(f"/api/schedule/{MONDAY.isoformat()}", params={"service_ids": "99"})
        assert response.status_code == 404

    def test_available_dates(self, client):
        response = client.get("/api/schedule/dates/available", params={"service_ids": "1"})
        assert response.status_code == 200
        dates = response.json()
        assert MONDAY.isoformat() in dates
        assert SUNDAY.isoformat() not in dates


class TestAppointments:

    def test_create(self, client):
        response = client.post("/api/appointments", json=appointment_payload())
        assert response.status_code == 200
        data = response.json()
        assert data["master_id"] == 2
        assert data["status"] == "pending"
        assert data["duration_minutes"] == 60
        assert data["suspicious"] is False

    def test_created_by_master_is_confirmed(self, client):
        data = client.post("/api/appointments", json=appointment_payload(booked_by_master=True)).json()
        assert data["status"] == "confirmed"

    def test_slot_taken(self, client, appointment):
        response = client.post(
            "/api/appointments",
            json=appointment_payload("10:30", phone="+77010000002", master_id=1)
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "slot_taken"

    def test_closed_day(self, client):
        response = client.post("/api/appointments", json=appointment_payload(target_date=SUNDAY))
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "closed_day"

    def test_bad_time(self, client):
        response = client.post("/api/appointments", json=appointment_payload("25:00"))
        assert response.status_code == 400

    def test_unknown_service(self, client):
        response = client.post("/api/appointments", json=appointment_payload(service_ids=[99]))
        assert response.status_code == 404

    def test_client_limit(self, client):
        responses = [
            client.post("/api/appointments", json=appointment_payload(start))
            for start in ("10:00", "12:00", "14:00", "16:00")
        ]
        assert [r.status_code for r in responses] == [200, 200, 200, 400]
        assert responses[2].json()["suspicious"] is True
        assert responses[3].json()["detail"]["code"] == "client_booking_limit_exceeded"

    def test_status_flow(self, client, appointment):
        url = f"/api/appointments/{appointment['id']}/status"
        assert client.patch(url, json={"status": "confirmed"}).json()["status"] == "confirmed"
        assert client.patch(url, json={"status": "cancelled"}).json()["status"] == "cancelled"

        response = client.patch(url, json={"status": "confirmed"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_transition"

    def test_status_validation(self, client, appointment):
        url = f"/api/appointments/{appointment['id']}/status"
        assert client.patch(url, json={"status": "done"}).status_code == 422
        assert client.patch("/api/appointments/999/status", json={"status": "confirmed"}).status_code == 404

    def test_reschedule(self, client, appointment):
        url = f"/api/appointments/{appointment['id']}"
        response = client.patch(url, json={"new_date": MONDAY.isoformat(), "new_time": "15:00"})
        assert response.status_code == 200
        assert response.json()["appointment_time"] == "15:00"

        client.post("/api/appointments", json=appointment_payload("17:00", phone="+77010000002", master_id=1))
        response = client.patch(url, json={"new_date": MONDAY.isoformat(), "new_time": "16:30"})
        assert response.status_code == 409

    def test_reassign(self, client, appointment):
        url = f"/api/appointments/{appointment['id']}/master"
        response = client.patch(url, json={"master_id": 2})
        assert response.status_code == 200
        assert response.json()["master_id"] == 2

        assert client.patch(url, json={"master_id": 42}).status_code == 400


class TestSettings:

    def test_get_and_update(self, client):
        data = client.get("/api/settings").json()
        assert data["schedule_mode"] == "weekly"
        assert data["buffer_time"] == 10

        response = client.patch("/api/settings", json={"buffer_time": 0})
        assert response.status_code == 200
        assert response.json()["buffer_time"] == 0

        slots = client.get(f"/api/schedule/{MONDAY.isoformat()}", params={"service_ids": "1"}).json()["slots"]
        assert slots[-1] == "19:00"

    def test_invalid_update(self, client):
        assert client.patch("/api/settings", json={"schedule_mode": "daily"}).status_code == 422

    def test_weekly_day(self, client):
        response = client.put("/api/settings/weekly", json={
            "day_of_week": 0,
            "start": "12:00",
            "end": "18:00",
            "breaks": [{"start": "14:00", "end": "15:00"}],
        })
        assert response.status_code == 200

        data = client.get(f"/api/schedule/{MONDAY.isoformat()}", params={"service_ids": "2"}).json()
        assert data["working_hours"] == {"start": "12:00", "end": "18:00"}
        assert data["breaks"] == [{"start": "14:00", "end": "15:00"}]
        assert "14:00" not in data["slots"]

    def test_override(self, client):
        response = client.put(f"/api/settings/overrides/{MONDAY.isoformat()}", json={"is_working": False})
        assert response.status_code == 200
        assert client.get(f"/api/schedule/{MONDAY.isoformat()}").json()["is_working_day"] is False

        assert client.delete("/api/settings/overrides").json()["deleted"] == 1
        assert client.get(f"/api/schedule/{MONDAY.isoformat()}").json()["is_working_day"] is True

    def test_shift_pattern(self, client):
        response = client.post("/api/settings/shift-pattern", json={
            "work_days": 1,
            "off_days": 1,
            "start": "09:00",
            "end": "21:00",
            "start_date": MONDAY.isoformat(),
            "period_months": 1,
        })
        assert response.status_code == 200
        assert client.get("/api/settings").json()["schedule_mode"] == "shift"

        monday = client.get(f"/api/schedule/{MONDAY.isoformat()}").json()
        assert monday["working_hours"] == {"start": "09:00", "end": "21:00"}
        tuesday = client.get(f"/api/schedule/{(MONDAY + timedelta(days=1)).isoformat()}").json()
        assert tuesday["is_working_day"] is False

    def test_masters(self, client):
        assert client.post("/api/settings/masters", json={"name": "Ерлан"}).json()["status"] == "active"
        assert client.delete("/api/settings/masters/2").json()["status"] == "terminated"
        assert client.delete("/api/settings/masters/99").status_code == 404

        data = client.post("/api/appointments", json=appointment_payload()).json()
        assert data["master_id"] == 3

    def test_blocked_phones(self, client):
        client.post("/api/settings/blocked-phones", json={"phone": "+7 701 000 00 01"})
        response = client.post("/api/appointments", json=appointment_payload(phone="+77010000001"))
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "client_blocked"

        assert client.delete("/api/settings/blocked-phones/77010000001").status_code == 200
        assert client.post("/api/appointments", json=appointment_payload(phone="+77010000001")).status_code == 200
