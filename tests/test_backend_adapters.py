"""
Tests for the backend REST client and the mock client.
"""

import json
from datetime import time

import pendulum
import pytest
import requests

from careslots.adapters import backend_client
from careslots.adapters.backend_client import (
    BackendClient,
    parse_appointment_rows,
    parse_availability_rows,
    parse_consultation_rows,
)
from careslots.adapters.mock_backend_client import MockBackendClient
from careslots.domain.exceptions import BackendAPIError


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self._payload


class TestRowParsing:
    def test_availability_rows(self):
        rows = [
            {"id": "a", "day_of_week": 1, "start_time": "09:00:00", "end_time": "11:00:00"},
            {"id": "b", "day_of_week": "3", "start_time": "14:00", "end_time": "16:30"},
        ]

        windows = parse_availability_rows(rows)

        assert [(w.day_of_week, w.start_time, w.end_time) for w in windows] == [
            (1, time(9, 0), time(11, 0)),
            (3, time(14, 0), time(16, 30)),
        ]

    def test_unparsable_availability_rows_are_skipped(self):
        rows = [
            {"id": "a", "day_of_week": 1, "start_time": "nine", "end_time": "11:00"},
            {"id": "b", "day_of_week": 1, "end_time": "11:00"},
            {"id": "c", "day_of_week": 2, "start_time": "10:00", "end_time": "09:00"},
        ]

        windows = parse_availability_rows(rows)

        # Inverted windows are left for the slot generator to report
        assert len(windows) == 1
        assert windows[0].day_of_week == 2

    def test_appointment_rows(self):
        rows = [
            {
                "id": "apt-1",
                "user_id": "patient-1",
                "doctor_id": "dr-1",
                "appointment_date": "2024-01-10T15:00:00+00:00",
                "meet_link": "https://meet.example/abc",
                "status": "confirmed",
                "doctors": {"first_name": "Anika", "last_name": "Mehta"},
            },
            {"id": "apt-2", "user_id": "patient-1", "doctor_id": "dr-1", "appointment_date": ""},
        ]

        appointments = parse_appointment_rows(rows)

        assert len(appointments) == 1
        apt = appointments[0]
        assert apt.scheduled_at == pendulum.datetime(2024, 1, 10, 15, 0, tz="UTC")
        assert apt.meeting_link == "https://meet.example/abc"
        assert apt.doctor_name == "Anika Mehta"
        assert apt.consultation_type == "video"


class TestBackendClient:
    def test_get_weekly_availability(self, monkeypatch):
        calls = []

        def fake_get(url, headers, params, timeout):
            calls.append((url, headers, params))
            return FakeResponse(
                [{"id": "a", "day_of_week": 1, "start_time": "09:00:00", "end_time": "10:00:00"}]
            )

        monkeypatch.setattr(backend_client.requests, "get", fake_get)
        client = BackendClient(base_url="https://project.example.co/", api_key="anon")

        windows = client.get_weekly_availability("dr-1")

        url, headers, params = calls[0]
        assert url == "https://project.example.co/rest/v1/doctor_availability"
        assert headers["apikey"] == "anon"
        assert headers["Authorization"] == "Bearer anon"
        assert params["doctor_id"] == "eq.dr-1"
        assert len(windows) == 1

    def test_access_token_is_forwarded(self):
        client = BackendClient(base_url="https://p.example.co", api_key="anon", access_token="jwt")

        assert client.headers["Authorization"] == "Bearer jwt"

    def test_http_error_raises_backend_error(self, monkeypatch):
        monkeypatch.setattr(
            backend_client.requests,
            "get",
            lambda url, headers, params, timeout: FakeResponse({}, status_code=500),
        )
        client = BackendClient(base_url="https://p.example.co", api_key="anon")

        with pytest.raises(BackendAPIError, match="Failed to fetch appointments"):
            client.get_appointments("patient-1")

    def test_create_appointment(self, monkeypatch):
        sent = {}

        def fake_post(url, headers, json, timeout):
            sent.update(url=url, headers=headers, json=json)
            return FakeResponse([{"id": "apt-9", "meet_link": None, **json}], status_code=201)

        monkeypatch.setattr(backend_client.requests, "post", fake_post)
        client = BackendClient(base_url="https://p.example.co", api_key="anon")
        payload = {
            "user_id": "patient-1",
            "doctor_id": "dr-1",
            "appointment_date": "2024-01-08T09:30:00Z",
            "consultation_type": "video",
            "notes": None,
            "status": "pending",
        }

        appointment = client.create_appointment(payload)

        assert sent["url"].endswith("/rest/v1/appointments")
        assert sent["headers"]["Prefer"] == "return=representation"
        assert appointment.id == "apt-9"
        assert appointment.status == "pending"

    def test_create_appointment_empty_response(self, monkeypatch):
        monkeypatch.setattr(
            backend_client.requests,
            "post",
            lambda url, headers, json, timeout: FakeResponse([]),
        )
        client = BackendClient(base_url="https://p.example.co", api_key="anon")

        with pytest.raises(BackendAPIError):
            client.create_appointment({})


class TestMockBackendClient:
    def test_bundled_data(self):
        client = MockBackendClient()

        assert len(client.get_weekly_availability("dr-mehta")) == 3
        assert [a.id for a in client.get_appointments("patient-1")] == ["apt-1", "apt-2"]
        assert [a.id for a in client.get_doctor_appointments("dr-mehta")] == ["apt-1", "apt-3"]

    def test_custom_data_file_and_create(self, tmp_path):
        data_file = tmp_path / "data.json"
        data_file.write_text(
            json.dumps(
                {
                    "doctor_availability": [
                        {"doctor_id": "dr-x", "day_of_week": 0, "start_time": "08:00", "end_time": "09:00"}
                    ],
                    "appointments": [],
                }
            ),
            encoding="utf-8",
        )
        client = MockBackendClient(data_file=data_file)

        created = client.create_appointment(
            {"user_id": "p", "doctor_id": "dr-x", "appointment_date": "2024-01-14T08:00:00Z", "status": "pending"}
        )

        assert client.get_weekly_availability("dr-x")[0].start_time == time(8, 0)
        assert client.get_appointments("p") == [created]

    def test_missing_data_file_starts_empty(self, tmp_path):
        client = MockBackendClient(data_file=tmp_path / "missing.json")

        assert client.get_weekly_availability("dr-mehta") == []

    def test_consultation_requests_newest_first(self):
        client = MockBackendClient()

        assert [r.id for r in client.get_consultation_requests()] == ["req-1", "req-2"]
        assert [r.id for r in client.get_consultation_requests(status="pending")] == ["req-1"]
        assert client.get_consultation_request("req-1").patient_name == "Lena Vogel"
        assert client.get_consultation_request("missing") is None

    def test_consultation_request_create_and_update(self, tmp_path):
        client = MockBackendClient(data_file=tmp_path / "missing.json")

        created = client.create_consultation_request(
            {
                "user_id": "p",
                "title": "Back pain",
                "description": None,
                "meet_link": "https://meet.example/p",
                "preferred_date": "2024-01-12",
                "preferred_time_start": "09:00",
                "preferred_time_end": "10:00",
                "status": "pending",
            }
        )
        accepted = client.update_consultation_request(
            created.id, {"status": "accepted", "doctor_id": "dr-x"}
        )

        assert created.doctor_id is None
        assert accepted.status == "accepted"
        assert accepted.doctor_id == "dr-x"
        assert client.get_consultation_requests(status="pending") == []

    def test_update_appointment(self):
        client = MockBackendClient()

        updated = client.update_appointment(
            "apt-3",
            {"meet_link": "https://zoom.us/j/1", "appointment_date": "2024-01-16T09:00:00Z"},
        )

        assert updated.meeting_link == "https://zoom.us/j/1"
        assert updated.scheduled_at == pendulum.datetime(2024, 1, 16, 9, 0, tz="UTC")
        assert client.get_appointments("patient-2") == [updated]

    def test_update_unknown_row(self):
        client = MockBackendClient()

        with pytest.raises(BackendAPIError):
            client.update_appointment("missing", {"meet_link": "https://zoom.us/j/1"})
        with pytest.raises(BackendAPIError):
            client.update_consultation_request("missing", {"status": "rejected"})


CONSULTATION_ROW = {
    "id": "req-1",
    "user_id": "patient-1",
    "title": "Persistent migraine",
    "description": None,
    "meet_link": "https://meet.example/req-1",
    "preferred_date": "2024-01-12",
    "preferred_time_start": "09:00:00",
    "preferred_time_end": "11:00:00",
    "status": "pending",
    "doctor_id": None,
    "profiles": {"first_name": "Lena", "last_name": "Vogel"},
}


class TestConsultationRequests:
    def test_consultation_rows(self):
        rows = [
            CONSULTATION_ROW,
            {**CONSULTATION_ROW, "id": "req-2", "preferred_date": "2024-01-12T09:00:00Z"},
            {**CONSULTATION_ROW, "id": "req-3", "preferred_time_end": "late"},
        ]

        parsed = parse_consultation_rows(rows)

        assert len(parsed) == 1
        request = parsed[0]
        assert request.preferred_date == pendulum.date(2024, 1, 12)
        assert request.preferred_time_start == time(9, 0)
        assert request.preferred_time_end == time(11, 0)
        assert request.patient_name == "Lena Vogel"
        assert request.is_open

    def test_get_consultation_requests_by_status(self, monkeypatch):
        calls = []

        def fake_get(url, headers, params, timeout):
            calls.append((url, params))
            return FakeResponse([CONSULTATION_ROW])

        monkeypatch.setattr(backend_client.requests, "get", fake_get)
        client = BackendClient(base_url="https://p.example.co", api_key="anon")

        requests_ = client.get_consultation_requests(status="pending")

        url, params = calls[0]
        assert url.endswith("/rest/v1/consultation_requests")
        assert params["status"] == "eq.pending"
        assert params["order"] == "created_at.desc"
        assert [r.id for r in requests_] == ["req-1"]

    def test_get_missing_consultation_request(self, monkeypatch):
        monkeypatch.setattr(
            backend_client.requests,
            "get",
            lambda url, headers, params, timeout: FakeResponse([]),
        )
        client = BackendClient(base_url="https://p.example.co", api_key="anon")

        assert client.get_consultation_request("req-404") is None

    def test_update_consultation_request_patches_by_id(self, monkeypatch):
        sent = {}

        def fake_patch(url, headers, params, json, timeout):
            sent.update(url=url, headers=headers, params=params, json=json)
            return FakeResponse([{**CONSULTATION_ROW, **json}])

        monkeypatch.setattr(backend_client.requests, "patch", fake_patch)
        client = BackendClient(base_url="https://p.example.co", api_key="anon")

        request = client.update_consultation_request(
            "req-1", {"status": "accepted", "doctor_id": "dr-1"}
        )

        assert sent["url"].endswith("/rest/v1/consultation_requests")
        assert sent["params"] == {"id": "eq.req-1"}
        assert sent["headers"]["Prefer"] == "return=representation"
        assert request.status == "accepted"
        assert request.doctor_id == "dr-1"

    def test_update_appointment_no_match(self, monkeypatch):
        monkeypatch.setattr(
            backend_client.requests,
            "patch",
            lambda url, headers, params, json, timeout: FakeResponse([]),
        )
        client = BackendClient(base_url="https://p.example.co", api_key="anon")

        with pytest.raises(BackendAPIError, match="no appointments row"):
            client.update_appointment("apt-404", {"meet_link": "https://zoom.us/j/1"})

    def test_update_appointment_http_error(self, monkeypatch):
        monkeypatch.setattr(
            backend_client.requests,
            "patch",
            lambda url, headers, params, json, timeout: FakeResponse({}, status_code=403),
        )
        client = BackendClient(base_url="https://p.example.co", api_key="anon")

        with pytest.raises(BackendAPIError, match="Failed to update appointments row"):
            client.update_appointment("apt-1", {"meet_link": "https://zoom.us/j/1"})
