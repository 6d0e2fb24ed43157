"""
REST client for the hosted backend's availability and appointment tables.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..domain.exceptions import BackendAPIError, InvalidInstantError
from ..domain.models import Appointment, ConsultationRequest, WeeklyAvailability
from ..domain.timeutils import parse_calendar_date, parse_instant, parse_wall_time

logger = logging.getLogger(__name__)


def parse_availability_rows(rows: List[Dict[str, Any]]) -> List[WeeklyAvailability]:
    """
    Convert ``doctor_availability`` rows into domain windows.

    Rows whose times cannot be parsed are skipped with a warning. Windows
    with start >= end are kept; the slot generator reports and drops them.
    """
    windows: List[WeeklyAvailability] = []

    for row in rows:
        try:
            windows.append(
                WeeklyAvailability(
                    day_of_week=int(row["day_of_week"]),
                    start_time=parse_wall_time(row["start_time"]),
                    end_time=parse_wall_time(row["end_time"]),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Could not parse availability row %s: %s", row.get("id"), e)
            continue

    return windows


def parse_appointment_row(row: Dict[str, Any], timezone: str = "UTC") -> Appointment:
    """
    Convert an ``appointments`` row into an Appointment.

    Raises:
        InvalidInstantError: If ``appointment_date`` is missing or malformed
        KeyError: If an identifier column is missing
    """
    doctor = row.get("doctors") or {}
    doctor_name = " ".join(
        part for part in (doctor.get("first_name"), doctor.get("last_name")) if part
    )

    return Appointment(
        id=str(row["id"]),
        doctor_id=str(row["doctor_id"]),
        patient_id=str(row["user_id"]),
        scheduled_at=parse_instant(row.get("appointment_date"), timezone),
        meeting_link=row.get("meet_link"),
        status=row.get("status") or "pending",
        consultation_type=row.get("consultation_type") or "video",
        notes=row.get("notes"),
        doctor_name=doctor_name or None,
    )


def parse_appointment_rows(
    rows: List[Dict[str, Any]],
    timezone: str = "UTC",
) -> List[Appointment]:
    """Parse appointment rows, skipping the ones that cannot be parsed."""
    appointments: List[Appointment] = []

    for row in rows:
        try:
            appointments.append(parse_appointment_row(row, timezone))
        except (KeyError, InvalidInstantError) as e:
            logger.warning("Could not parse appointment row %s: %s", row.get("id"), e)
            continue

    return appointments


def parse_consultation_row(row: Dict[str, Any]) -> ConsultationRequest:
    """
    Convert a ``consultation_requests`` row into a ConsultationRequest.

    Raises:
        KeyError: If a required column is missing
        ValueError: If the preferred date or times cannot be parsed
    """
    profile = row.get("profiles") or {}
    patient_name = " ".join(
        part for part in (profile.get("first_name"), profile.get("last_name")) if part
    )

    return ConsultationRequest(
        id=str(row["id"]),
        patient_id=str(row["user_id"]),
        title=row["title"],
        preferred_date=parse_calendar_date(row["preferred_date"]),
        preferred_time_start=parse_wall_time(row["preferred_time_start"]),
        preferred_time_end=parse_wall_time(row["preferred_time_end"]),
        meeting_link=row.get("meet_link") or "",
        description=row.get("description"),
        status=row.get("status") or "pending",
        doctor_id=row.get("doctor_id"),
        patient_name=patient_name or None,
    )


def parse_consultation_rows(rows: List[Dict[str, Any]]) -> List[ConsultationRequest]:
    """Parse consultation request rows, skipping the ones that cannot be parsed."""
    requests_: List[ConsultationRequest] = []

    for row in rows:
        try:
            requests_.append(parse_consultation_row(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Could not parse consultation request %s: %s", row.get("id"), e)
            continue

    return requests_


class BackendClient:
    """
    Client for the backend-as-a-service REST interface.

    Row-level security on the backend decides what the caller may see; the
    optional user access token is forwarded for that purpose.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timezone: str = "UTC",
        timeout: int = 30,
    ):
        """
        Initialize the backend client.

        Args:
            base_url: Project URL, e.g. https://xyz.example.co
            api_key: Public (anon) API key
            access_token: Signed-in user's token, falls back to the API key
            timezone: Timezone used for naive timestamps
            timeout: Request timeout in seconds
        """
        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.timezone = timezone
        self.timeout = timeout
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Content-Type": "application/json",
        }

    def get_weekly_availability(self, doctor_id: str) -> List[WeeklyAvailability]:
        rows = self._get(
            "doctor_availability",
            {"doctor_id": f"eq.{doctor_id}", "order": "day_of_week.asc"},
        )
        return parse_availability_rows(rows)

    def get_appointments(self, user_id: str) -> List[Appointment]:
        rows = self._get(
            "appointments",
            {
                "user_id": f"eq.{user_id}",
                "select": "*,doctors(first_name,last_name)",
                "order": "appointment_date.asc",
            },
        )
        return parse_appointment_rows(rows, self.timezone)

    def get_doctor_appointments(self, doctor_id: str) -> List[Appointment]:
        rows = self._get(
            "appointments",
            {"doctor_id": f"eq.{doctor_id}", "order": "appointment_date.asc"},
        )
        return parse_appointment_rows(rows, self.timezone)

    def create_appointment(self, payload: Dict[str, Any]) -> Appointment:
        """
        Insert an appointment row.

        Raises:
            BackendAPIError: If the request fails or returns no row
        """
        row = self._write("post", "appointments", payload)
        return self._to_appointment(row)

    def update_appointment(self, appointment_id: str, changes: Dict[str, Any]) -> Appointment:
        """
        Update an appointment row, e.g. its meeting link and scheduled instant.

        Raises:
            BackendAPIError: If the request fails or no row matched
        """
        row = self._write("patch", "appointments", changes, row_id=appointment_id)
        return self._to_appointment(row)

    def get_consultation_requests(self, status: Optional[str] = None) -> List[ConsultationRequest]:
        params = {
            "select": "*,profiles!consultation_requests_user_id_fkey(first_name,last_name)",
            "order": "created_at.desc",
        }
        if status:
            params["status"] = f"eq.{status}"
        return parse_consultation_rows(self._get("consultation_requests", params))

    def get_consultation_request(self, request_id: str) -> Optional[ConsultationRequest]:
        rows = self._get("consultation_requests", {"id": f"eq.{request_id}"})
        if not rows:
            return None
        return self._to_consultation(rows[0])

    def create_consultation_request(self, payload: Dict[str, Any]) -> ConsultationRequest:
        row = self._write("post", "consultation_requests", payload)
        return self._to_consultation(row)

    def update_consultation_request(
        self, request_id: str, changes: Dict[str, Any]
    ) -> ConsultationRequest:
        row = self._write("patch", "consultation_requests", changes, row_id=request_id)
        return self._to_consultation(row)

    def _to_appointment(self, row: Dict[str, Any]) -> Appointment:
        try:
            return parse_appointment_row(row, self.timezone)
        except (KeyError, InvalidInstantError) as e:
            raise BackendAPIError(f"Backend returned an invalid appointment: {e}") from e

    def _to_consultation(self, row: Dict[str, Any]) -> ConsultationRequest:
        try:
            return parse_consultation_row(row)
        except (KeyError, TypeError, ValueError) as e:
            raise BackendAPIError(f"Backend returned an invalid consultation request: {e}") from e

    def _get(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        url = f"{self.rest_url}/{table}"

        try:
            response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise BackendAPIError(f"Failed to fetch {table}: {e}") from e
        except ValueError as e:
            raise BackendAPIError(f"Invalid JSON from {table}: {e}") from e

        if not isinstance(data, list):
            raise BackendAPIError(f"Unexpected response shape from {table}")

        return data

    def _write(
        self,
        method: str,
        table: str,
        payload: Dict[str, Any],
        row_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Insert (``post``) or update (``patch``) a row and return it.

        Raises:
            BackendAPIError: If the request fails or returns no row
        """
        url = f"{self.rest_url}/{table}"
        headers = {**self.headers, "Prefer": "return=representation"}
        action = "create" if method == "post" else "update"

        try:
            if method == "post":
                response = requests.post(url, headers=headers, json=payload, timeout=self.timeout)
            else:
                response = requests.patch(
                    url,
                    headers=headers,
                    params={"id": f"eq.{row_id}"},
                    json=payload,
                    timeout=self.timeout,
                )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise BackendAPIError(f"Failed to {action} {table} row: {e}") from e
        except ValueError as e:
            raise BackendAPIError(f"Invalid JSON from {table}: {e}") from e

        if not data:
            raise BackendAPIError(f"Backend returned no {table} row")

        return data[0] if isinstance(data, list) else data
