"""
Mock backend client for running without a hosted backend.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..domain.exceptions import BackendAPIError
from ..domain.models import Appointment, ConsultationRequest, WeeklyAvailability
from .backend_client import (
    parse_appointment_row,
    parse_appointment_rows,
    parse_availability_rows,
    parse_consultation_row,
    parse_consultation_rows,
)

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_backend_data.json"


class MockBackendClient:
    """
    In-memory client that mirrors ``BackendClient``.

    Rows are loaded from mock_backend_data.json (or a given file) in the
    same shape the REST API returns them. Writes are kept in memory only.
    """

    def __init__(self, data_file: Optional[Path] = None, timezone: str = "UTC"):
        self.data_file = data_file or DEFAULT_DATA_FILE
        self.timezone = timezone
        self._load_data()

    def _load_data(self) -> None:
        """Load mock rows from the JSON file."""
        if self.data_file.exists():
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            logger.warning("Mock data file %s not found, starting empty", self.data_file)
            data = {}

        self.availability_rows: List[Dict[str, Any]] = data.get("doctor_availability", [])
        self.appointment_rows: List[Dict[str, Any]] = data.get("appointments", [])
        self.request_rows: List[Dict[str, Any]] = data.get("consultation_requests", [])

    def get_weekly_availability(self, doctor_id: str) -> List[WeeklyAvailability]:
        rows = [r for r in self.availability_rows if r.get("doctor_id") == doctor_id]
        return parse_availability_rows(rows)

    def get_appointments(self, user_id: str) -> List[Appointment]:
        rows = [r for r in self.appointment_rows if r.get("user_id") == user_id]
        return parse_appointment_rows(rows, self.timezone)

    def get_doctor_appointments(self, doctor_id: str) -> List[Appointment]:
        rows = [r for r in self.appointment_rows if r.get("doctor_id") == doctor_id]
        return parse_appointment_rows(rows, self.timezone)

    def create_appointment(self, payload: Dict[str, Any]) -> Appointment:
        row = {"id": str(uuid.uuid4()), "meet_link": None, **payload}
        self.appointment_rows.append(row)
        return parse_appointment_row(row, self.timezone)

    def update_appointment(self, appointment_id: str, changes: Dict[str, Any]) -> Appointment:
        row = self._find(self.appointment_rows, appointment_id, "appointments")
        row.update(changes)
        return parse_appointment_row(row, self.timezone)

    def get_consultation_requests(self, status: Optional[str] = None) -> List[ConsultationRequest]:
        rows = [r for r in self.request_rows if status is None or r.get("status") == status]
        rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return parse_consultation_rows(rows)

    def get_consultation_request(self, request_id: str) -> Optional[ConsultationRequest]:
        for row in self.request_rows:
            if row.get("id") == request_id:
                return parse_consultation_row(row)
        return None

    def create_consultation_request(self, payload: Dict[str, Any]) -> ConsultationRequest:
        row = {"id": str(uuid.uuid4()), "doctor_id": None, **payload}
        self.request_rows.append(row)
        return parse_consultation_row(row)

    def update_consultation_request(
        self, request_id: str, changes: Dict[str, Any]
    ) -> ConsultationRequest:
        row = self._find(self.request_rows, request_id, "consultation_requests")
        row.update(changes)
        return parse_consultation_row(row)

    @staticmethod
    def _find(rows: List[Dict[str, Any]], row_id: str, table: str) -> Dict[str, Any]:
        for row in rows:
            if row.get("id") == row_id:
                return row
        raise BackendAPIError(f"Backend returned no {table} row")
