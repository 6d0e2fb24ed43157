"""
Consultation requests: patients ask for a time, doctors accept or reject.
"""

from __future__ import annotations

import logging
from datetime import date, time
from typing import List, Optional

from pendulum import DateTime

from ..domain.exceptions import InvalidRequestError, RequestStateError
from ..domain.models import (
    STATUS_ACCEPTED,
    STATUS_PENDING,
    STATUS_REJECTED,
    ConsultationRequest,
)
from ..domain.timeutils import format_wall_time
from .booking import DataAccessProtocol, to_storage_string, validate_meeting_link

logger = logging.getLogger(__name__)


class ConsultationService:
    """
    Creates consultation requests and moves them out of ``pending``.
    """

    def __init__(self, data_access: DataAccessProtocol, timezone: str = "UTC") -> None:
        self._data_access = data_access
        self.timezone = timezone

    def request_consultation(
        self,
        *,
        patient_id: str,
        title: str,
        preferred_date: date,
        preferred_time_start: time,
        preferred_time_end: time,
        meeting_link: str,
        now: DateTime,
        description: Optional[str] = None,
    ) -> ConsultationRequest:
        """
        Create a pending, unassigned consultation request.

        Raises:
            InvalidRequestError: If the title is empty, the preferred date
                lies before today or the time range is empty
            InvalidMeetingLinkError: If the meeting link is not a valid URL
        """
        if not title or not title.strip():
            raise InvalidRequestError("Title is required")

        today = now.in_timezone(self.timezone).date()
        if preferred_date < today:
            raise InvalidRequestError(
                f"Preferred date {preferred_date.isoformat()} is in the past"
            )

        if preferred_time_start >= preferred_time_end:
            raise InvalidRequestError(
                f"Preferred start {format_wall_time(preferred_time_start)} must be "
                f"before end {format_wall_time(preferred_time_end)}"
            )

        payload = {
            "user_id": patient_id,
            "title": title.strip(),
            "description": description or None,
            "meet_link": validate_meeting_link(meeting_link),
            "preferred_date": preferred_date.isoformat(),
            "preferred_time_start": format_wall_time(preferred_time_start),
            "preferred_time_end": format_wall_time(preferred_time_end),
            "status": STATUS_PENDING,
        }

        logger.info("Creating consultation request for %s on %s", patient_id, preferred_date)
        return self._data_access.create_consultation_request(payload)

    def open_requests(self) -> List[ConsultationRequest]:
        return self._data_access.get_consultation_requests(status=STATUS_PENDING)

    def accept(self, request_id: str, doctor_id: str, now: DateTime) -> ConsultationRequest:
        """Accept a pending request and assign it to ``doctor_id``."""
        self._ensure_open(request_id)
        return self._data_access.update_consultation_request(
            request_id,
            {
                "status": STATUS_ACCEPTED,
                "doctor_id": doctor_id,
                "updated_at": to_storage_string(now),
            },
        )

    def reject(self, request_id: str, now: DateTime) -> ConsultationRequest:
        """Reject a pending request."""
        self._ensure_open(request_id)
        return self._data_access.update_consultation_request(
            request_id,
            {"status": STATUS_REJECTED, "updated_at": to_storage_string(now)},
        )

    def _ensure_open(self, request_id: str) -> ConsultationRequest:
        """
        Raises:
            RequestStateError: If the request is unknown or no longer pending
        """
        request = self._data_access.get_consultation_request(request_id)

        if request is None:
            raise RequestStateError(f"Consultation request {request_id} not found")
        if not request.is_open:
            raise RequestStateError(
                f"Consultation request {request_id} is already {request.status}"
            )

        return request
