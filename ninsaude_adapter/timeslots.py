"""Start/end time formatting for appointment payloads.

Times are wall-clock "HH:MM:SS" strings with no date attached. An end time
that runs past midnight wraps around ("23:50" + 30 min -> "00:20:00") and
the appointment keeps its original date.
"""
from __future__ import annotations
import re
from .errors import ValidationError
from .models import AppointmentPayload, BookingRequest, PatientRef

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_DAY_SECONDS = 24 * 60 * 60


def _parse(value: str) -> tuple[int, int, int]:
    match = _TIME_RE.match((value or "").strip())
    if not match:
        raise ValidationError(f"Horário inválido: {value!r}")
    h, m, s = int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)
    if h > 23 or m > 59 or s > 59:
        raise ValidationError(f"Horário inválido: {value!r}")
    return h, m, s


def normalize_start_time(value: str) -> str:
    """"09:10" -> "09:10:00"; a full "HH:MM:SS" is kept as is."""
    h, m, s = _parse(value)
    return f"{h:02d}:{m:02d}:{s:02d}"


def compute_end_time(start: str, minutes: int = 30) -> str:
    h, m, s = _parse(start)
    total = (h * 3600 + m * 60 + s + minutes * 60) % _DAY_SECONDS
    return f"{total // 3600:02d}:{total % 3600 // 60:02d}:{total % 60:02d}"


def build_appointment_payload(req: BookingRequest, patient: PatientRef, minutes: int = 30) -> AppointmentPayload:
    start = normalize_start_time(req.time)
    return AppointmentPayload(
        unit=req.unit_id,
        professional=req.professional_id,
        date=req.date,
        start_time=start,
        end_time=compute_end_time(start, minutes),
        patient=patient.id,
        status=0,
        service=req.service_id,
        specialty=req.specialty_id,
    )
