import pytest
from ninsaude_adapter.errors import ValidationError
from ninsaude_adapter.models import BookingRequest, PatientRef
from ninsaude_adapter.timeslots import build_appointment_payload, compute_end_time, normalize_start_time


@pytest.mark.parametrize("raw, expected", [("09:10", "09:10:00"), ("9:05", "09:05:00"), ("14:30:15", "14:30:15")])
def test_normalize_start_time(raw, expected):
    assert normalize_start_time(raw) == expected


@pytest.mark.parametrize("raw", ["", "9h", "25:00", "10:61", "10:00:00:00"])
def test_normalize_start_time_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        normalize_start_time(raw)


def test_end_time_is_thirty_minutes_later():
    assert compute_end_time("09:10") == "09:40:00"
    assert compute_end_time("09:45:00") == "10:15:00"


def test_end_time_wraps_past_midnight():
    assert compute_end_time("23:50") == "00:20:00"


def test_build_appointment_payload():
    req = BookingRequest(
        name="Ana", date="2024-05-10", time="09:10",
        professional_id=3, service_id=1, specialty_id=2, unit_id=1,
    )
    payload = build_appointment_payload(req, PatientRef(id=42))
    assert payload.model_dump(by_alias=True) == {
        "accountUnidade": 1,
        "profissional": 3,
        "data": "2024-05-10",
        "horaInicial": "09:10:00",
        "horaFinal": "09:40:00",
        "paciente": 42,
        "status": 0,
        "servico": 1,
        "especialidade": 2,
    }
