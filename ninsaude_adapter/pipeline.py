"""Booking pipeline: validate -> authenticate -> resolve patient -> [check slot] -> create appointment.

Each step depends on the previous one; the first failure aborts the run and
propagates to the HTTP layer. A taken slot is not a failure: it ends the run
with `ok=False` and no appointment is created.
"""
from __future__ import annotations
from enum import Enum
from loguru import logger
from . import client
from .config import AdapterConfig
from .errors import AdapterError, UpstreamError, ValidationError
from .lookup import PatientLookup, lookup_for
from .models import BookingRequest, BookingResult
from .timeslots import build_appointment_payload, normalize_start_time

MSG_INCOMPLETE = "Dados incompletos. Informe nome, data e horário."
MSG_UNAVAILABLE = "Esse horário não está disponível. Por favor, escolha outro."
MSG_BOOKED = "Consulta agendada com sucesso."
MSG_FAILED = "Erro ao tentar agendar."

CONTEXT_FIELDS = ("professional_id", "service_id", "specialty_id", "unit_id")


class Stage(str, Enum):
    VALIDATING = "validating"
    AUTHENTICATING = "authenticating"
    RESOLVING_PATIENT = "resolving_patient"
    CHECKING_AVAILABILITY = "checking_availability"
    CREATING_APPOINTMENT = "creating_appointment"
    RESPONDING = "responding"


class BookingPipeline:
    def __init__(self, config: AdapterConfig, lookup: PatientLookup, check_availability: bool, required=("name", "date", "time")):
        self.config = config
        self.lookup = lookup
        self.check_availability = check_availability
        self.required = tuple(required)

    def _enter(self, stage: Stage, req: BookingRequest) -> None:
        logger.info("[{}] {} {} {}", stage.value, req.name, req.date, req.time)

    def with_defaults(self, req: BookingRequest) -> BookingRequest:
        """Fill professional/service/specialty/unit left empty by the caller from config."""
        defaults = {
            "professional_id": self.config.professional_id,
            "service_id": self.config.service_id,
            "specialty_id": self.config.specialty_id,
            "unit_id": self.config.unit_id,
        }
        updates = {k: v for k, v in defaults.items() if getattr(req, k) in (None, "")}
        return req.model_copy(update=updates) if updates else req

    def validate(self, req: BookingRequest) -> BookingRequest:
        missing = req.missing_fields(self.required)
        if missing:
            raise ValidationError(MSG_INCOMPLETE, missing)
        req = req.model_copy(update={"time": normalize_start_time(req.time)})
        return self.with_defaults(req)

    async def run(self, req: BookingRequest) -> BookingResult:
        self._enter(Stage.VALIDATING, req)
        req = self.validate(req)

        self._enter(Stage.AUTHENTICATING, req)
        token = await client.get_access_token(self.config)

        self._enter(Stage.RESOLVING_PATIENT, req)
        patient = await client.find_or_create_patient(self.config, token, self.lookup, req)

        if self.check_availability:
            self._enter(Stage.CHECKING_AVAILABILITY, req)
            available = await client.is_slot_available(
                self.config, token, req.professional_id, req.unit_id, req.date, req.time[:5]
            )
            if not available:
                logger.info("Slot {} {} unavailable for professional {}", req.date, req.time, req.professional_id)
                return BookingResult(ok=False, message=MSG_UNAVAILABLE)

        self._enter(Stage.CREATING_APPOINTMENT, req)
        payload = build_appointment_payload(req, patient, self.config.appointment_minutes)
        appointment = await client.create_appointment(self.config, token, payload)

        self._enter(Stage.RESPONDING, req)
        return BookingResult(ok=True, message=MSG_BOOKED, appointment=appointment)


def failure_result(exc: Exception) -> BookingResult:
    """Negative result for a run that raised; remote failures keep the remote body as detail."""
    if isinstance(exc, UpstreamError):
        return BookingResult(ok=False, message=MSG_FAILED, error_detail=exc.detail)
    if isinstance(exc, AdapterError):
        return BookingResult(ok=False, message=exc.message)
    return BookingResult(ok=False, message=MSG_FAILED, error_detail=str(exc))


def pipeline_for(config: AdapterConfig, surface: str) -> BookingPipeline:
    """Pipeline wired for one inbound endpoint ("agendar" or "webhook")."""
    if surface == "agendar":
        options = config.agendar
        required = ("name", "date", "time")
    elif surface == "webhook":
        options = config.webhook
        required = ("name", "date", "time", *CONTEXT_FIELDS)
    else:
        raise ValueError(f"Unknown surface: {surface}")
    if options.lookup_key == "document":
        required = (*required, "document")
    return BookingPipeline(config, lookup_for(options.lookup_key), options.check_availability, required)
