"""Async Ninsaude API client.
Assumes OAuth2 refresh-token flow; a fresh access token is requested for every booking.
"""
from __future__ import annotations
from typing import Any
import httpx
from loguru import logger
from .config import AdapterConfig
from .errors import UpstreamAuthError, UpstreamError
from .lookup import PatientLookup
from .models import AppointmentPayload, AvailableSlot, BookingRequest, PatientRef


def _remote_detail(exc: Exception) -> Any:
    """Best available description of a failed remote call: JSON body, text, or message."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            return exc.response.json()
        except ValueError:
            return exc.response.text or str(exc)
    return str(exc)


def _headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}", "Accept": "application/json"}


def _client(config: AdapterConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(http2=True, timeout=config.timeout)


async def get_access_token(config: AdapterConfig) -> str:
    """Exchange the configured refresh token for a short-lived access token."""
    if not config.refresh_token:
        raise UpstreamAuthError("NINSAUDE_REFRESH_TOKEN is not configured")

    form = {"grant_type": "refresh_token", "refresh_token": config.refresh_token}
    if config.account:
        form["account"] = config.account

    try:
        async with _client(config) as client:
            resp = await client.post(f"{config.base_url}/oauth2/token", data=form)
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        detail = _remote_detail(exc)
        logger.error("Token exchange failed: {}", detail)
        raise UpstreamAuthError("Falha ao obter access_token", detail) from exc

    token = data.get("access_token") if isinstance(data, dict) else None
    if not token:
        logger.error("Token response without access_token: {}", data)
        raise UpstreamAuthError("Resposta sem access_token", data)
    return token


async def find_patient(config: AdapterConfig, token: str, lookup: PatientLookup, req: BookingRequest) -> PatientRef | None:
    """Return the first patient matching the lookup key, or None."""
    params = {"filter": lookup.filter_value(req), "property": lookup.properties}
    try:
        async with _client(config) as client:
            resp = await client.get(f"{config.base_url}/cadastro_paciente/listar", headers=_headers(token), params=params)
            resp.raise_for_status()
            body = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        detail = _remote_detail(exc)
        logger.error("Patient lookup failed: {}", detail)
        raise UpstreamError("Falha ao buscar paciente", detail) from exc

    matches = (body.get("result") or []) if isinstance(body, dict) else []
    if not matches:
        return None
    return PatientRef(id=matches[0]["id"])


async def create_patient(config: AdapterConfig, token: str, lookup: PatientLookup, req: BookingRequest) -> PatientRef:
    payload = {"nome": req.name, **lookup.create_fields(req), "ativo": 1}
    try:
        async with _client(config) as client:
            resp = await client.post(f"{config.base_url}/cadastro_paciente", headers=_headers(token), json=payload)
            resp.raise_for_status()
            body = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        detail = _remote_detail(exc)
        logger.error("Patient creation failed: {}", detail)
        raise UpstreamError("Falha ao cadastrar paciente", detail) from exc

    # the id comes either wrapped in "result" or at the top level
    record = body.get("result", body) if isinstance(body, dict) else None
    if not isinstance(record, dict) or record.get("id") is None:
        raise UpstreamError("Cadastro de paciente sem id", body)
    return PatientRef(id=record["id"])


async def find_or_create_patient(config: AdapterConfig, token: str, lookup: PatientLookup, req: BookingRequest) -> PatientRef:
    patient = await find_patient(config, token, lookup, req)
    if patient is not None:
        logger.info("Patient {} found by {}", patient.id, lookup.key)
        return patient
    patient = await create_patient(config, token, lookup, req)
    logger.info("Patient {} created", patient.id)
    return patient


async def list_available_slots(config: AdapterConfig, token: str, professional_id, unit_id, date: str) -> list[AvailableSlot]:
    """Open slots for a professional on a single day."""
    url = (
        f"{config.base_url}/atendimento_agenda/listar/horario/disponivel/profissional/{professional_id}"
        f"/dataInicial/{date}/dataFinal/{date}"
    )
    try:
        async with _client(config) as client:
            resp = await client.get(url, headers=_headers(token), params={"accountUnidade": unit_id})
            resp.raise_for_status()
            body = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        detail = _remote_detail(exc)
        logger.error("Availability query failed: {}", detail)
        raise UpstreamError("Falha ao consultar horários disponíveis", detail) from exc

    result = body.get("result") if isinstance(body, dict) else None
    if not result:
        return []
    return [AvailableSlot.model_validate(item) for item in result if isinstance(item, dict)]


async def is_slot_available(config: AdapterConfig, token: str, professional_id, unit_id, date: str, time: str) -> bool:
    """True when a listed slot starts with the requested time ("09:00" matches "09:00:00")."""
    slots = await list_available_slots(config, token, professional_id, unit_id, date)
    return any(slot.start_time.startswith(time) for slot in slots if slot.start_time)


async def create_appointment(config: AdapterConfig, token: str, payload: AppointmentPayload) -> Any:
    """Create the appointment and return the remote record as-is."""
    try:
        async with _client(config) as client:
            resp = await client.post(
                f"{config.base_url}/atendimento_agenda",
                headers=_headers(token),
                json=payload.model_dump(by_alias=True),
            )
            resp.raise_for_status()
            return resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        detail = _remote_detail(exc)
        logger.error("Appointment creation failed: {}", detail)
        raise UpstreamError("Falha ao criar agendamento", detail) from exc
