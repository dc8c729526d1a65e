import json
import pytest, respx
from ninsaude_adapter.errors import UpstreamAuthError, UpstreamError, ValidationError
from ninsaude_adapter.lookup import DocumentLookup, PhoneLookup
from ninsaude_adapter.models import BookingRequest
from ninsaude_adapter.pipeline import MSG_BOOKED, MSG_FAILED, MSG_UNAVAILABLE, BookingPipeline, failure_result, pipeline_for
from conftest import BASE, load_fixture

SLOTS_PATH = "/v1/atendimento_agenda/listar/horario/disponivel/profissional/3/dataInicial/2024-05-10/dataFinal/2024-05-10"


def ana(**overrides):
    fields = dict(name="Ana", phone="(11) 98888-7777", date="2024-05-10", time="09:00")
    fields.update(overrides)
    return BookingRequest(**fields)


def mock_remote(m, patients="patient_list_empty.json", slots="slots.json", token=None, book=None):
    token = token or (200, load_fixture("token.json"))
    book = book or (200, load_fixture("appointment_created.json"))
    routes = {
        "token": m.post("/v1/oauth2/token").respond(token[0], json=token[1]),
        "list": m.get("/v1/cadastro_paciente/listar").respond(200, json=load_fixture(patients)),
        "create": m.post("/v1/cadastro_paciente").respond(200, json=load_fixture("patient_created.json")),
        "slots": m.get(SLOTS_PATH).respond(200, json=load_fixture(slots)),
        "book": m.post("/v1/atendimento_agenda").respond(book[0], json=book[1]),
    }
    return routes


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["name", "date", "time"])
async def test_missing_required_field_makes_no_remote_call(config, missing):
    pipeline = BookingPipeline(config, PhoneLookup(), check_availability=True)
    with respx.mock(base_url=BASE, assert_all_called=False) as m:
        routes = mock_remote(m)
        with pytest.raises(ValidationError) as exc_info:
            await pipeline.run(ana(**{missing: ""}))
        assert exc_info.value.missing == [missing]
        assert not any(route.called for route in routes.values())


@pytest.mark.asyncio
async def test_books_new_patient_after_availability(config):
    pipeline = BookingPipeline(config, PhoneLookup(), check_availability=True)
    with respx.mock(base_url=BASE) as m:
        routes = mock_remote(m)

        result = await pipeline.run(ana())

        assert result.ok
        assert result.message == MSG_BOOKED
        assert result.appointment["id"] == 900
        assert routes["create"].call_count == 1
        booked = json.loads(routes["book"].calls.last.request.content)
        assert booked["paciente"] == 42
        assert booked["profissional"] == 3
        assert booked["accountUnidade"] == 1
        assert booked["horaInicial"] == "09:00:00"
        assert booked["horaFinal"] == "09:30:00"


@pytest.mark.asyncio
async def test_existing_patient_is_not_created_again(config):
    pipeline = BookingPipeline(config, PhoneLookup(), check_availability=True)
    with respx.mock(base_url=BASE, assert_all_called=False) as m:
        routes = mock_remote(m, patients="patient_list.json")

        result = await pipeline.run(ana())

        assert result.ok
        assert not routes["create"].called
        booked = json.loads(routes["book"].calls.last.request.content)
        assert booked["paciente"] == 17


@pytest.mark.asyncio
async def test_unavailable_slot_short_circuits(config):
    pipeline = BookingPipeline(config, PhoneLookup(), check_availability=True)
    with respx.mock(base_url=BASE, assert_all_called=False) as m:
        routes = mock_remote(m)

        result = await pipeline.run(ana(time="11:00"))

        assert not result.ok
        assert result.message == MSG_UNAVAILABLE
        assert result.appointment is None
        assert not routes["book"].called


@pytest.mark.asyncio
async def test_availability_stage_can_be_disabled(config):
    pipeline = BookingPipeline(config, PhoneLookup(), check_availability=False)
    with respx.mock(base_url=BASE, assert_all_called=False) as m:
        routes = mock_remote(m)
        result = await pipeline.run(ana(time="11:00"))
        assert result.ok
        assert not routes["slots"].called


@pytest.mark.asyncio
async def test_token_failure_aborts(config):
    pipeline = BookingPipeline(config, PhoneLookup(), check_availability=True)
    with respx.mock(base_url=BASE, assert_all_called=False) as m:
        routes = mock_remote(m, token=(400, {"error": "invalid_grant"}))

        with pytest.raises(UpstreamAuthError):
            await pipeline.run(ana())
        assert not routes["list"].called


@pytest.mark.asyncio
async def test_booking_failure_keeps_created_patient(config):
    pipeline = BookingPipeline(config, PhoneLookup(), check_availability=True)
    with respx.mock(base_url=BASE) as m:
        routes = mock_remote(m, book=(422, {"message": "conflito"}))

        with pytest.raises(UpstreamError) as exc_info:
            await pipeline.run(ana())
        assert exc_info.value.detail == {"message": "conflito"}
        assert routes["create"].call_count == 1


def test_pipeline_for_surfaces(config):
    agendar = pipeline_for(config, "agendar")
    assert isinstance(agendar.lookup, PhoneLookup)
    assert agendar.check_availability
    assert agendar.required == ("name", "date", "time")

    webhook = pipeline_for(config, "webhook")
    assert isinstance(webhook.lookup, DocumentLookup)
    assert not webhook.check_availability
    assert "document" in webhook.required
    assert "unit_id" in webhook.required


def test_pipeline_for_follows_configuration(config):
    config = config.model_copy(update={"agendar_lookup_key": "document", "agendar_check_availability": False})
    pipeline = pipeline_for(config, "agendar")
    assert isinstance(pipeline.lookup, DocumentLookup)
    assert not pipeline.check_availability
    assert "document" in pipeline.required


def test_context_ids_default_from_config(config):
    pipeline = pipeline_for(config, "agendar")
    req = pipeline.validate(ana())
    assert (req.professional_id, req.service_id, req.specialty_id, req.unit_id) == (3, 1, 1, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize("requested", ["9:00", " 09:00", "09:00:00"])
async def test_availability_uses_normalized_time(config, requested):
    pipeline = BookingPipeline(config, PhoneLookup(), check_availability=True)
    with respx.mock(base_url=BASE) as m:
        routes = mock_remote(m)  # slots.json lists 09:00:00

        result = await pipeline.run(ana(time=requested))

        assert result.ok
        booked = json.loads(routes["book"].calls.last.request.content)
        assert booked["horaInicial"] == "09:00:00"


def test_failure_result_keeps_remote_detail():
    result = failure_result(UpstreamError("Falha ao criar agendamento", {"message": "conflito"}))
    assert not result.ok
    assert result.message == MSG_FAILED
    assert result.error_detail == {"message": "conflito"}

    result = failure_result(ValidationError("Horário inválido: '9h'"))
    assert result.message == "Horário inválido: '9h'"
    assert result.error_detail is None
