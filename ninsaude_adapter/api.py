import json
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from .config import AdapterConfig, get_config
from .errors import AdapterError, AuthorizationError, ValidationError
from .logs import configure_logging
from .models import AgendarRequest, AgendarResponse, BookingResult, WebhookRequest
from .pipeline import MSG_INCOMPLETE, failure_result, pipeline_for

# request field -> name the caller used on the wire
WEBHOOK_FIELD_NAMES = {
    "name": "nome",
    "document": "cpf",
    "phone": "telefone",
    "date": "data",
    "time": "hora",
    "professional_id": "profissionalId",
    "service_id": "servicoId",
    "specialty_id": "especialidadeId",
    "unit_id": "accountUnidade",
}

# HTTPBearer scheme so Swagger-UI can attach the Authorization header globally
auth_scheme = HTTPBearer(auto_error=False)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    configure_logging(config.log_level)
    if config.uses_insecure_secret:
        logger.warning("WEBHOOK_SECRET not set; /webhook is protected by the built-in default secret")
    logger.info("Integração rodando na porta {}", config.port)
    yield


app = FastAPI(title="Ninsaude Booking Adapter", lifespan=lifespan)


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    return JSONResponse(status_code=exc.status_code, content={"erro": exc.message})


def verify_webhook(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    config: AdapterConfig = Depends(get_config),
):
    """Validate the shared secret sent as `Authorization: Bearer <secret>`."""
    if credentials is None or credentials.scheme.lower() != "bearer" or credentials.credentials != config.webhook_secret:
        raise AuthorizationError("Não autorizado")


@app.get("/health")
async def health():
    return {"status": "ok"}


async def _json_body(request: Request):
    """Decoded JSON body; an empty body or `null` counts as an empty object."""
    raw = await request.body()
    payload = json.loads(raw) if raw.strip() else None
    return {} if payload is None else payload


def _agendar_error(status_code: int, result: BookingResult) -> JSONResponse:
    body = AgendarResponse(ok=result.ok, message=result.message, detalhe=result.error_detail)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _webhook_error(status_code: int, result: BookingResult) -> JSONResponse:
    content = {"erro": result.message}
    if result.error_detail is not None:
        content["detalhes"] = result.error_detail
    return JSONResponse(status_code=status_code, content=content)


@app.post("/agendar", response_model=AgendarResponse, response_model_exclude_none=True)
async def agendar(request: Request, config: AdapterConfig = Depends(get_config)):
    """Book a consultation for the chat platform, looking the patient up by phone."""
    try:
        req = AgendarRequest.model_validate(await _json_body(request))
    except (ValueError, PydanticValidationError):
        return _agendar_error(400, BookingResult(ok=False, message=MSG_INCOMPLETE))

    try:
        result = await pipeline_for(config, "agendar").run(req.to_booking())
    except AdapterError as exc:
        return _agendar_error(exc.status_code, failure_result(exc))
    except Exception as exc:
        logger.exception("Unexpected failure while booking")
        return _agendar_error(500, failure_result(exc))

    return AgendarResponse(ok=result.ok, message=result.message, agendamento=result.appointment)


@app.post("/webhook", dependencies=[Depends(verify_webhook)])
async def webhook(request: Request, config: AdapterConfig = Depends(get_config)):
    """Book from an authenticated automation webhook carrying every identifier."""
    # body is parsed here, after the secret check, so a bad secret is a 401 whatever the body
    try:
        req = WebhookRequest.model_validate(await _json_body(request))
    except (ValueError, PydanticValidationError):
        return _webhook_error(400, BookingResult(ok=False, message="Corpo da requisição inválido"))

    try:
        result = await pipeline_for(config, "webhook").run(req.to_booking())
    except ValidationError as exc:
        if exc.missing:
            names = ", ".join(WEBHOOK_FIELD_NAMES.get(f, f) for f in exc.missing)
            return _webhook_error(exc.status_code, BookingResult(ok=False, message=f"Campos obrigatórios ausentes: {names}"))
        return _webhook_error(exc.status_code, failure_result(exc))
    except AdapterError as exc:
        return _webhook_error(exc.status_code, failure_result(exc))
    except Exception as exc:
        logger.exception("Unexpected failure while booking from webhook")
        return _webhook_error(500, failure_result(exc))

    if not result.ok:
        return {"sucesso": False, "erro": result.message}
    return {"sucesso": True, "agendamento": result.appointment}


def run_server(config: Optional[AdapterConfig] = None):
    """Run the adapter with uvicorn on the configured host/port."""
    import uvicorn

    config = config or get_config()
    uvicorn.run(app, host=config.host, port=config.port, reload=False)
