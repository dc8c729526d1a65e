from typing import Any, Optional, Union
from pydantic import BaseModel, Field

REQUIRED_BOOKING_FIELDS = ("name", "date", "time")

Identifier = Union[str, int]


class BookingRequest(BaseModel):
    """Normalised booking request shared by every inbound surface."""
    name: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM (24h)
    professional_id: Optional[Identifier] = None
    service_id: Optional[Identifier] = None
    specialty_id: Optional[Identifier] = None
    unit_id: Optional[Identifier] = None

    def missing_fields(self, required=REQUIRED_BOOKING_FIELDS) -> list[str]:
        missing = []
        for field in required:
            value = getattr(self, field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field)
        return missing


class AgendarRequest(BaseModel):
    """Body sent by the chat platform to /agendar. Presence is checked by the handler."""
    nome: Optional[str] = None
    telefone: Optional[str] = None
    cpf: Optional[str] = None
    data: Optional[str] = None
    hora: Optional[str] = None

    def to_booking(self) -> BookingRequest:
        return BookingRequest(name=self.nome, phone=self.telefone, document=self.cpf, date=self.data, time=self.hora)


class WebhookRequest(BaseModel):
    nome: Optional[str] = None
    cpf: Optional[str] = None
    telefone: Optional[str] = None
    data: Optional[str] = None
    hora: Optional[str] = None
    professional_id: Optional[Identifier] = Field(None, alias="profissionalId")
    service_id: Optional[Identifier] = Field(None, alias="servicoId")
    specialty_id: Optional[Identifier] = Field(None, alias="especialidadeId")
    unit_id: Optional[Identifier] = Field(None, alias="accountUnidade")

    model_config = {
        "populate_by_name": True
    }

    def to_booking(self) -> BookingRequest:
        return BookingRequest(
            name=self.nome,
            phone=self.telefone,
            document=self.cpf,
            date=self.data,
            time=self.hora,
            professional_id=self.professional_id,
            service_id=self.service_id,
            specialty_id=self.specialty_id,
            unit_id=self.unit_id,
        )


class PatientRef(BaseModel):
    id: Identifier


class AvailableSlot(BaseModel):
    """Open slot as listed by the remote agenda."""
    start_time: Optional[str] = Field(None, alias="horaInicial")
    end_time: Optional[str] = Field(None, alias="horaFinal")

    model_config = {
        "populate_by_name": True,
        "extra": "allow",
    }


class AppointmentPayload(BaseModel):
    """Body of POST /atendimento_agenda. Dump with by_alias=True."""
    unit: Identifier = Field(alias="accountUnidade")
    professional: Identifier = Field(alias="profissional")
    date: str = Field(alias="data")
    start_time: str = Field(alias="horaInicial")  # HH:MM:SS
    end_time: str = Field(alias="horaFinal")  # HH:MM:SS
    patient: Identifier = Field(alias="paciente")
    status: int = 0  # pending/scheduled
    service: Identifier = Field(alias="servico")
    specialty: Identifier = Field(alias="especialidade")

    model_config = {
        "populate_by_name": True
    }


class BookingResult(BaseModel):
    ok: bool
    message: str
    appointment: Optional[Any] = None
    error_detail: Optional[Any] = None


class AgendarResponse(BaseModel):
    ok: bool
    message: str
    agendamento: Optional[Any] = None
    detalhe: Optional[Any] = None
