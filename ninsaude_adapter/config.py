"""Deployment settings, read once from the environment (and `.env`) at start-up."""
from __future__ import annotations
from functools import lru_cache
from typing import Literal, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from .errors import ConfigError

DEFAULT_BASE_URL = "https://api.ninsaude.com/v1"
INSECURE_WEBHOOK_SECRET = "troque-este-segredo"

LookupKey = Literal["phone", "document"]


class SurfaceOptions(BaseModel):
    """How one inbound endpoint drives the booking pipeline."""
    lookup_key: LookupKey
    check_availability: bool

    model_config = {"frozen": True}


class AdapterConfig(BaseSettings):
    base_url: str = Field(default=DEFAULT_BASE_URL, alias="NINSAUDE_BASE_URL")
    refresh_token: Optional[str] = Field(default=None, alias="NINSAUDE_REFRESH_TOKEN")
    account: Optional[str] = Field(default=None, alias="NINSAUDE_ACCOUNT")
    timeout: float = Field(default=15.0, alias="NINSAUDE_TIMEOUT")

    webhook_secret: str = Field(default=INSECURE_WEBHOOK_SECRET, alias="WEBHOOK_SECRET")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=10000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # fixed identifiers used by /agendar, which does not receive them
    unit_id: int = Field(default=1, alias="ACCOUNT_UNIDADE")
    professional_id: int = Field(default=3, alias="PROFISSIONAL_ID")
    service_id: int = Field(default=1, alias="SERVICO_ID")
    specialty_id: int = Field(default=1, alias="ESPECIALIDADE_ID")
    appointment_minutes: int = Field(default=30, alias="APPOINTMENT_DURATION_MINUTES")

    agendar_lookup_key: LookupKey = Field(default="phone", alias="AGENDAR_LOOKUP_KEY")
    agendar_check_availability: bool = Field(default=True, alias="AGENDAR_CHECK_AVAILABILITY")
    webhook_lookup_key: LookupKey = Field(default="document", alias="WEBHOOK_LOOKUP_KEY")
    webhook_check_availability: bool = Field(default=False, alias="WEBHOOK_CHECK_AVAILABILITY")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("base_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()

    @field_validator("agendar_lookup_key", "webhook_lookup_key", mode="before")
    @classmethod
    def _lower(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def agendar(self) -> SurfaceOptions:
        return SurfaceOptions(lookup_key=self.agendar_lookup_key, check_availability=self.agendar_check_availability)

    @property
    def webhook(self) -> SurfaceOptions:
        return SurfaceOptions(lookup_key=self.webhook_lookup_key, check_availability=self.webhook_check_availability)

    @property
    def uses_insecure_secret(self) -> bool:
        return self.webhook_secret == INSECURE_WEBHOOK_SECRET


def load_config(env_file: Optional[str] = ".env") -> AdapterConfig:
    """Build the configuration from environment variables and `env_file`."""
    try:
        return AdapterConfig(_env_file=env_file)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


@lru_cache()
def get_config() -> AdapterConfig:
    """FastAPI dependency: configuration is loaded once per process."""
    return load_config()
