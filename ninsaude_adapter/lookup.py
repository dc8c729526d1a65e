"""Patient lookup keys.

Ninsaude's patient list endpoint takes a free-text `filter`; which request
field feeds it (and which field is stored on a new patient) depends on the
surface being served.
"""
from __future__ import annotations
import re
from abc import ABC, abstractmethod
from typing import Optional
from .errors import ConfigError
from .models import BookingRequest

_NON_DIGITS = re.compile(r"\D")


class PatientLookup(ABC):
    key = ""
    properties = "id,nome"

    @abstractmethod
    def normalize(self, raw: Optional[str]) -> str:
        raise NotImplementedError

    @abstractmethod
    def filter_value(self, req: BookingRequest) -> str:
        raise NotImplementedError

    @abstractmethod
    def create_fields(self, req: BookingRequest) -> dict:
        raise NotImplementedError


class PhoneLookup(PatientLookup):
    key = "phone"
    properties = "id,nome,telefone1"

    def normalize(self, raw: Optional[str]) -> str:
        return _NON_DIGITS.sub("", raw or "")

    def filter_value(self, req: BookingRequest) -> str:
        # no usable phone: search by name instead
        return self.normalize(req.phone) or (req.name or "")

    def create_fields(self, req: BookingRequest) -> dict:
        return {"telefone1": self.normalize(req.phone) or None}


class DocumentLookup(PatientLookup):
    key = "document"
    properties = "id,nome,cpf"

    def normalize(self, raw: Optional[str]) -> str:
        return raw or ""

    def filter_value(self, req: BookingRequest) -> str:
        return self.normalize(req.document)

    def create_fields(self, req: BookingRequest) -> dict:
        return {"cpf": self.normalize(req.document) or None}


_LOOKUPS = {"phone": PhoneLookup, "document": DocumentLookup}


def lookup_for(key: str) -> PatientLookup:
    try:
        return _LOOKUPS[key]()
    except KeyError:
        raise ConfigError(f"Unknown patient lookup key: {key!r}") from None
