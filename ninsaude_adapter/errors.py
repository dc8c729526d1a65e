from __future__ import annotations
from typing import Any


class AdapterError(Exception):
    """Base class for every failure raised by the adapter."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(AdapterError):
    pass


class ValidationError(AdapterError):
    """Required input missing or unusable. Raised before any remote call."""
    status_code = 400

    def __init__(self, message: str, missing=()):
        super().__init__(message)
        self.missing = list(missing)


class AuthorizationError(AdapterError):
    status_code = 401


class UpstreamError(AdapterError):
    """A call to the Ninsaude API failed. `detail` carries the remote body."""

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.detail = detail if detail is not None else message


class UpstreamAuthError(UpstreamError):
    pass
