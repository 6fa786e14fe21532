"""Typed access to loosely-typed payload values.

Producers send ``planId`` as ``5`` or ``"5"`` depending on who wrote them.
Each accessor converts one field and returns a Coerced result instead of
raising; callers decide whether an error is fatal.
"""

from dataclasses import dataclass
from typing import Any, Generic, Mapping, Optional, TypeVar

from shared.domain.exceptions import PayloadError

T = TypeVar("T")

_TRUE = {"true", "1", "yes", "y"}
_FALSE = {"false", "0", "no", "n"}


@dataclass(frozen=True)
class Coerced(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Optional[T]:
        """Value, or PayloadError if coercion failed."""
        if self.error is not None:
            raise PayloadError(self.error)
        return self.value


def _lookup(payload: Optional[Mapping[str, Any]], key: str, required: bool):
    value = (payload or {}).get(key)
    if value is None and required:
        return None, f"missing required field '{key}'"
    return value, None


def as_int(payload: Optional[Mapping[str, Any]], key: str, required: bool = False) -> Coerced[int]:
    value, error = _lookup(payload, key, required)
    if error or value is None:
        return Coerced(error=error)
    if isinstance(value, bool):
        return Coerced(error=f"field '{key}' is a boolean, expected an integer")
    if isinstance(value, int):
        return Coerced(value)
    if isinstance(value, float):
        if value.is_integer():
            return Coerced(int(value))
        return Coerced(error=f"field '{key}' is not a whole number: {value}")
    if isinstance(value, str):
        try:
            return Coerced(int(value.strip()))
        except ValueError:
            return Coerced(error=f"field '{key}' is not numeric: {value!r}")
    return Coerced(error=f"field '{key}' has unsupported type {type(value).__name__}")


def as_str(payload: Optional[Mapping[str, Any]], key: str, required: bool = False) -> Coerced[str]:
    value, error = _lookup(payload, key, required)
    if error or value is None:
        return Coerced(error=error)
    if isinstance(value, bool):
        return Coerced("true" if value else "false")
    if isinstance(value, (str, int, float)):
        return Coerced(str(value))
    return Coerced(error=f"field '{key}' has unsupported type {type(value).__name__}")


def as_bool(payload: Optional[Mapping[str, Any]], key: str, required: bool = False) -> Coerced[bool]:
    value, error = _lookup(payload, key, required)
    if error or value is None:
        return Coerced(error=error)
    if isinstance(value, bool):
        return Coerced(value)
    if isinstance(value, int) and value in (0, 1):
        return Coerced(bool(value))
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return Coerced(True)
        if lowered in _FALSE:
            return Coerced(False)
    return Coerced(error=f"field '{key}' is not a boolean: {value!r}")


def user_id_of(envelope) -> Coerced[int]:
    """Numeric actor id, from ``sourceUserId`` or a ``userId`` payload field."""
    value = envelope.source_user_id or (envelope.payload or {}).get("userId")
    return as_int({"userId": value}, "userId", required=True)


def provider_id_of(envelope) -> Coerced[int]:
    """Numeric provider id, from ``sourceProviderId`` or a ``providerId`` payload field."""
    value = envelope.source_provider_id or (envelope.payload or {}).get("providerId")
    return as_int({"providerId": value}, "providerId", required=True)


def role_of(envelope) -> str:
    """Upper-cased actor role from the envelope or its payload; empty if absent."""
    return str(envelope.role or (envelope.payload or {}).get("role") or "").upper()
