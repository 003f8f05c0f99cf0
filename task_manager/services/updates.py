"""Allow-list validation for partial (PATCH) updates.

Each updatable entity declares a fixed mapping of field name to
``FieldRule``. A payload is accepted only if every key is in that mapping
and every value validates; nothing is applied otherwise.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

M = TypeVar("M")


class UpdateError(Exception):
    """Base exception for rejected partial updates."""

    def to_detail(self) -> dict[str, Any]:
        raise NotImplementedError


class UpdateNotAllowedError(UpdateError):
    """Payload names a field outside the allow-list."""

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Fields not allowed: {', '.join(fields)}")
        self.fields = fields

    def to_detail(self) -> dict[str, Any]:
        return {"error": "Invalid updates!", "fields": self.fields}


class FieldValidationError(UpdateError):
    """One or more allowed fields carry invalid values."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(f"{name}: {msg}" for name, msg in errors.items()))
        self.errors = errors

    def to_detail(self) -> dict[str, Any]:
        return {"error": "Invalid field values", "fields": self.errors}


@dataclass(frozen=True)
class FieldRule(Generic[M]):
    """Validator and setter for one mutable field."""

    adapter: TypeAdapter[Any]
    apply: Callable[[M, Any], None]


def assign(attr: str) -> Callable[[Any, Any], None]:
    """Setter that writes the validated value to ``attr``."""

    def setter(target: Any, value: Any) -> None:
        setattr(target, attr, value)

    setter.__name__ = f"set_{attr}"
    return setter


def validate_update(rules: Mapping[str, FieldRule[M]], payload: Mapping[str, Any]) -> dict[str, Any]:
    """Check ``payload`` against ``rules`` and return the coerced values.

    Raises:
        UpdateNotAllowedError: any key is not in ``rules``.
        FieldValidationError: any value fails its field's validator.
    """
    disallowed = sorted(set(payload) - set(rules))
    if disallowed:
        raise UpdateNotAllowedError(disallowed)

    cleaned: dict[str, Any] = {}
    errors: dict[str, str] = {}
    for name, value in payload.items():
        try:
            cleaned[name] = rules[name].adapter.validate_python(value)
        except ValidationError as exc:
            errors[name] = exc.errors()[0]["msg"]
    if errors:
        raise FieldValidationError(errors)
    return cleaned


def apply_validated(target: M, rules: Mapping[str, FieldRule[M]], cleaned: Mapping[str, Any]) -> list[str]:
    """Run the setters for values already returned by ``validate_update``."""
    for name, value in cleaned.items():
        rules[name].apply(target, value)
    return list(cleaned)
