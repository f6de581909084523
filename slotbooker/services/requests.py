"""
Input models for the booking and cancellation services.
"""

import re
import datetime as dt
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class BookingRequest(BaseModel):
    """A customer's request for one slot."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str
    email: str
    service: str
    date: dt.date
    time: dt.time

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value.lower()

    @field_validator("service")
    @classmethod
    def validate_service(cls, value: str) -> str:
        if not value:
            raise ValueError("Service is required")
        return value

    @field_validator("time")
    @classmethod
    def drop_seconds(cls, value: dt.time) -> dt.time:
        # Slots are keyed on HH:MM
        return value.replace(second=0, microsecond=0, tzinfo=None)

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> "BookingRequest":
        """
        Validate raw input.

        Raises:
            ValidationError: With per-field messages when input is invalid
        """
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise ValidationError(
                "Validation failed. Please check your input.",
                field_errors=_field_errors(exc),
            ) from exc


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "__root__"
        message = error["msg"]
        # pydantic prefixes messages raised from validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors
