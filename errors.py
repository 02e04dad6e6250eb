"""Domain errors raised by the services and mapped to HTTP responses in main.py."""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError


class DirectoryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(DirectoryError):
    """One or more schema or form constraints were violated."""

    status_code = 422

    def __init__(self, messages: List[str], body: Optional[Dict[str, Any]] = None):
        super().__init__("; ".join(messages))
        self.messages = messages
        self.body = body or {}


class NotFound(DirectoryError):
    status_code = 404


class Forbidden(DirectoryError):
    status_code = 403


class UnsupportedMediaType(DirectoryError):
    status_code = 415


def from_pydantic(exc: ValidationError, body: Optional[Dict[str, Any]] = None, overrides: Optional[Dict[str, str]] = None) -> ValidationFailed:
    """Turn a pydantic error into a ValidationFailed with one message per problem."""
    overrides = overrides or {}
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"])
        top = str(err["loc"][0]) if err["loc"] else ""
        if top in overrides:
            messages.append(overrides[top])
        elif err["type"] == "value_error":
            messages.append(str(err["ctx"]["error"]))
        else:
            messages.append(f"{field}: {err['msg']}")
    return ValidationFailed(messages, body=body)
