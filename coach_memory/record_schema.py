"""JSON Schema validation for hashes read back from the backend.

Defines schemas for:
- Thread hashes (``thread:{id}``)
- Message hashes (``message:{id}``)

Every hash field is a string on the wire; ``metadata`` holds a JSON document
that is decoded separately by the models.  Uses jsonschema Draft 7.  Raises
MalformedRecordError when a record does not conform.
"""
from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator, ValidationError

from coach_memory.exceptions import MalformedRecordError

VALID_ROLES: frozenset[str] = frozenset({"user", "assistant", "system"})

# ---------------------------------------------------------------------------
# Thread schema
# ---------------------------------------------------------------------------

THREAD_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "ThreadHash",
    "type": "object",
    "required": ["id", "resourceId", "createdAt", "updatedAt"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "resourceId": {"type": "string"},
        "title": {"type": "string"},
        "metadata": {"type": "string"},
        "createdAt": {"type": "string", "minLength": 1},
        "updatedAt": {"type": "string", "minLength": 1},
    },
}

# ---------------------------------------------------------------------------
# Message schema
# ---------------------------------------------------------------------------

MESSAGE_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "MessageHash",
    "type": "object",
    "required": ["id", "threadId", "role", "content", "createdAt"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "threadId": {"type": "string", "minLength": 1},
        "role": {"type": "string", "enum": sorted(VALID_ROLES)},
        "content": {"type": "string"},
        "createdAt": {"type": "string", "minLength": 1},
        "metadata": {"type": "string"},
    },
}

_thread_validator = Draft7Validator(THREAD_SCHEMA)
_message_validator = Draft7Validator(MESSAGE_SCHEMA)


def validate_thread_hash(key: str, data: dict[str, Any]) -> None:
    """Raise MalformedRecordError if *data* is not a valid thread hash."""
    _validate(key, data, _thread_validator)


def validate_message_hash(key: str, data: dict[str, Any]) -> None:
    """Raise MalformedRecordError if *data* is not a valid message hash."""
    _validate(key, data, _message_validator)


def _validate(key: str, data: dict[str, Any], validator: Draft7Validator) -> None:
    errors: list[str] = []
    err: ValidationError
    for err in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        path = ".".join(str(p) for p in err.absolute_path) or "(root)"
        errors.append(f"{path}: {err.message}")
    if errors:
        raise MalformedRecordError(key, errors)
