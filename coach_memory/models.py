"""Thread and Message records with backend hash (de)serialisation helpers."""
from __future__ import annotations

import json
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from coach_memory.exceptions import InvalidRoleError, MalformedRecordError
from coach_memory.record_schema import (
    VALID_ROLES,
    validate_message_hash,
    validate_thread_hash,
)

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LEN = 9


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_id() -> str:
    """Return ``{unix_ms}-{9 base36 chars}``.

    Not collision-proof under heavy concurrent creation within one
    millisecond; the random suffix gives 36**9 values per millisecond.
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LEN))
    return f"{int(time.time() * 1000)}-{suffix}"


def _dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    if metadata is None:
        return None
    return json.dumps(metadata, ensure_ascii=False)


def _load_metadata(key: str, raw: str | None) -> dict[str, Any] | None:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedRecordError(key, [f"metadata: {exc}"]) from exc
    if value is not None and not isinstance(value, dict):
        raise MalformedRecordError(key, ["metadata: expected a JSON object"])
    return value


@dataclass(frozen=True)
class Thread:
    """Conversation context owned by a single resource.

    Parameters
    ----------
    id:
        Unique thread identifier.
    resource_id:
        Owning resource (e.g. the end user).
    title:
        Optional human-readable title.
    metadata:
        Optional JSON-serialisable payload.
    created_at / updated_at:
        ISO-8601 UTC timestamps; ``created_at <= updated_at``.
    """

    id: str
    resource_id: str
    created_at: str
    updated_at: str
    title: str | None = None
    metadata: dict[str, Any] | None = None

    @classmethod
    def create(
        cls,
        resource_id: str,
        title: str | None = None,
        metadata: dict[str, Any] | None = None,
        now: str | None = None,
    ) -> Thread:
        """Build a new thread with a fresh id and matching timestamps."""
        stamp = now or utcnow_iso()
        return cls(
            id=generate_id(),
            resource_id=resource_id,
            title=title,
            metadata=metadata,
            created_at=stamp,
            updated_at=stamp,
        )

    def to_hash(self) -> dict[str, str]:
        """Serialise to the backend hash layout (camelCase, strings only).

        Unset optional fields are omitted rather than written as empty.
        """
        data: dict[str, str] = {
            "id": self.id,
            "resourceId": self.resource_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.title is not None:
            data["title"] = self.title
        metadata = _dump_metadata(self.metadata)
        if metadata is not None:
            data["metadata"] = metadata
        return data

    @classmethod
    def from_hash(cls, key: str, data: dict[str, Any]) -> Thread:
        """Rebuild a thread from a hash read at *key*."""
        validate_thread_hash(key, data)
        return cls(
            id=data["id"],
            resource_id=data["resourceId"],
            title=data.get("title"),
            metadata=_load_metadata(key, data.get("metadata")),
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "resourceId": self.resource_id,
            "title": self.title,
            "metadata": self.metadata,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class Message:
    """Immutable, role-tagged utterance appended to a thread."""

    id: str
    thread_id: str
    role: str
    content: str
    created_at: str
    metadata: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.role not in VALID_ROLES:
            raise InvalidRoleError(self.role, VALID_ROLES)

    @classmethod
    def create(
        cls,
        thread_id: str,
        role: str,
        content: str,
        metadata: dict[str, Any] | None = None,
        now: str | None = None,
    ) -> Message:
        return cls(
            id=generate_id(),
            thread_id=thread_id,
            role=role,
            content=content,
            created_at=now or utcnow_iso(),
            metadata=metadata,
        )

    def to_hash(self) -> dict[str, str]:
        data: dict[str, str] = {
            "id": self.id,
            "threadId": self.thread_id,
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at,
        }
        metadata = _dump_metadata(self.metadata)
        if metadata is not None:
            data["metadata"] = metadata
        return data

    @classmethod
    def from_hash(cls, key: str, data: dict[str, Any]) -> Message:
        validate_message_hash(key, data)
        return cls(
            id=data["id"],
            thread_id=data["threadId"],
            role=data["role"],
            content=data["content"],
            created_at=data["createdAt"],
            metadata=_load_metadata(key, data.get("metadata")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "threadId": self.thread_id,
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at,
            "metadata": self.metadata,
        }
