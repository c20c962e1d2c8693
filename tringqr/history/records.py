"""History record types and parsing of remote entries."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

_REMOTE_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"

Identifier = Union[str, int, None]


@dataclass(frozen=True)
class ScanRecord:
    identifier: str
    code: str
    event_category: str | None
    event_name: str | None
    timestamp: datetime | None

    @property
    def key(self) -> str:
        return self.code


@dataclass(frozen=True)
class CreatedCodeRecord:
    identifier: str
    content: str
    image_ref: str | None
    timestamp: datetime | None

    @property
    def key(self) -> str:
        return self.content


class RemoteScanEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    identifier: Identifier = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    code: str | None = None
    event_category: str | None = Field(default=None, validation_alias="eventCategory")
    event_name: str | None = Field(default=None, validation_alias="eventName")
    timestamp: str | None = Field(
        default=None, validation_alias=AliasChoices("updatedAt", "createdAt", "timestamp")
    )


class RemoteCreatedCodeEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    identifier: Identifier = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    content: str | None = None
    image_ref: str | None = Field(
        default=None, validation_alias=AliasChoices("imageUrl", "image", "imageRef")
    )
    timestamp: str | None = Field(
        default=None, validation_alias=AliasChoices("updatedAt", "createdAt", "timestamp")
    )


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse ``2025-01-01T00:00:00.000+0000`` style stamps, falling back to ISO-8601."""

    if not value:
        return None
    try:
        return datetime.strptime(value, _REMOTE_TS_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("unparseable history timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _identifier(value: Identifier, seed: str | None = None) -> str:
    if value is not None and value != "":
        return str(value)
    if seed is not None:
        return str(uuid.uuid5(uuid.NAMESPACE_URL, seed))
    return str(uuid.uuid4())


def _non_empty(*candidates: str | None) -> str | None:
    for candidate in candidates:
        if candidate:
            return candidate
    return None


def scan_from_remote(entry: Any) -> ScanRecord | None:
    """Build a scan record, or None when the entry lacks its canonical key."""

    try:
        parsed = RemoteScanEntry.model_validate(entry)
    except ValidationError as exc:
        logger.debug("dropping malformed scan entry: %s", exc.errors())
        return None
    code = _non_empty(parsed.code, parsed.event_name)
    if code is None:
        return None
    return ScanRecord(
        identifier=_identifier(parsed.identifier, f"scan:{code}:{parsed.timestamp}"),
        code=code,
        event_category=parsed.event_category,
        event_name=parsed.event_name or code,
        timestamp=parse_timestamp(parsed.timestamp),
    )


def created_code_from_remote(entry: Any) -> CreatedCodeRecord | None:
    try:
        parsed = RemoteCreatedCodeEntry.model_validate(entry)
    except ValidationError as exc:
        logger.debug("dropping malformed created-code entry: %s", exc.errors())
        return None
    if not parsed.content:
        return None
    return CreatedCodeRecord(
        identifier=_identifier(parsed.identifier, f"code:{parsed.content}:{parsed.timestamp}"),
        content=parsed.content,
        image_ref=parsed.image_ref,
        timestamp=parse_timestamp(parsed.timestamp),
    )


def _response_identifier(response: Any) -> Identifier:
    if isinstance(response, Mapping):
        value = response.get("id") or response.get("_id")
        if isinstance(value, (str, int)):
            return value
    return None


def confirmed_scan(key: str, metadata: Mapping[str, Any], response: Any = None) -> ScanRecord:
    """Local record for a scan the remote has just accepted."""

    return ScanRecord(
        identifier=_identifier(_response_identifier(response)),
        code=key,
        event_category=metadata.get("eventCategory"),
        event_name=metadata.get("eventName", key),
        timestamp=datetime.now(timezone.utc),
    )


def confirmed_created_code(
    key: str, metadata: Mapping[str, Any], response: Any = None
) -> CreatedCodeRecord:
    image_ref = metadata.get("imageRef")
    if image_ref is None and isinstance(response, Mapping):
        image_ref = response.get("imageUrl")
    return CreatedCodeRecord(
        identifier=_identifier(_response_identifier(response)),
        content=key,
        image_ref=image_ref,
        timestamp=datetime.now(timezone.utc),
    )
