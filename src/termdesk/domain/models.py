"""Core domain models for the termdesk system.

These models describe the JSON messages exchanged over a terminal
session stream and the presence roster. Field names on the wire are
camelCase; Python attributes are snake_case and serialized by alias.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr

SESSION_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")
SESSION_ID_MAX_LENGTH = 50


def validate_session_id(session_id: str | None) -> str:
    """Return ``session_id`` unchanged if it is a valid identifier.

    Raises:
        InvalidSessionIdError: If it is empty, too long, or contains
            anything besides lowercase letters, digits and hyphens.
    """
    if not session_id:
        raise InvalidSessionIdError("Session ID is required")
    if len(session_id) > SESSION_ID_MAX_LENGTH or not SESSION_ID_PATTERN.match(session_id):
        raise InvalidSessionIdError("Invalid session ID format")
    return session_id


def utc_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


class InvalidSessionIdError(ValueError):
    """Raised when a session identifier fails validation."""


# ---------------------------------------------------------------------------
# Inbound messages (client -> broker)
# ---------------------------------------------------------------------------


class CommandMessage(BaseModel):
    """A command line typed by a participant."""

    model_config = ConfigDict(frozen=True)

    type: Literal["command"] = "command"
    command: StrictStr


class UnrecognizedMessage(BaseModel):
    """Any well-formed JSON object whose ``type`` the broker does not handle."""

    model_config = ConfigDict(frozen=True)

    type: str | None = None


InboundMessage = CommandMessage | UnrecognizedMessage


# ---------------------------------------------------------------------------
# Outbound messages (broker -> client)
# ---------------------------------------------------------------------------


class OutboundMessage(BaseModel):
    """Base for every message the server sends."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ConnectedMessage(OutboundMessage):
    type: Literal["connected"] = "connected"
    session_id: str = Field(alias="sessionId")
    message: str = "Connected to terminal session"


class CommandEchoMessage(OutboundMessage):
    type: Literal["command_echo"] = "command_echo"
    command: str
    timestamp: str = Field(default_factory=utc_timestamp)


class OutputMessage(OutboundMessage):
    type: Literal["output"] = "output"
    output: str
    success: bool = True
    timestamp: str = Field(default_factory=utc_timestamp)


class ErrorMessage(OutboundMessage):
    type: Literal["error"] = "error"
    error: str


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


class PresenceMember(BaseModel):
    """One participant in a session roster."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    participant_id: str = Field(alias="participantId")
    display_name: str = Field(alias="displayName")
    last_seen_at: datetime = Field(alias="lastSeenAt")


class PresenceMessage(OutboundMessage):
    """Full roster snapshot pushed to presence subscribers."""

    type: Literal["presence"] = "presence"
    session_id: str = Field(alias="sessionId")
    members: list[PresenceMember] = Field(default_factory=list)
