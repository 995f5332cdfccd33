"""Domain models for termdesk.

This package contains the wire message shapes, the presence roster
entry and session identifier validation. All models use Pydantic v2
for validation and serialization.
"""

from termdesk.domain.models import (
    CommandEchoMessage,
    CommandMessage,
    ConnectedMessage,
    ErrorMessage,
    InboundMessage,
    InvalidSessionIdError,
    OutboundMessage,
    OutputMessage,
    PresenceMember,
    PresenceMessage,
    UnrecognizedMessage,
    validate_session_id,
)

__all__ = [
    "CommandEchoMessage",
    "CommandMessage",
    "ConnectedMessage",
    "ErrorMessage",
    "InboundMessage",
    "InvalidSessionIdError",
    "OutboundMessage",
    "OutputMessage",
    "PresenceMember",
    "PresenceMessage",
    "UnrecognizedMessage",
    "validate_session_id",
]
