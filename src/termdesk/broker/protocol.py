"""Inbound message parsing and command sanitization."""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from termdesk.domain.models import CommandMessage, InboundMessage, UnrecognizedMessage

MAX_COMMAND_LENGTH = 500

# Shell metacharacters removed before a command reaches the interpreter.
_STRIPPED_CHARS = re.compile(r"[;&|`$(){}\[\]<>]")


class ProtocolError(Exception):
    """A malformed inbound payload. The message is safe to send to the client."""


def parse_inbound(raw: str | bytes) -> InboundMessage:
    """Decode one raw frame into a recognized message or UnrecognizedMessage.

    Raises:
        ProtocolError: If the frame is not a JSON object or a ``command``
            message has the wrong shape.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolError("Invalid message format") from e
    if not isinstance(data, dict):
        raise ProtocolError("Invalid message format")

    if data.get("type") != "command":
        msg_type = data.get("type")
        return UnrecognizedMessage(type=msg_type if isinstance(msg_type, str) else None)
    try:
        return CommandMessage.model_validate(data)
    except ValidationError as e:
        raise ProtocolError("Command must be a string") from e


def sanitize_command(command: str, max_length: int = MAX_COMMAND_LENGTH) -> str:
    """Trim, bound and strip shell metacharacters from a command line.

    Raises:
        ProtocolError: If the trimmed command is empty or longer than
            ``max_length``.
    """
    command = command.strip()
    if not command:
        raise ProtocolError("Command cannot be empty")
    if len(command) > max_length:
        raise ProtocolError("Command is too long")
    return _STRIPPED_CHARS.sub("", command)
