"""Tests for inbound message parsing and command sanitization."""

from __future__ import annotations

import pytest

from termdesk.broker.protocol import ProtocolError, parse_inbound, sanitize_command
from termdesk.domain.models import CommandMessage, UnrecognizedMessage


class TestParseInbound:
    def test_command_message(self) -> None:
        msg = parse_inbound('{"type": "command", "command": "ls"}')
        assert isinstance(msg, CommandMessage)
        assert msg.command == "ls"

    def test_bytes_frame(self) -> None:
        msg = parse_inbound(b'{"type": "command", "command": "pwd"}')
        assert isinstance(msg, CommandMessage)

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"command"', "null", ""])
    def test_non_object_rejected(self, raw: str) -> None:
        with pytest.raises(ProtocolError, match="Invalid message format"):
            parse_inbound(raw)

    @pytest.mark.parametrize("command", ["42", "null", "[\"ls\"]", "{}"])
    def test_non_string_command_rejected(self, command: str) -> None:
        with pytest.raises(ProtocolError, match="Command must be a string"):
            parse_inbound(f'{{"type": "command", "command": {command}}}')

    def test_missing_command_rejected(self) -> None:
        with pytest.raises(ProtocolError, match="Command must be a string"):
            parse_inbound('{"type": "command"}')

    def test_unknown_type_is_unrecognized(self) -> None:
        msg = parse_inbound('{"type": "resize", "cols": 80}')
        assert isinstance(msg, UnrecognizedMessage)
        assert msg.type == "resize"

    def test_missing_type_is_unrecognized(self) -> None:
        msg = parse_inbound('{"command": "ls"}')
        assert isinstance(msg, UnrecognizedMessage)
        assert msg.type is None


class TestSanitizeCommand:
    def test_trims(self) -> None:
        assert sanitize_command("  ls -la \n") == "ls -la"

    def test_strips_metacharacters(self) -> None:
        assert sanitize_command("echo hi; rm -r / && $(whoami) `id` {a} [b] <c> |d") == (
            "echo hi rm -r /  whoami id a b c d"
        )

    @pytest.mark.parametrize("command", ["", "   ", "\t\n"])
    def test_empty_rejected(self, command: str) -> None:
        with pytest.raises(ProtocolError, match="Command cannot be empty"):
            sanitize_command(command)

    def test_length_bound_is_inclusive(self) -> None:
        assert sanitize_command("x" * 500) == "x" * 500
        with pytest.raises(ProtocolError, match="Command is too long"):
            sanitize_command("x" * 501)

    def test_custom_max_length(self) -> None:
        with pytest.raises(ProtocolError, match="too long"):
            sanitize_command("echo hello", max_length=5)

    def test_may_sanitize_to_empty(self) -> None:
        assert sanitize_command(";;;") == ""
