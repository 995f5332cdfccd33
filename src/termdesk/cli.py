"""Command-line interface for termdesk.

Provides the main entry point for running the session server or trying
the simulated shell locally without any transport.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="termdesk",
        description="Shared simulated terminal sessions",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/termdesk.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the WebSocket session server")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    subparsers.add_parser("shell", help="Run the simulated shell locally")

    return parser.parse_args(argv)


def run_shell(settings, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> None:
    """Read command lines from ``stdin`` and run them against a fresh session."""
    from termdesk.broker.protocol import ProtocolError, sanitize_command
    from termdesk.shell.interpreter import interpret
    from termdesk.shell.state import SessionState

    state = SessionState.fresh(settings.shell.profile())
    prompt_user = f"{state.profile.user}@{state.profile.hostname}"
    while True:
        stdout.write(f"{prompt_user}:{state.cwd}$ ")
        stdout.flush()
        line = stdin.readline()
        if not line or line.strip() == "exit":
            stdout.write("\n")
            break
        try:
            command = sanitize_command(line, settings.shell.max_command_length)
        except ProtocolError as e:
            if line.strip():
                stdout.write(f"Error: {e}\n")
            continue
        result = interpret(command, state)
        if result.is_clear:
            stdout.write("\x1b[2J\x1b[H")
        else:
            stdout.write(result.output)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the termdesk CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from termdesk.config.settings import load_settings
    from termdesk.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        import uvicorn
        from termdesk.endpoint.server import create_app

        if args.host:
            settings.server.host = args.host
        if args.port:
            settings.server.port = args.port
        logger.info("Starting session server on %s:%d", settings.server.host, settings.server.port)
        uvicorn.run(
            create_app(settings),
            host=settings.server.host,
            port=settings.server.port,
        )

    elif args.command == "shell":
        logger.info("Starting local shell")
        run_shell(settings)


if __name__ == "__main__":
    main()
