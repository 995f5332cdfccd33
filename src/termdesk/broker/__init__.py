"""Session broker for termdesk.

Tracks which connections belong to which session, owns each session's
interpreter state and fans command results out to every participant.
"""

from termdesk.broker.broker import SessionBroker
from termdesk.broker.connection import Connection, ConnectionClosedError
from termdesk.broker.protocol import ProtocolError
from termdesk.broker.registry import ConnectionRegistry
from termdesk.broker.store import SessionStore

__all__ = [
    "Connection",
    "ConnectionClosedError",
    "ConnectionRegistry",
    "ProtocolError",
    "SessionBroker",
    "SessionStore",
]
