"""WebSocket endpoint module for termdesk.

Provides the FastAPI application that attaches client streams to the
session broker and the presence tracker.
"""
