"""Presence tracking for termdesk sessions."""

from termdesk.presence.tracker import PresenceSubscription, PresenceTracker, sanitize_name

__all__ = ["PresenceSubscription", "PresenceTracker", "sanitize_name"]
