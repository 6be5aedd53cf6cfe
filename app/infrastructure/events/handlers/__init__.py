"""Event handlers shipped with the event system."""

from infrastructure.events.handlers.logging import LoggingHandler

__all__ = ["LoggingHandler"]
