"""
Dependency injection services.

Provides provider functions for the application-scoped singletons.
"""

from infrastructure.services.providers import (
    get_settings,
    get_event_bus,
    get_destination_cipher,
    get_idempotency_cache,
    get_notification_service,
)

__all__ = [
    "get_settings",
    "get_event_bus",
    "get_destination_cipher",
    "get_idempotency_cache",
    "get_notification_service",
]
