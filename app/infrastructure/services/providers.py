"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.
"""

from functools import lru_cache
from typing import TYPE_CHECKING

from infrastructure.configuration import Settings
from infrastructure.events.dispatcher import EventBus
from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.factory import create_idempotency_cache
from infrastructure.security.encryption import DestinationCipher

if TYPE_CHECKING:
    from infrastructure.notifications.service import NotificationService


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

    Usage:
        from infrastructure.services import get_settings
        settings = get_settings()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_event_bus() -> EventBus:
    """
    Get application-scoped event bus singleton.

    Returns:
        EventBus: Cached event bus. Handlers registered on it receive every
        dispatch and health event published by the engine.
    """
    return EventBus()


@lru_cache
def get_destination_cipher() -> DestinationCipher:
    """
    Get application-scoped destination cipher singleton.

    Returns:
        DestinationCipher: Cipher keyed from settings.security.
    """
    settings = get_settings()
    return DestinationCipher(key=settings.security.DESTINATION_ENCRYPTION_KEY)


@lru_cache
def get_idempotency_cache() -> IdempotencyCache:
    """
    Get application-scoped idempotency cache singleton.

    Returns:
        IdempotencyCache: Backend selected by settings.idempotency.backend.
    """
    return create_idempotency_cache(get_settings().idempotency)


@lru_cache
def get_notification_service() -> "NotificationService":
    """
    Get application-scoped notification service singleton.

    Returns:
        NotificationService: Engine wired from settings, sharing the event
        bus, destination cipher and idempotency cache singletons.
    """
    from infrastructure.notifications.service import NotificationService

    return NotificationService(
        get_settings(),
        idempotency_cache=get_idempotency_cache(),
        event_bus=get_event_bus(),
        cipher=get_destination_cipher(),
    )
