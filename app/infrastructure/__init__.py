"""Infrastructure modules for the notification dispatch engine.

Centralized infrastructure components:
- configuration: Settings management (Settings, DispatchSettings)
- logging: Structured logging (get_module_logger, configure_logging)
- events: Event bus for dispatch and health events
- idempotency: Idempotency cache for dispatch results
- notifications: Channel adapters, failover, rate limiting and the dispatcher
- operations: Operation results and error classification
- resilience: Circuit breaker and retry backoff
- security: Destination encryption at rest
- services: Application-scoped singletons (get_settings, get_notification_service)
"""

# Configuration
from infrastructure.configuration import Settings

# Logging
from infrastructure.logging import configure_logging, get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

# Services
from infrastructure.services import (
    get_settings,
    get_event_bus,
    get_notification_service,
)

__all__ = [
    # Configuration
    "Settings",
    # Logging
    "configure_logging",
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
    # Services
    "get_settings",
    "get_event_bus",
    "get_notification_service",
]
