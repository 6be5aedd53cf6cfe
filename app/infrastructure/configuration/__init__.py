"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the notification
engine using Pydantic BaseSettings with domain-based organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    DispatchSettings: Dispatch section (for testing)
    PriorityThresholds: Advisor score thresholds

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    # Access settings
    retries = settings.dispatch.max_retries
    cooldown = settings.circuit_breaker.cooldown_seconds

    # Check environment
    if settings.is_production:
        # Production-specific logic...
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.infrastructure.dispatch import (
    DispatchSettings,
    PriorityThresholds,
)

__all__ = ["Settings", "DispatchSettings", "PriorityThresholds"]
