"""Security utilities for the notification engine."""

from infrastructure.security.encryption import (
    DestinationCipher,
    DestinationDecryptionError,
)

__all__ = ["DestinationCipher", "DestinationDecryptionError"]
