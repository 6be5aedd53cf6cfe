"""Encryption of subscription destinations at rest.

Destinations (phone numbers, email addresses, push subscription JSON, chat
ids) are stored as Fernet tokens. Only the channel adapters see plaintext,
at send time.
"""

from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from infrastructure.logging import get_module_logger

logger = get_module_logger()


class DestinationDecryptionError(ValueError):
    """Raised when a stored destination cannot be decrypted with the current key."""


class DestinationCipher:
    """Symmetric cipher for subscription destinations.

    Args:
        key: Urlsafe base64 Fernet key. When omitted a random key is
            generated, which makes stored destinations unreadable after a
            restart and is only suitable for development and tests.

    Example:
        cipher = DestinationCipher(key=settings.security.DESTINATION_ENCRYPTION_KEY)
        token = cipher.encrypt("+819012345678")
        cipher.decrypt(token)  # "+819012345678"
    """

    def __init__(self, key: Optional[str] = None):
        if not key:
            logger.warning("destination_encryption_key_generated")
            key_bytes = Fernet.generate_key()
        else:
            key_bytes = key.encode() if isinstance(key, str) else key
        self._fernet = Fernet(key_bytes)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt(self, destination: str) -> str:
        return self._fernet.encrypt(destination.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt a stored destination.

        Raises:
            DestinationDecryptionError: If the token was not produced with this key.
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError) as e:
            raise DestinationDecryptionError("destination could not be decrypted") from e
