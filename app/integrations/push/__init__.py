"""Push gateway integration."""

from .client import send_push, check_health

__all__ = ["send_push", "check_health"]
