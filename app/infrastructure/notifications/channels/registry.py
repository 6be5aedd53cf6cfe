"""Channel adapter lookup table."""

import threading
from typing import Dict, Iterator, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter
from infrastructure.notifications.models import ChannelKind

logger = get_module_logger()


class ChannelRegistry:
    """Maps each channel kind to its adapter.

    Built once at startup. Adding a delivery channel means registering one
    more adapter; nothing else in the engine switches on the kind.

    Example:
        registry = ChannelRegistry()
        registry.register(PushChannel(settings.push))
        adapter = registry.get(ChannelKind.PUSH)
    """

    def __init__(self, adapters: Optional[List[ChannelAdapter]] = None):
        self._adapters: Dict[ChannelKind, ChannelAdapter] = {}
        self._lock = threading.Lock()
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ChannelAdapter) -> None:
        with self._lock:
            replaced = adapter.kind in self._adapters
            self._adapters[adapter.kind] = adapter
        logger.debug(
            "channel_adapter_registered",
            channel_kind=adapter.kind.value,
            provider=adapter.provider_name,
            replaced=replaced,
        )

    def get(self, kind: ChannelKind) -> Optional[ChannelAdapter]:
        with self._lock:
            return self._adapters.get(kind)

    def kinds(self) -> List[ChannelKind]:
        with self._lock:
            return list(self._adapters)

    def __contains__(self, kind: object) -> bool:
        with self._lock:
            return kind in self._adapters

    def __iter__(self) -> Iterator[ChannelAdapter]:
        with self._lock:
            return iter(list(self._adapters.values()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._adapters)
