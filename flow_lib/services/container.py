from typing import Any, Dict


class ServiceContainer:
    """A tiny, explicit DI container of named singletons.

    Register by key (string) and resolve via `get`. The storage provider
    lives here as 'storage_provider'; it is the owner of the active adapter,
    so the container never hands out adapters directly.
    """

    def __init__(self) -> None:
        self._singletons: Dict[str, Any] = {}

    def register_singleton(self, key: str, instance: Any) -> None:
        self._singletons[key] = instance

    def has(self, key: str) -> bool:
        return key in self._singletons

    def get(self, key: str) -> Any:
        if key in self._singletons:
            return self._singletons[key]
        raise KeyError(f"No service registered for key '{key}'")
