from typing import Any, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class StorageProtocol(Protocol):
    """Storage adapter protocol mirroring `flow_lib.storage.StorageAdapter`.

    Implementations should follow the semantics documented on the abstract
    base class in `flow_lib.storage.base` (None for missing keys, idempotent
    delete, namespace-scoped clear, StorageError on I/O failure).
    """

    backend: str

    @property
    def namespace(self) -> str: ...

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def list(self, prefix: Optional[str] = None) -> List[Any]: ...

    async def clear(self) -> None: ...
