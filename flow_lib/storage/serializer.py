from typing import Any, Protocol
import json


class Serializer(Protocol):
    """Serialize/deserialize values for media that only hold text.

    Implementations should be symmetric: `dump` -> str, `load` <- str.
    """

    def dump(self, value: Any) -> str: ...

    def load(self, data: str) -> Any: ...


class JSONSerializer:
    """Serializer using JSON text. Values must be JSON-serializable.

    NaN and infinities are rejected since other JSON readers cannot parse
    them back.
    """

    def dump(self, value: Any) -> str:
        return json.dumps(value, allow_nan=False, separators=(",", ":"))

    def load(self, data: str) -> Any:
        return json.loads(data)
