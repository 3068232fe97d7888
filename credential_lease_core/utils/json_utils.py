import json
from enum import Enum
from typing import Any, Union


class EnhancedJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.value
        # Pydantic models
        elif hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        return super().default(obj)


def dumps(obj: Any, **kwargs) -> str:
    """JSON dumps with enum and pydantic model support."""
    return json.dumps(obj, cls=EnhancedJSONEncoder, **kwargs)


def dumps_bytes(obj: Any, **kwargs) -> bytes:
    """Encode to UTF-8 JSON bytes, the format records are persisted in."""
    return dumps(obj, **kwargs).encode("utf-8")


def loads(s: Union[str, bytes, bytearray], **kwargs) -> Any:
    """Standard JSON loads function."""
    return json.loads(s, **kwargs)
