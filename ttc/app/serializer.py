import pickle
from typing import Any, Optional


def DEFAULT_SERIALIZER(value: Any) -> Optional[bytes]:
    return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)


def DEFAULT_UNSERIALIZER(value: bytes) -> Any:
    return pickle.loads(value)
