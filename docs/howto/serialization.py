import pickle
import zlib
from typing import Any

from ttc import TagTreeCache


def custom_serializer(value: Any) -> bytes:
    """Custom serializer is a simple function to convert any value to bytes.

    Note: values given here are envelopes (the cached value with its tag
    tokens) or tag tokens (strings), not only your own values.

    If an exception is raised here, a warning will be logged
    and the value won't be cached.

    """
    serialized = pickle.dumps(value)  # serialize the value
    return zlib.compress(serialized)  # compress the serialized value


def custom_unserializer(value: bytes) -> Any:
    """Custom unserializer is a simple function to convert bytes to a value.

    If an exception is raised here, a warning will be logged
    and the read will be handled as a cache miss.

    """
    serialized = zlib.decompress(value)  # decompress the value
    return pickle.loads(serialized)  # unserialize the value


cache = TagTreeCache(
    namespace="foo",
    host="localhost",
    port=6379,
    serializer=custom_serializer,
    unserializer=custom_unserializer,
)

# Use cache normally
value = ["data", "to", "store"]
cache.remember("key1", lambda: value, tags=["tag1", "tag2"])
