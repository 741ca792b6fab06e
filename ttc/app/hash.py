import base64
import hashlib
import os
import zlib
from typing import Union


def _hash(data: Union[str, bytes]) -> int:
    """Generate a hash of the given string or bytes.

    This is a simple hash function that uses the zlib library.
    It is not a cryptographic hash function, but it is fast and suitable for our use case.

    Returns:
        A 32-bit (non signed) integer hash of the given data.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return zlib.adler32(data) & 0xFFFFFFFF


def short_hash(data: Union[str, bytes]) -> str:
    """Generate a text hash of the given string or bytes.

    This is a simple hash function that uses the zlib library.
    It is not a cryptographic hash function, but it is fast and suitable for our use case.

    Returns:
        A base64 encoded string (url variant) of the hash (without padding and with ~ instead of -)
    """
    h = _hash(data)
    return (
        base64.urlsafe_b64encode(h.to_bytes(4, "big"))
        .decode("utf-8")
        .rstrip("=")
        .replace("-", "~")
    )


def md5_hash(data: str) -> str:
    """Default key/tag hasher (stable between processes and machines)."""
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def shard_index(data: str, shards: int) -> int:
    """Map the given string onto one of `shards` partitions (crc32 based)."""
    if shards <= 0:
        raise ValueError("the number of shards must be strictly positive")
    return (zlib.crc32(data.encode("utf-8")) & 0xFFFFFFFF) % shards


def get_random_bytes(size: int = 16) -> bytes:
    return os.urandom(size)


def get_random_token() -> str:
    """Generate a random opaque tag version token."""
    return get_random_bytes().hex()
