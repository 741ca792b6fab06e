class CacheException(Exception):
    pass


class StoreCacheException(CacheException):
    """Exception raised by store adapters when the backing store fails.

    Store adapters must never report a failure as a silent absence.

    """

    pass
