"""Object storage adapters."""
from adminrest.storage.object_storage import HttpObjectStorage, ObjectStorage

__all__ = [
    "HttpObjectStorage",
    "ObjectStorage",
]
