"""
Store layer.

Abstract attribute/blob store interfaces plus AWS (SimpleDB, S3) and
in-memory implementations.
"""

from .repository import AttributeStore, BlobStore
from .memory import InMemoryAttributeStore, InMemoryBlobStore
from .simpledb import SimpleDBAttributeStore
from .s3 import S3BlobStore

__all__ = [
    "AttributeStore",
    "BlobStore",
    "InMemoryAttributeStore",
    "InMemoryBlobStore",
    "SimpleDBAttributeStore",
    "S3BlobStore",
]
