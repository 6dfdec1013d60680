"""
clouddoc: document database over AWS SimpleDB and S3.

Small item values are stored inline as SimpleDB attributes; large text,
XML and JSON values are stored as S3 objects referenced from the
attributes.
"""

from .config import Config, get_config
from .database import Database, ROOT_DOCUMENT
from .exceptions import (
    CloudDocError,
    DatabaseNotOpenError,
    DecodeError,
    DocumentSaveError,
    ItemLoadError,
    StoreError,
)
from .models import Document, Item

__version__ = "0.1.0"

__all__ = [
    "Config",
    "get_config",
    "Database",
    "ROOT_DOCUMENT",
    "Document",
    "Item",
    "CloudDocError",
    "DatabaseNotOpenError",
    "DecodeError",
    "DocumentSaveError",
    "ItemLoadError",
    "StoreError",
]
