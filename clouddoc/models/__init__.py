"""
Data models for clouddoc.

Documents hold named items; the codec decides how each item value is
stored and converts it to and from the SimpleDB wire format.
"""

from .codec import BlobRef, INLINE_LIMIT, blob_path, classify, decode, encode
from .item import Item, Loaded, Unloaded
from .document import Document

__all__ = [
    # Codec
    "BlobRef",
    "INLINE_LIMIT",
    "blob_path",
    "classify",
    "decode",
    "encode",

    # Items
    "Item",
    "Loaded",
    "Unloaded",

    # Documents
    "Document",
]
