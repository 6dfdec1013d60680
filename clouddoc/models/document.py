"""
Document model.

A document is one SimpleDB record plus the S3 objects of its
externalized items. Values are read and written in memory; save()
writes the changed attributes in one batch and then the changed blobs.
"""

from __future__ import annotations

import json
import time
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .item import Item
from ..exceptions import CloudDocError, DocumentSaveError, DuplicateItemError, ValidationError
from ..logger import get_logger, log_timing

if TYPE_CHECKING:
    from ..database import Database

logger = get_logger(__name__)


class Document:
    """
    Named set of items stored in a database.

    Usage:
        doc = db.create_document("invoice-17")
        doc["total"] = Decimal("120.50")
        doc["lines"] = [{"sku": "A1", "qty": 2}]   # stored in S3
        doc.save()
    """

    def __init__(self, database: Database, name: str):
        self.database = database
        self._name = name
        self._items: Dict[str, Item] = {}
        self._dirty = False
        self._loaded = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_valid(self) -> bool:
        """True if the document is bound to a database and has a name."""
        return self.database is not None and bool(self._name)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_loaded(self) -> bool:
        """True once the item index reflects the stored record."""
        return self._loaded

    @property
    def items(self) -> List[Item]:
        return list(self._items.values())

    @property
    def item_names(self) -> List[str]:
        return list(self._items)

    def mark_dirty(self) -> None:
        self._dirty = True

    def read_blob(self, path: str) -> str:
        """Fetch an externalized payload from the database bucket."""
        return self.database.blob_store.get_object(self.database.bucket_name, path)

    # ------------------------------------------------------------------
    # Item access
    # ------------------------------------------------------------------

    def __getitem__(self, name: str) -> Any:
        """Value of an item, or None if the document has no such item."""
        item = self._items.get(name)
        if item is None:
            return None
        return item.value

    def __setitem__(self, name: str, value: Any) -> None:
        self.replace_item_value(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def get(self, name: str, default: Any = None) -> Any:
        item = self._items.get(name)
        return default if item is None else item.value

    def get_item(self, name: str) -> Optional[Item]:
        return self._items.get(name)

    def append_item_value(self, name: str, value: Any) -> Item:
        """
        Create a new item on the document.

        Raises:
            DuplicateItemError: the document already has an item with this name
            UnsupportedValueError: value is not a storable kind
        """
        if not name:
            raise ValidationError("Item name must not be empty", field_name="item_name")
        if name in self._items:
            raise DuplicateItemError(name, self._name)
        item = Item(self, name)
        item.value = value
        self._items[name] = item
        return item

    def replace_item_value(self, name: str, value: Any) -> Item:
        """Set the value of an item, creating the item if needed."""
        item = self._items.get(name)
        if item is None:
            return self.append_item_value(name, value)
        item.value = value
        return item

    def create_item_from_file(self, name: str, file_path: Union[str, Path]) -> Item:
        """Create a text item from the contents of a file."""
        return self.append_item_value(name, Path(file_path).read_text(encoding="utf-8"))

    def create_item_from_xml_file(self, name: str, file_path: Union[str, Path]) -> Item:
        """Create an XML item from the root element of a file."""
        return self.append_item_value(name, ET.parse(str(file_path)).getroot())

    def create_item_from_json_file(self, name: str, file_path: Union[str, Path]) -> Item:
        with open(file_path, encoding="utf-8") as f:
            return self.append_item_value(name, json.load(f))

    def create_item_from_json(self, name: str, text: str) -> Item:
        return self.append_item_value(name, json.loads(text))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def replace_items(self, pairs: Sequence[Tuple[str, str]]) -> None:
        """
        Rebuild the item index from stored attribute pairs.

        Raises:
            DecodeError: an attribute value cannot be decoded
        """
        items = {}
        for name, raw in pairs:
            items[name] = Item.from_wire(self, name, raw)
        self._items = items
        self._dirty = False
        self._loaded = True

    def load_blobs(self, force: bool = False) -> None:
        """Fetch the payload of every externalized item."""
        for item in self._items.values():
            if item.is_attachment:
                item.load(force=force)

    def load(self, preload: bool = False) -> None:
        """
        Replace the in-memory items with the stored record.

        Args:
            preload: Fetch externalized payloads now instead of on first access

        Raises:
            StoreError: the attribute store call failed
            DecodeError: the stored record is malformed
            ItemLoadError: a payload could not be fetched (preload only)
        """
        self._loaded = False
        pairs = self.database.attribute_store.get_attributes(self.database.name, self._name)
        self.replace_items(pairs)
        if preload:
            self.load_blobs(force=True)

    def reload_data(self, preload: bool = False) -> bool:
        """
        Discard all changes and reload the document from the database.

        Returns:
            True if the document was reloaded
        """
        try:
            self.load(preload)
            return True
        except CloudDocError as e:
            logger.error(f"Cannot reload document '{self._name}' from {self.database.name}: {e}")
            return False

    def save(self) -> None:
        """
        Write changed items to the stores.

        Attributes are written in one batch first, then blobs are written
        or deleted. Dirty flags are cleared only when everything succeeded.

        Raises:
            DocumentSaveError: any write failed; calling save() again retries
        """
        if not self._dirty:
            return

        dirty = [item for item in self._items.values() if item.is_dirty]
        if not dirty:
            self._dirty = False
            return

        start = time.perf_counter()
        store = self.database
        try:
            pairs = [(item.name, item.wire_value) for item in dirty]
            blobs = [(item, item.blob_payload) for item in dirty]

            store.attribute_store.put_attributes(store.name, self._name, pairs, replace=True)

            for item, payload in blobs:
                if payload is not None:
                    store.blob_store.put_object(store.bucket_name, item.path, payload, item.mime_type)
                elif item.pending_blob_delete:
                    store.blob_store.delete_object(store.bucket_name, item.path)
        except CloudDocError as e:
            logger.error(f"Cannot save document '{self._name}' to {store.name}: {e}")
            raise DocumentSaveError(
                f"Cannot save document '{self._name}': {e.message}",
                document_name=self._name,
                pending_items=len(dirty),
                recoverable=e.recoverable,
            ) from e

        for item in dirty:
            item.mark_saved()
        self._dirty = False
        log_timing(logger, f"Saved document '{self._name}' ({len(dirty)} items)",
                   time.perf_counter() - start)

    def remove(self) -> None:
        """
        Permanently delete the document.

        Blobs go first so an interrupted delete leaves orphaned blobs
        rather than attributes pointing at missing blobs.

        Raises:
            StoreError: a delete call failed
        """
        store = self.database
        for item in self._items.values():
            if item.is_attachment or item.pending_blob_delete:
                store.blob_store.delete_object(store.bucket_name, item.path)
        store.attribute_store.delete_attributes(store.name, self._name)
        self._items = {}
        self._dirty = False
        self._loaded = False
        logger.info(f"Removed document '{self._name}' from {store.name}")

    def __str__(self) -> str:
        return f"{self._name} ({len(self._items)})"

    def __repr__(self) -> str:
        return f"Document(name='{self._name}', items={len(self._items)}, dirty={self._dirty})"
