"""
Item model.

An item is one named value on a document. Inline values are held in
memory as soon as the document is loaded; externalized values start out
unloaded and are fetched from the blob store on first read.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Union

from . import codec
from ..exceptions import CloudDocError, ItemLoadError

if TYPE_CHECKING:
    from .document import Document


@dataclass(frozen=True)
class Unloaded:
    """Externalized value whose payload has not been fetched yet."""
    path: str
    mime_type: str


@dataclass(frozen=True)
class Loaded:
    """Value present in memory."""
    value: Any


class Item:
    """
    A named, typed value belonging to a Document.

    Writes only touch memory and mark the item and its document dirty;
    Document.save() pushes the change to the stores.
    """

    def __init__(self, document: Document, name: str):
        self.document = document
        self._name = name
        self._state: Union[Unloaded, Loaded] = Loaded(None)
        self._mime_type = ""
        self._dirty = False
        # True while the store holds a blob for this item
        self._was_externalized = False
        self._pending_blob_delete = False

    @classmethod
    def from_wire(cls, document: Document, name: str, raw: str) -> Item:
        """
        Build a clean item from a stored attribute value.

        Raises:
            DecodeError: raw value cannot be decoded
        """
        item = cls(document, name)
        decoded = codec.decode(raw)
        if isinstance(decoded, codec.BlobRef):
            item._state = Unloaded(decoded.path, decoded.mime_type)
            item._mime_type = decoded.mime_type
            item._was_externalized = True
        else:
            item._state = Loaded(decoded)
        return item

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        """Blob key for this item; fixed for a given document and item name."""
        return codec.blob_path(self.document.name, self._name)

    @property
    def mime_type(self) -> str:
        """Mime type of the blob, or "" for inline values."""
        return self._mime_type

    @property
    def is_attachment(self) -> bool:
        return bool(self._mime_type)

    @property
    def is_loaded(self) -> bool:
        return isinstance(self._state, Loaded)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def pending_blob_delete(self) -> bool:
        """True when the value moved inline and the old blob must go on save."""
        return self._pending_blob_delete

    @property
    def value(self) -> Any:
        """
        Current value, fetching the blob first if needed.

        Raises:
            ItemLoadError: blob could not be fetched or parsed
        """
        if isinstance(self._state, Unloaded):
            self.load()
        return self._state.value

    @value.setter
    def value(self, new_value: Any) -> None:
        mime_type = codec.classify(new_value)
        self._state = Loaded(new_value)
        self._mime_type = mime_type
        self._pending_blob_delete = self._was_externalized and not mime_type
        self._dirty = True
        self.document.mark_dirty()

    def load(self, force: bool = False) -> None:
        """
        Fetch and parse the blob payload.

        Args:
            force: Re-read the blob even if the value is already in memory
        """
        if isinstance(self._state, Unloaded):
            path, mime_type = self._state.path, self._state.mime_type
        elif force and self.is_attachment and not self._dirty:
            path, mime_type = self.path, self._mime_type
        else:
            return

        try:
            body = self.document.read_blob(path)
            value = codec.parse_payload(body, mime_type)
        except CloudDocError as e:
            raise ItemLoadError(
                f"Cannot load item '{self._name}' of document '{self.document.name}': {e.message}",
                item_name=self._name,
                path=path,
            ) from e
        self._state = Loaded(value)

    @property
    def wire_value(self) -> str:
        """Attribute value to store for this item."""
        if isinstance(self._state, Unloaded):
            return codec.encode_reference(self._state.mime_type, self._state.path)
        return codec.encode(self._state.value, self.path)

    @property
    def blob_payload(self) -> Optional[str]:
        """Blob body for externalized items, None for inline ones."""
        if not self.is_attachment:
            return None
        return codec.serialize_payload(self.value)

    def mark_saved(self) -> None:
        """Record that the stores now match the in-memory value."""
        self._dirty = False
        self._pending_blob_delete = False
        self._was_externalized = self.is_attachment

    def __repr__(self) -> str:
        state = "loaded" if self.is_loaded else "unloaded"
        kind = self._mime_type or "inline"
        return f"Item(name='{self._name}', {kind}, {state}{', dirty' if self._dirty else ''})"
