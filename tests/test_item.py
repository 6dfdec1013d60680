import pytest

from clouddoc.exceptions import ItemLoadError, UnsupportedValueError
from clouddoc.models import Item


def test_new_item_marks_document_dirty(database):
    doc = database.create_document("d1")
    item = doc.append_item_value("n", 12345)

    assert item.is_dirty
    assert item.is_loaded
    assert not item.is_attachment
    assert doc.is_dirty


def test_inline_item_from_wire(database):
    doc = database.create_document("d1")
    item = Item.from_wire(doc, "n", "!@INT:12345")

    assert item.is_loaded
    assert not item.is_dirty
    assert item.value == 12345


def test_externalized_item_loads_lazily(database, blob_store):
    blob_store.put_object(database.bucket_name, "data/tags/d1", '["a", "b"]', "application/json")
    blob_store.clear_operations()
    doc = database.create_document("d1")

    item = Item.from_wire(doc, "tags", "!@JSN:data/tags/d1")
    assert not item.is_loaded
    assert item.mime_type == "application/json"
    assert blob_store.operations == []

    assert item.value == ["a", "b"]
    assert item.is_loaded
    assert item.value == ["a", "b"]
    assert [op[0] for op in blob_store.operations] == ["get_object"]


def test_missing_blob_raises_load_error(database):
    doc = database.create_document("d1")
    item = Item.from_wire(doc, "body", "!@TXT:data/body/d1")

    with pytest.raises(ItemLoadError) as exc_info:
        item.value
    assert exc_info.value.details["path"] == "data/body/d1"
    assert not item.is_loaded


def test_wire_value_of_unloaded_item_does_not_fetch(database, blob_store):
    doc = database.create_document("d1")
    item = Item.from_wire(doc, "body", "!@TXT:data/body/d1")

    assert item.wire_value == "!@TXT:data/body/d1"
    assert blob_store.operations == []


def test_demotion_flags_old_blob(database):
    doc = database.create_document("d1")
    item = Item.from_wire(doc, "body", "!@TXT:data/body/d1")

    item.value = "short now"

    assert item.pending_blob_delete
    assert not item.is_attachment
    assert item.wire_value == "short now"


def test_promotion_back_clears_demotion(database):
    doc = database.create_document("d1")
    item = Item.from_wire(doc, "body", "!@TXT:data/body/d1")

    item.value = "short"
    item.value = "y" * 5000

    assert not item.pending_blob_delete
    assert item.mime_type == "text/plain"


def test_always_inline_item_never_flags_delete(database):
    doc = database.create_document("d1")
    item = Item.from_wire(doc, "n", "!@INT:1")

    item.value = 2
    item.value = "text"

    assert not item.pending_blob_delete


def test_setting_null_demotes(database):
    doc = database.create_document("d1")
    item = Item.from_wire(doc, "body", "!@XML:data/body/d1")

    item.value = None

    assert item.pending_blob_delete
    assert item.wire_value == ""


def test_mark_saved(database):
    doc = database.create_document("d1")
    item = doc.append_item_value("body", "z" * 2000)

    item.mark_saved()
    assert not item.is_dirty

    # Saved as a blob, so a later demotion must delete it
    item.value = "short"
    assert item.pending_blob_delete


def test_unsupported_value_leaves_item_untouched(database):
    doc = database.create_document("d1")
    item = doc.append_item_value("n", 1)
    item.mark_saved()

    with pytest.raises(UnsupportedValueError):
        item.value = {1, 2, 3}
    assert item.value == 1
    assert not item.is_dirty


def test_path_depends_on_document_and_item(database):
    doc = database.create_document("invoice-7")
    item = doc.append_item_value("lines", [1])

    assert item.path == "data/lines/invoice-7"
    assert "application/json" in repr(item)
