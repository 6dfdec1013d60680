import pytest

from clouddoc.config import Config, StoreConfig
from clouddoc.database import Database
from clouddoc.persistence import InMemoryAttributeStore, InMemoryBlobStore


@pytest.fixture
def config(tmp_path):
    return Config(
        logs_dir=tmp_path / "logs",
        log_to_file=False,
        store=StoreConfig(
            database="",
            bucket_suffix="test.db",
            consistent_read=True,
            propagation_timeout_sec=0.0,
            propagation_poll_sec=0.0,
        ),
    )


@pytest.fixture
def attribute_store():
    return InMemoryAttributeStore()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def sleeps():
    """Records the delays Database would have slept for."""
    return []


@pytest.fixture
def make_database(attribute_store, blob_store, config, sleeps):
    def factory():
        return Database(attribute_store, blob_store, config=config, sleep=sleeps.append)
    return factory


@pytest.fixture
def database(make_database, attribute_store, blob_store):
    """Database "foo", initialized and open, with the store call logs cleared."""
    db = make_database()
    assert db.init("foo")
    attribute_store.clear_operations()
    blob_store.clear_operations()
    return db
