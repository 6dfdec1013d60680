"""
Database: one SimpleDB domain plus one S3 bucket.

Usage:
    from clouddoc import Database

    with Database() as db:
        if not db.open("inventory") and not db.init("inventory"):
            raise SystemExit(1)
        doc = db.create_document("sku-1001")
        doc["price"] = Decimal("9.99")
        doc.save()
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, List, Optional

from .config import Config, get_config
from .exceptions import (
    CloudDocError,
    DatabaseNotOpenError,
    DecodeError,
    ValidationError,
)
from .logger import get_logger, log_timing
from .models import Document
from .persistence import AttributeStore, BlobStore, S3BlobStore, SimpleDBAttributeStore
from .utils.aws import get_client

logger = get_logger(__name__)

ROOT_DOCUMENT = "@root"
ROOT_ATTRIBUTE = "database"
MARKER_FOLDERS = ("system", "data")


class Database:
    """
    Logical document database backed by an attribute store and a blob store.

    Stores can be injected (e.g. the in-memory ones); otherwise connect()
    builds SimpleDB and S3 stores from the AWS configuration.

    Lifecycle methods (connect, init, open, remove) log failures and return
    False. Document methods require an open database and raise
    DatabaseNotOpenError otherwise.
    """

    def __init__(
        self,
        attribute_store: Optional[AttributeStore] = None,
        blob_store: Optional[BlobStore] = None,
        config: Optional[Config] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or get_config()
        self.attribute_store = attribute_store
        self.blob_store = blob_store
        self._owns_stores = attribute_store is None or blob_store is None
        self._sleep = sleep

        self.name = ""
        self.root: Optional[Document] = None
        self._connected = False
        self._open = False

        # Existence caches: refreshed on connect, updated on create/delete
        self._domains: set[str] = set()
        self._buckets: set[str] = set()
        self._admin_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def bucket_name(self) -> str:
        return self.config.store.bucket_name(self.name)

    @property
    def known_domains(self) -> List[str]:
        return sorted(self._domains)

    @property
    def known_buckets(self) -> List[str]:
        return sorted(self._buckets)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        """
        Create the store clients if needed and refresh the existence caches.

        Returns:
            True if both stores answered
        """
        with self._admin_lock:
            self._connected = False
            aws = self.config.aws
            if self._owns_stores and not aws.is_configured:
                logger.debug("No explicit AWS credentials; relying on the default boto3 chain")
            try:
                if self.attribute_store is None:
                    self.attribute_store = SimpleDBAttributeStore(
                        get_client("sdb", aws), consistent_read=self.config.store.consistent_read
                    )
                if self.blob_store is None:
                    self.blob_store = S3BlobStore(get_client("s3", aws), region=aws.region)

                self._domains = set(self.attribute_store.list_domains())
                self._buckets = set(self.blob_store.list_buckets())
            except CloudDocError as e:
                logger.error(f"Cannot connect to the backing stores: {e}")
                return False

            self._connected = True
            logger.debug(
                f"Connected: {len(self._domains)} domains, {len(self._buckets)} buckets"
            )
            return True

    def disconnect(self) -> None:
        with self._admin_lock:
            self._domains.clear()
            self._buckets.clear()
            if self._owns_stores:
                self.attribute_store = None
                self.blob_store = None
            self.root = None
            self._connected = False
            self._open = False

    def close(self) -> None:
        self.disconnect()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Open / init
    # ------------------------------------------------------------------

    def open(self, name: Optional[str] = None) -> bool:
        """
        Open an existing database.

        The root document must exist and name this database; anything else
        means a foreign domain or one that has not propagated yet.

        Args:
            name: Database name (defaults to CLOUDDOC_DATABASE)

        Returns:
            True if the database is open
        """
        name = name or self.config.store.database
        if not name:
            logger.error("Empty database name")
            return False
        if not self._connected and not self.connect():
            return False

        self._open = False
        self.root = None
        self.name = name
        if not self._load_root():
            return False

        self._open = True
        logger.info(f"Database {name} is open")
        return True

    def _load_root(self) -> bool:
        root = Document(self, ROOT_DOCUMENT)
        try:
            root.load()
            if len(root) == 0:
                logger.error(f"Cannot find root document in domain '{self.name}'")
                return False
            owner = root[ROOT_ATTRIBUTE]
        except CloudDocError as e:
            logger.error(f"Cannot load root document of '{self.name}': {e}")
            return False

        if owner != self.name:
            logger.error(f"Root document has invalid data: '{owner}'")
            return False

        self.root = root
        return True

    def init(self, name: str) -> bool:
        """
        Create the domain, root document, bucket and marker folders, then open.

        Safe to call on an existing database: existing domains and buckets
        are reused.

        Returns:
            True if the database was created and opened
        """
        if not name:
            logger.error("Empty database name")
            return False
        if not self._connected and not self.connect():
            return False

        start = time.perf_counter()
        with self._admin_lock:
            self._open = False
            if not self._ensure_domain(name):
                return False
            self.name = name
            if not self._create_root(name):
                return False
            if not self._ensure_bucket():
                return False
            if not self._create_folders():
                return False

        opened = self._wait_until_open(name)
        log_timing(logger, f"Initialized database {name}", time.perf_counter() - start)
        return opened

    def _ensure_domain(self, name: str) -> bool:
        if name in self._domains:
            return True
        try:
            self.attribute_store.create_domain(name)
        except CloudDocError as e:
            logger.error(f"Cannot create domain '{name}': {e}")
            return False
        self._domains.add(name)
        return True

    def _create_root(self, name: str) -> bool:
        root = Document(self, ROOT_DOCUMENT)
        root[ROOT_ATTRIBUTE] = name
        try:
            root.save()
        except CloudDocError as e:
            logger.error(f"Cannot create root document for domain '{name}': {e}")
            return False
        self.root = root
        return True

    def _ensure_bucket(self) -> bool:
        bucket = self.bucket_name
        if bucket in self._buckets:
            return True
        try:
            self.blob_store.create_bucket(bucket)
        except CloudDocError as e:
            logger.error(f"Cannot create bucket '{bucket}': {e}")
            return False
        self._buckets.add(bucket)
        return True

    def _create_folders(self) -> bool:
        bucket = self.bucket_name
        for folder in MARKER_FOLDERS:
            try:
                self.blob_store.create_folder(bucket, folder)
            except CloudDocError as e:
                logger.error(f"Cannot create folder {folder} in bucket '{bucket}': {e}")
                return False
        return True

    def _wait_until_open(self, name: str) -> bool:
        """Retry open() until the new root document is readable or the timeout passes."""
        store_config = self.config.store
        deadline = time.monotonic() + store_config.propagation_timeout_sec
        attempt = 1
        while True:
            if self.open(name):
                return True
            if time.monotonic() >= deadline:
                logger.error(
                    f"Database {name} not visible after {store_config.propagation_timeout_sec}s"
                )
                return False
            logger.warning(
                f"Database {name} not visible yet (attempt {attempt}). "
                f"Retrying in {store_config.propagation_poll_sec}s..."
            )
            attempt += 1
            self._sleep(store_config.propagation_poll_sec)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if not self._open:
            raise DatabaseNotOpenError(self.name or None)

    def create_document(self, name: str) -> Document:
        """
        Create an empty, unsaved document.

        Raises:
            DatabaseNotOpenError: database is not open
            ValidationError: empty or reserved name
        """
        self._require_open()
        if not name:
            raise ValidationError("Document name must not be empty", field_name="document_name")
        if name == ROOT_DOCUMENT:
            raise ValidationError(
                f"'{ROOT_DOCUMENT}' is reserved", field_name="document_name", field_value=name
            )
        return Document(self, name)

    def get_document(self, name: str, preload: bool = False) -> Optional[Document]:
        """
        Load a document.

        Args:
            name: Document name
            preload: Fetch externalized payloads now

        Returns:
            The document, or None if it does not exist or cannot be loaded
        """
        self._require_open()
        if not name or name == ROOT_DOCUMENT:
            return None

        document = Document(self, name)
        try:
            document.load(preload)
        except CloudDocError as e:
            logger.error(f"Cannot load document '{name}' from {self.name}: {e}")
            return None

        if len(document) == 0:
            return None
        return document

    def __getitem__(self, name: str) -> Optional[Document]:
        return self.get_document(name)

    def search(self, where: Optional[Any] = None, limit: Optional[int] = None) -> List[Document]:
        """
        Query documents.

        Args:
            where: Filter passed unchanged to the attribute store
                (a SimpleDB where-clause for the AWS store)
            limit: Maximum number of documents to return

        Returns:
            Matching documents with inline values loaded; empty on failure

        Raises:
            ValidationError: limit is not a positive number
        """
        self._require_open()
        if limit is not None and limit < 1:
            raise ValidationError(
                "Search limit must be positive", field_name="limit", field_value=limit, expected=">= 1"
            )
        # One extra row in case the root document is among the results
        fetch_limit = limit + 1 if limit is not None else None
        try:
            records = self.attribute_store.select(self.name, where, fetch_limit)
        except CloudDocError as e:
            logger.error(f"Cannot query documents in {self.name}: {e}")
            return []

        documents = []
        for record_name, pairs in records:
            if record_name == ROOT_DOCUMENT:
                continue
            document = Document(self, record_name)
            try:
                document.replace_items(pairs)
            except DecodeError as e:
                logger.error(f"Skipping malformed document '{record_name}': {e}")
                continue
            documents.append(document)
        return documents[:limit] if limit is not None else documents

    def load_all(self) -> List[Document]:
        """Every document of the database."""
        return self.search()

    def get_all_documents(self) -> List[str]:
        """Names of every document of the database."""
        self._require_open()
        try:
            records = self.attribute_store.select(self.name)
        except CloudDocError as e:
            logger.error(f"Cannot list documents in {self.name}: {e}")
            return []
        return [record_name for record_name, _ in records if record_name != ROOT_DOCUMENT]

    def delete_document(self, name: str) -> bool:
        """
        Permanently delete a document and its blobs.

        Returns:
            True if the document existed and was deleted
        """
        document = self.get_document(name)
        if document is None:
            logger.warning(f"Document '{name}' not found in {self.name}")
            return False
        try:
            document.remove()
        except CloudDocError as e:
            logger.error(f"Cannot delete document '{name}' from {self.name}: {e}")
            return False
        return True

    def list_blobs(self) -> List[str]:
        """Keys of every object in the database bucket."""
        self._require_open()
        try:
            return list(self.blob_store.list_objects(self.bucket_name))
        except CloudDocError as e:
            logger.error(f"Cannot list objects of bucket '{self.bucket_name}': {e}")
            return []

    # ------------------------------------------------------------------
    # Drop
    # ------------------------------------------------------------------

    def remove(self) -> bool:
        """
        Irreversibly delete the bucket (all object versions) and the domain.

        The domain is kept if the bucket cannot be deleted, so the database
        can still be opened and the removal retried.

        Returns:
            True if both were deleted
        """
        if not self.name:
            logger.error("Empty database name")
            return False
        if not self._connected and not self.connect():
            return False

        with self._admin_lock:
            bucket = self.bucket_name
            try:
                self.blob_store.delete_bucket(bucket)
            except CloudDocError as e:
                logger.error(f"Cannot delete bucket '{bucket}': {e}")
                return False
            self._buckets.discard(bucket)

            try:
                self.attribute_store.delete_domain(self.name)
            except CloudDocError as e:
                logger.error(f"Cannot delete domain '{self.name}': {e}")
                return False
            self._domains.discard(self.name)

            self.root = None
            self._open = False
            logger.info(f"Database {self.name} removed")
            return True

    def __repr__(self) -> str:
        state = "open" if self._open else ("connected" if self._connected else "closed")
        return f"Database(name='{self.name}', {state})"
