"""
In-memory store implementations.

Behave like the AWS stores (including failures for missing domains and
buckets) without any network access. Every call is appended to
``operations`` so callers can check exactly what reached the store.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..exceptions import BlobNotFoundError, StoreError
from .repository import AttributePair, AttributeStore, BlobStore

WRITE_OPERATIONS = {
    "create_domain", "delete_domain", "put_attributes", "delete_attributes",
    "create_bucket", "delete_bucket", "put_object", "delete_object",
}


class _Recorder:
    def __init__(self):
        self.operations: List[Tuple[Any, ...]] = []

    def _record(self, *call: Any) -> None:
        self.operations.append(call)

    @property
    def writes(self) -> List[Tuple[Any, ...]]:
        """Recorded calls that mutate the store."""
        return [op for op in self.operations if op[0] in WRITE_OPERATIONS]

    def clear_operations(self) -> None:
        self.operations.clear()


class InMemoryAttributeStore(_Recorder, AttributeStore):
    """
    Dict-backed attribute store.

    ``select`` accepts a predicate called with each record's attributes as
    a dict; query strings are not supported.
    """

    def __init__(self):
        super().__init__()
        self.domains: Dict[str, Dict[str, Dict[str, str]]] = {}

    def _domain(self, domain: str, operation: str) -> Dict[str, Dict[str, str]]:
        if domain not in self.domains:
            raise StoreError(f"No such domain: {domain}", service="sdb", operation=operation)
        return self.domains[domain]

    def list_domains(self) -> List[str]:
        self._record("list_domains")
        return sorted(self.domains)

    def create_domain(self, domain: str) -> None:
        self._record("create_domain", domain)
        self.domains.setdefault(domain, {})

    def delete_domain(self, domain: str) -> None:
        self._record("delete_domain", domain)
        self.domains.pop(domain, None)

    def get_attributes(self, domain: str, item: str) -> List[AttributePair]:
        self._record("get_attributes", domain, item)
        return list(self._domain(domain, "get_attributes").get(item, {}).items())

    def put_attributes(
        self,
        domain: str,
        item: str,
        pairs: Sequence[AttributePair],
        replace: bool = True,
    ) -> None:
        self._record("put_attributes", domain, item, list(pairs))
        record = self._domain(domain, "put_attributes").setdefault(item, {})
        for name, value in pairs:
            if replace or name not in record:
                record[name] = value

    def delete_attributes(self, domain: str, item: str) -> None:
        self._record("delete_attributes", domain, item)
        self._domain(domain, "delete_attributes").pop(item, None)

    def select(
        self,
        domain: str,
        where: Optional[Callable[[Dict[str, str]], bool]] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, List[AttributePair]]]:
        self._record("select", domain, where, limit)
        if where is not None and not callable(where):
            raise StoreError(
                "In-memory select only supports predicate filters",
                service="sdb",
                operation="select",
                recoverable=False,
            )
        results = []
        for name, record in self._domain(domain, "select").items():
            if where is not None and not where(dict(record)):
                continue
            results.append((name, list(record.items())))
            if limit is not None and len(results) >= limit:
                break
        return results


class InMemoryBlobStore(_Recorder, BlobStore):
    """Dict-backed blob store keeping the content type next to each body."""

    def __init__(self):
        super().__init__()
        self.buckets: Dict[str, Dict[str, Tuple[str, str]]] = {}

    def _bucket(self, bucket: str, operation: str) -> Dict[str, Tuple[str, str]]:
        if bucket not in self.buckets:
            raise StoreError(f"No such bucket: {bucket}", service="s3", operation=operation)
        return self.buckets[bucket]

    def list_buckets(self) -> List[str]:
        self._record("list_buckets")
        return sorted(self.buckets)

    def create_bucket(self, bucket: str) -> None:
        self._record("create_bucket", bucket)
        self.buckets.setdefault(bucket, {})

    def delete_bucket(self, bucket: str) -> None:
        self._record("delete_bucket", bucket)
        self._bucket(bucket, "delete_bucket")
        del self.buckets[bucket]

    def put_object(self, bucket: str, key: str, body: str, content_type: str) -> None:
        self._record("put_object", bucket, key, content_type)
        self._bucket(bucket, "put_object")[key] = (body, content_type)

    def get_object(self, bucket: str, key: str) -> str:
        self._record("get_object", bucket, key)
        objects = self._bucket(bucket, "get_object")
        if key not in objects:
            raise BlobNotFoundError(bucket, key)
        return objects[key][0]

    def content_type(self, bucket: str, key: str) -> str:
        """Content type an object was stored with."""
        return self.buckets[bucket][key][1]

    def delete_object(self, bucket: str, key: str) -> None:
        self._record("delete_object", bucket, key)
        self._bucket(bucket, "delete_object").pop(key, None)

    def list_objects(self, bucket: str) -> Iterator[str]:
        self._record("list_objects", bucket)
        yield from sorted(self._bucket(bucket, "list_objects"))
