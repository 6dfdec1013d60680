"""
Store interfaces.

Abstract contracts for the two backing services. Documents and the
Database only talk to these interfaces, so the AWS implementations can
be swapped for the in-memory ones.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterator, List, Optional, Sequence, Tuple

# (attribute name, wire value)
AttributePair = Tuple[str, str]


class AttributeStore(ABC):
    """
    Key/attribute store holding one record per document.

    Implementations raise StoreError for any failed remote call.
    """

    @abstractmethod
    def list_domains(self) -> List[str]:
        """List all domain names visible to the caller."""
        pass

    @abstractmethod
    def create_domain(self, domain: str) -> None:
        pass

    @abstractmethod
    def delete_domain(self, domain: str) -> None:
        pass

    @abstractmethod
    def get_attributes(self, domain: str, item: str) -> List[AttributePair]:
        """
        Read all attributes of a record.

        Returns:
            Attribute pairs, empty if the record does not exist
        """
        pass

    @abstractmethod
    def put_attributes(
        self,
        domain: str,
        item: str,
        pairs: Sequence[AttributePair],
        replace: bool = True,
    ) -> None:
        """
        Upsert attributes of a record.

        Args:
            domain: Domain name
            item: Record name
            pairs: Attribute pairs to write
            replace: Overwrite existing values instead of adding to them
        """
        pass

    @abstractmethod
    def delete_attributes(self, domain: str, item: str) -> None:
        """Delete a whole record."""
        pass

    @abstractmethod
    def select(
        self,
        domain: str,
        where: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, List[AttributePair]]]:
        """
        Query records of a domain.

        Args:
            domain: Domain name
            where: Filter understood by the implementation, None for all records
            limit: Maximum number of records to return

        Returns:
            (record name, attribute pairs) for each match
        """
        pass


class BlobStore(ABC):
    """
    Object store holding externalized payloads.

    Implementations raise StoreError for any failed remote call, and
    BlobNotFoundError when get_object finds no object.
    """

    @abstractmethod
    def list_buckets(self) -> List[str]:
        pass

    @abstractmethod
    def create_bucket(self, bucket: str) -> None:
        pass

    @abstractmethod
    def delete_bucket(self, bucket: str) -> None:
        """Delete every object version in the bucket, then the bucket itself."""
        pass

    @abstractmethod
    def put_object(self, bucket: str, key: str, body: str, content_type: str) -> None:
        pass

    @abstractmethod
    def get_object(self, bucket: str, key: str) -> str:
        pass

    @abstractmethod
    def delete_object(self, bucket: str, key: str) -> None:
        """Delete an object; deleting a missing key is not an error."""
        pass

    @abstractmethod
    def list_objects(self, bucket: str) -> Iterator[str]:
        """Iterate over every key in the bucket."""
        pass

    def create_folder(self, bucket: str, name: str) -> None:
        """Create a folder marker object ``<name>/``."""
        self.put_object(bucket, f"{name}/", name, "text/plain")
