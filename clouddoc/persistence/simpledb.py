"""
AWS SimpleDB attribute store.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ..logger import get_logger
from ..utils.aws import store_error
from .repository import AttributePair, AttributeStore

logger = get_logger(__name__)

# PutAttributes accepts at most 256 attributes per call
MAX_ATTRIBUTES_PER_PUT = 256

_BOTO_ERRORS = (BotoCoreError, ClientError)


def _pairs(attributes: list) -> List[AttributePair]:
    return [(a["Name"], a["Value"]) for a in attributes]


class SimpleDBAttributeStore(AttributeStore):
    """
    Attribute store backed by a boto3 ``sdb`` client.

    Filters passed to select() are SimpleDB where-clauses, e.g.
    ``"status = 'active'"``.
    """

    def __init__(self, client, consistent_read: bool = True):
        self.client = client
        self.consistent_read = consistent_read

    def list_domains(self) -> List[str]:
        domains: List[str] = []
        kwargs = {}
        try:
            while True:
                response = self.client.list_domains(**kwargs)
                domains.extend(response.get("DomainNames", []))
                token = response.get("NextToken")
                if not token:
                    return domains
                kwargs["NextToken"] = token
        except _BOTO_ERRORS as e:
            raise store_error(e, "sdb", "list_domains")

    def create_domain(self, domain: str) -> None:
        try:
            self.client.create_domain(DomainName=domain)
        except _BOTO_ERRORS as e:
            raise store_error(e, "sdb", "create_domain")
        logger.debug(f"Created SimpleDB domain {domain}")

    def delete_domain(self, domain: str) -> None:
        try:
            self.client.delete_domain(DomainName=domain)
        except _BOTO_ERRORS as e:
            raise store_error(e, "sdb", "delete_domain")
        logger.debug(f"Deleted SimpleDB domain {domain}")

    def get_attributes(self, domain: str, item: str) -> List[AttributePair]:
        try:
            response = self.client.get_attributes(
                DomainName=domain,
                ItemName=item,
                ConsistentRead=self.consistent_read,
            )
        except _BOTO_ERRORS as e:
            raise store_error(e, "sdb", "get_attributes")
        return _pairs(response.get("Attributes", []))

    def put_attributes(
        self,
        domain: str,
        item: str,
        pairs: Sequence[AttributePair],
        replace: bool = True,
    ) -> None:
        attributes = [{"Name": name, "Value": value, "Replace": replace} for name, value in pairs]
        try:
            for start in range(0, len(attributes), MAX_ATTRIBUTES_PER_PUT):
                self.client.put_attributes(
                    DomainName=domain,
                    ItemName=item,
                    Attributes=attributes[start:start + MAX_ATTRIBUTES_PER_PUT],
                )
        except _BOTO_ERRORS as e:
            raise store_error(e, "sdb", "put_attributes")

    def delete_attributes(self, domain: str, item: str) -> None:
        try:
            self.client.delete_attributes(DomainName=domain, ItemName=item)
        except _BOTO_ERRORS as e:
            raise store_error(e, "sdb", "delete_attributes")

    def select(
        self,
        domain: str,
        where: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, List[AttributePair]]]:
        expression = f"select * from `{domain}`"
        if where:
            expression += f" where {where}"
        if limit:
            expression += f" limit {int(limit)}"

        results: List[Tuple[str, List[AttributePair]]] = []
        kwargs = {"SelectExpression": expression, "ConsistentRead": self.consistent_read}
        try:
            while True:
                response = self.client.select(**kwargs)
                for record in response.get("Items", []):
                    results.append((record["Name"], _pairs(record.get("Attributes", []))))
                token = response.get("NextToken")
                if not token or (limit and len(results) >= limit):
                    break
                kwargs["NextToken"] = token
        except _BOTO_ERRORS as e:
            raise store_error(e, "sdb", "select")

        logger.debug(f"{expression} -> {len(results)} records")
        return results[:limit] if limit else results
