import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from clouddoc.config import AWSConfig
from clouddoc.exceptions import BlobNotFoundError, StoreError
from clouddoc.persistence import (
    InMemoryAttributeStore,
    InMemoryBlobStore,
    S3BlobStore,
    SimpleDBAttributeStore,
)
from clouddoc.utils import aws


def client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestSimpleDBAttributeStore:
    def test_get_attributes_uses_consistent_read(self):
        client = MagicMock()
        client.get_attributes.return_value = {
            "Attributes": [{"Name": "n", "Value": "!@INT:1"}, {"Name": "s", "Value": "x"}]
        }
        store = SimpleDBAttributeStore(client)

        assert store.get_attributes("foo", "d1") == [("n", "!@INT:1"), ("s", "x")]
        client.get_attributes.assert_called_once_with(
            DomainName="foo", ItemName="d1", ConsistentRead=True
        )

    def test_get_attributes_of_missing_record(self):
        client = MagicMock()
        client.get_attributes.return_value = {}
        assert SimpleDBAttributeStore(client, consistent_read=False).get_attributes("foo", "x") == []

    def test_put_attributes_chunks_at_256(self):
        client = MagicMock()
        pairs = [(f"a{i}", str(i)) for i in range(300)]

        SimpleDBAttributeStore(client).put_attributes("foo", "d1", pairs)

        calls = client.put_attributes.call_args_list
        assert [len(c.kwargs["Attributes"]) for c in calls] == [256, 44]
        assert calls[0].kwargs["Attributes"][0] == {"Name": "a0", "Value": "0", "Replace": True}
        assert calls[1].kwargs["ItemName"] == "d1"

    def test_list_domains_follows_next_token(self):
        client = MagicMock()
        client.list_domains.side_effect = [
            {"DomainNames": ["a", "b"], "NextToken": "t1"},
            {"DomainNames": ["c"]},
        ]

        assert SimpleDBAttributeStore(client).list_domains() == ["a", "b", "c"]
        assert client.list_domains.call_args_list[1].kwargs == {"NextToken": "t1"}

    def test_select_expression_and_paging(self):
        client = MagicMock()
        client.select.side_effect = [
            {"Items": [{"Name": "d1", "Attributes": [{"Name": "n", "Value": "1"}]}], "NextToken": "t"},
            {"Items": [{"Name": "d2", "Attributes": []}]},
        ]

        records = SimpleDBAttributeStore(client).select("foo", "n > '0'", limit=5)

        assert records == [("d1", [("n", "1")]), ("d2", [])]
        first, second = client.select.call_args_list
        assert first.kwargs == {
            "SelectExpression": "select * from `foo` where n > '0' limit 5",
            "ConsistentRead": True,
        }
        assert second.kwargs["NextToken"] == "t"

    def test_select_stops_at_limit(self):
        client = MagicMock()
        client.select.return_value = {
            "Items": [{"Name": f"d{i}", "Attributes": []} for i in range(3)],
            "NextToken": "more",
        }

        records = SimpleDBAttributeStore(client).select("foo", limit=2)

        assert [name for name, _ in records] == ["d0", "d1"]
        assert client.select.call_count == 1

    def test_client_error_becomes_store_error(self):
        client = MagicMock()
        client.create_domain.side_effect = client_error("AccessDenied", "CreateDomain")

        with pytest.raises(StoreError) as exc_info:
            SimpleDBAttributeStore(client).create_domain("foo")

        assert exc_info.value.details["operation"] == "create_domain"
        assert exc_info.value.recoverable is False

    def test_network_error_is_recoverable(self):
        client = MagicMock()
        client.delete_attributes.side_effect = EndpointConnectionError(endpoint_url="https://sdb")

        with pytest.raises(StoreError) as exc_info:
            SimpleDBAttributeStore(client).delete_attributes("foo", "d1")

        assert exc_info.value.recoverable is True


class TestS3BlobStore:
    def test_create_bucket_outside_us_east_1(self):
        client = MagicMock()
        S3BlobStore(client, region="eu-west-1").create_bucket("foo.clouddoc.db")

        client.create_bucket.assert_called_once_with(
            Bucket="foo.clouddoc.db",
            CreateBucketConfiguration={"LocationConstraint": "eu-west-1"},
        )

    def test_create_bucket_in_us_east_1(self):
        client = MagicMock()
        S3BlobStore(client).create_bucket("foo.clouddoc.db")
        client.create_bucket.assert_called_once_with(Bucket="foo.clouddoc.db")

    def test_put_and_get_object(self):
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO("Zoë".encode("utf-8"))}
        store = S3BlobStore(client)

        store.put_object("b", "data/body/d1", "Zoë", "text/plain")
        assert store.get_object("b", "data/body/d1") == "Zoë"

        client.put_object.assert_called_once_with(
            Bucket="b", Key="data/body/d1", Body="Zoë".encode("utf-8"), ContentType="text/plain"
        )

    def test_missing_object(self):
        client = MagicMock()
        client.get_object.side_effect = client_error("NoSuchKey", "GetObject")

        with pytest.raises(BlobNotFoundError) as exc_info:
            S3BlobStore(client).get_object("b", "data/body/d1")
        assert exc_info.value.details["key"] == "data/body/d1"

    def test_get_object_other_error(self):
        client = MagicMock()
        client.get_object.side_effect = client_error("SlowDown", "GetObject")

        with pytest.raises(StoreError) as exc_info:
            S3BlobStore(client).get_object("b", "k")
        assert not isinstance(exc_info.value, BlobNotFoundError)
        assert exc_info.value.recoverable

    def test_delete_bucket_removes_all_versions(self):
        client = MagicMock()
        pages = [
            {"Versions": [{"Key": f"k{i}", "VersionId": f"v{i}"} for i in range(1200)]},
            {"DeleteMarkers": [{"Key": "gone", "VersionId": "m1"}]},
        ]
        client.get_paginator.return_value.paginate.return_value = pages

        S3BlobStore(client).delete_bucket("b")

        client.get_paginator.assert_called_once_with("list_object_versions")
        batches = [c.kwargs["Delete"]["Objects"] for c in client.delete_objects.call_args_list]
        assert [len(batch) for batch in batches] == [1000, 201]
        assert batches[1][-1] == {"Key": "gone", "VersionId": "m1"}
        client.delete_bucket.assert_called_once_with(Bucket="b")

    def test_delete_empty_bucket(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [{}]

        S3BlobStore(client).delete_bucket("b")

        client.delete_objects.assert_not_called()
        client.delete_bucket.assert_called_once_with(Bucket="b")

    def test_list_objects(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "data/"}, {"Key": "data/a/d1"}]},
            {"Contents": [{"Key": "system/"}]},
        ]

        assert list(S3BlobStore(client).list_objects("b")) == ["data/", "data/a/d1", "system/"]
        client.get_paginator.assert_called_once_with("list_objects_v2")

    def test_create_folder(self):
        client = MagicMock()
        S3BlobStore(client).create_folder("b", "system")

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Key"] == "system/"
        assert kwargs["ServerSideEncryption"] == "AES256"


class TestMemoryStores:
    def test_select_rejects_query_strings(self):
        store = InMemoryAttributeStore()
        store.create_domain("foo")

        with pytest.raises(StoreError) as exc_info:
            store.select("foo", "n > '1'")
        assert exc_info.value.recoverable is False

    def test_missing_domain(self):
        with pytest.raises(StoreError):
            InMemoryAttributeStore().get_attributes("nope", "d1")

    def test_put_without_replace_keeps_existing(self):
        store = InMemoryAttributeStore()
        store.create_domain("foo")
        store.put_attributes("foo", "d1", [("n", "1")])
        store.put_attributes("foo", "d1", [("n", "2"), ("m", "3")], replace=False)

        assert dict(store.get_attributes("foo", "d1")) == {"n": "1", "m": "3"}

    def test_blob_store_records_writes(self):
        store = InMemoryBlobStore()
        store.create_bucket("b")
        store.put_object("b", "k", "body", "text/plain")
        store.get_object("b", "k")

        assert [op[0] for op in store.writes] == ["create_bucket", "put_object"]
        assert store.content_type("b", "k") == "text/plain"

    def test_missing_blob(self):
        store = InMemoryBlobStore()
        store.create_bucket("b")
        with pytest.raises(BlobNotFoundError):
            store.get_object("b", "missing")


class TestClientFactory:
    def test_passes_explicit_credentials(self, monkeypatch):
        created = {}

        def fake_client(service, **kwargs):
            created.update(kwargs, service=service)
            return MagicMock()

        monkeypatch.setattr(aws.boto3, "client", fake_client)
        config = AWSConfig(access_key_id="AKIA", secret_access_key="secret", session_token="",
                           region="eu-west-1")

        aws.get_client("sdb", config)

        assert created["service"] == "sdb"
        assert created["region_name"] == "eu-west-1"
        assert created["aws_access_key_id"] == "AKIA"
        assert "aws_session_token" not in created

    def test_default_credential_chain(self, monkeypatch):
        created = {}
        monkeypatch.setattr(aws.boto3, "client", lambda service, **kwargs: created.update(kwargs))
        config = AWSConfig(access_key_id="", secret_access_key="", session_token="")

        aws.get_client("s3", config)

        assert "aws_access_key_id" not in created
