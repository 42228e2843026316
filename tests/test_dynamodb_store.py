import pytest
from botocore.stub import ANY, Stubber

from taskmanager.services.user_store import (
    DynamoDBUserStore,
    StoreConfigurationError,
    StoreError,
)

TABLE = "TaskManagerPro-Users"


@pytest.fixture
def store() -> DynamoDBUserStore:
    return DynamoDBUserStore(TABLE, region="us-east-1")


@pytest.fixture
def stubber(store: DynamoDBUserStore):
    with Stubber(store.table().meta.client) as stub:
        yield stub
        stub.assert_no_pending_responses()


class TestDynamoDBUserStore:
    """Tests for the DynamoDB-backed user store against a stubbed client."""

    def test_table_requires_region(self):
        with pytest.raises(StoreConfigurationError):
            DynamoDBUserStore(TABLE, region=None).table()

    def test_table_built_once(self, store: DynamoDBUserStore):
        assert store.table() is store.table()
        assert store.table().name == TABLE

    @pytest.mark.asyncio
    async def test_get_item(self, store: DynamoDBUserStore, stubber: Stubber):
        stubber.add_response(
            "get_item",
            {
                "Item": {
                    "userId": {"S": "u-1"},
                    "email": {"S": "a@example.com"},
                    "accountType": {"S": "individual"},
                }
            },
            {"TableName": TABLE, "Key": {"userId": "u-1"}},
        )

        item = await store.get_item("u-1")
        assert item == {"userId": "u-1", "email": "a@example.com", "accountType": "individual"}

    @pytest.mark.asyncio
    async def test_get_missing_item(self, store: DynamoDBUserStore, stubber: Stubber):
        stubber.add_response("get_item", {}, {"TableName": TABLE, "Key": {"userId": "u-1"}})
        assert await store.get_item("u-1") is None

    @pytest.mark.asyncio
    async def test_get_item_error(self, store: DynamoDBUserStore, stubber: Stubber):
        stubber.add_client_error("get_item", service_error_code="ResourceNotFoundException")
        with pytest.raises(StoreError):
            await store.get_item("u-1")

    @pytest.mark.asyncio
    async def test_put_item_if_absent(self, store: DynamoDBUserStore, stubber: Stubber):
        stubber.add_response(
            "put_item",
            {},
            {
                "TableName": TABLE,
                "Item": {"userId": "u-1", "email": "a@example.com"},
                "ConditionExpression": "attribute_not_exists(userId)",
            },
        )
        assert await store.put_item_if_absent({"userId": "u-1", "email": "a@example.com"})

    @pytest.mark.asyncio
    async def test_put_item_existing(self, store: DynamoDBUserStore, stubber: Stubber):
        """Test that a failed precondition reports the record as already present."""
        stubber.add_client_error(
            "put_item",
            service_error_code="ConditionalCheckFailedException",
            service_message="The conditional request failed",
            expected_params={
                "TableName": TABLE,
                "Item": ANY,
                "ConditionExpression": "attribute_not_exists(userId)",
            },
        )
        assert not await store.put_item_if_absent({"userId": "u-1", "email": "a@example.com"})

    @pytest.mark.asyncio
    async def test_put_item_error(self, store: DynamoDBUserStore, stubber: Stubber):
        stubber.add_client_error(
            "put_item", service_error_code="ProvisionedThroughputExceededException"
        )
        with pytest.raises(StoreError):
            await store.put_item_if_absent({"userId": "u-1", "email": "a@example.com"})

    @pytest.mark.asyncio
    async def test_update_item(self, store: DynamoDBUserStore, stubber: Stubber):
        stubber.add_response(
            "update_item",
            {
                "Attributes": {
                    "userId": {"S": "u-1"},
                    "email": {"S": "a@example.com"},
                    "name": {"S": "Ann"},
                    "updatedAt": {"S": "2026-01-01T00:00:00.000Z"},
                }
            },
            {
                "TableName": TABLE,
                "Key": {"userId": "u-1"},
                "UpdateExpression": "SET #name = :name, #updatedAt = :updatedAt",
                "ConditionExpression": "attribute_exists(userId)",
                "ExpressionAttributeNames": {"#name": "name", "#updatedAt": "updatedAt"},
                "ExpressionAttributeValues": {
                    ":name": "Ann",
                    ":updatedAt": "2026-01-01T00:00:00.000Z",
                },
                "ReturnValues": "ALL_NEW",
            },
        )

        item = await store.update_item(
            "u-1", {"name": "Ann", "updatedAt": "2026-01-01T00:00:00.000Z"}
        )
        assert item["name"] == "Ann"

    @pytest.mark.asyncio
    async def test_update_missing_item(self, store: DynamoDBUserStore, stubber: Stubber):
        stubber.add_client_error(
            "update_item",
            service_error_code="ConditionalCheckFailedException",
            service_message="The conditional request failed",
        )
        assert await store.update_item("u-1", {"updatedAt": "2026-01-01T00:00:00.000Z"}) is None
