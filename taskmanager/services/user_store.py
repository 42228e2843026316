import logging
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class StoreConfigurationError(StoreError):
    """The store client cannot be built, e.g. no region is configured."""


class UserStore(Protocol):
    """Key-value storage for user records keyed by ``userId``."""

    async def get_item(self, user_id: str) -> dict[str, Any] | None: ...

    async def put_item_if_absent(self, item: dict[str, Any]) -> bool:
        """Write ``item`` unless a record with its ``userId`` exists. Returns False if one did."""
        ...

    async def update_item(self, user_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        """Merge ``fields`` into an existing record. Returns None if there is none."""
        ...


class DynamoDBUserStore:
    def __init__(
        self,
        table_name: str,
        region: str | None,
        endpoint_url: str | None = None,
    ):
        self.table_name = table_name
        self.region = region
        self.endpoint_url = endpoint_url
        self._table: Any | None = None

    def table(self) -> Any:
        # Built on first use so a misconfigured region only fails the calls that need it.
        if self._table is None:
            if not self.region:
                raise StoreConfigurationError("AWS_REGION environment variable is required")
            resource = boto3.resource(
                "dynamodb",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
            )
            self._table = resource.Table(self.table_name)
        return self._table

    async def get_item(self, user_id: str) -> dict[str, Any] | None:
        table = self.table()
        try:
            result = await run_in_threadpool(table.get_item, Key={"userId": user_id})
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"get_item failed: {e}") from e
        return result.get("Item")

    async def put_item_if_absent(self, item: dict[str, Any]) -> bool:
        table = self.table()
        try:
            await run_in_threadpool(
                table.put_item,
                Item=item,
                ConditionExpression="attribute_not_exists(userId)",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return False
            raise StoreError(f"put_item failed: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"put_item failed: {e}") from e
        return True

    async def update_item(self, user_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        # Every attribute goes through a placeholder; "name" is a reserved word.
        names = {f"#{field}": field for field in fields}
        values = {f":{field}": value for field, value in fields.items()}
        assignments = ", ".join(f"#{field} = :{field}" for field in fields)

        table = self.table()
        try:
            result = await run_in_threadpool(
                table.update_item,
                Key={"userId": user_id},
                UpdateExpression=f"SET {assignments}",
                ConditionExpression="attribute_exists(userId)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return None
            raise StoreError(f"update_item failed: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"update_item failed: {e}") from e
        return result.get("Attributes")

