"""Base repository class for DynamoDB operations."""

from typing import Any, Generic, TypeVar

import boto3
import structlog
from botocore.exceptions import ClientError

from conteo.config import get_settings
from conteo.models.base import BaseModel
from conteo.utils.exceptions import PersistenceError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """Base repository for DynamoDB single-table design.

    Store failures are logged and surfaced as PersistenceError; nothing is
    retried here.
    """

    def __init__(
        self,
        model_class: type[T],
        table_name: str | None = None,
    ):
        """Initialize repository.

        Args:
            model_class: The Pydantic model class for this repository.
            table_name: DynamoDB table name. Defaults to the TABLE_NAME setting.
        """
        self.model_class = model_class
        self.table_name = table_name or get_settings().table_name
        self._dynamodb = None
        self._table = None

    @property
    def dynamodb(self):
        """Get DynamoDB resource (lazy initialization)."""
        if self._dynamodb is None:
            self._dynamodb = boto3.resource("dynamodb")
        return self._dynamodb

    @property
    def table(self):
        """Get DynamoDB table (lazy initialization)."""
        if self._table is None:
            self._table = self.dynamodb.Table(self.table_name)
        return self._table

    def _build_key(self, pk: str, sk: str) -> dict[str, str]:
        """Build key dictionary for DynamoDB operations."""
        return {"PK": pk, "SK": sk}

    def get(self, pk: str, sk: str) -> T | None:
        """Get an item by its primary key.

        Args:
            pk: Partition key value.
            sk: Sort key value.

        Returns:
            Model instance or None if not found.
        """
        try:
            response = self.table.get_item(Key=self._build_key(pk, sk))
        except ClientError as e:
            logger.error("DynamoDB get_item failed", error=str(e), pk=pk, sk=sk)
            raise PersistenceError("read item", original_error=str(e)) from e

        item = response.get("Item")
        if not item:
            return None
        return self.model_class.from_dynamodb(item)

    def put(
        self,
        item: T,
        condition_expression: str | None = None,
        gsi_keys: dict[str, str] | None = None,
    ) -> T:
        """Put an item into DynamoDB.

        Args:
            item: Model instance to save.
            condition_expression: Optional condition expression.
            gsi_keys: Optional GSI key values to add.

        Returns:
            The saved model instance.
        """
        db_item = item.to_dynamodb()
        db_item.update(item.get_keys())
        if gsi_keys:
            db_item.update(gsi_keys)

        kwargs: dict[str, Any] = {"Item": db_item}
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression

        try:
            self.table.put_item(**kwargs)
        except ClientError as e:
            logger.exception(
                "DynamoDB put_item failed",
                error=str(e),
                model=self.model_class.__name__,
            )
            raise PersistenceError(
                f"save {self.model_class.__name__}", original_error=str(e)
            ) from e

        logger.debug(
            "Item saved",
            pk=db_item["PK"],
            sk=db_item["SK"],
            model=self.model_class.__name__,
        )
        return item

    def create(self, item: T, gsi_keys: dict[str, str] | None = None) -> T:
        """Create a new item (fails if an item with the same key exists).

        Args:
            item: Model instance to create.
            gsi_keys: Optional GSI key values.

        Returns:
            The created model instance.
        """
        return self.put(
            item,
            condition_expression="attribute_not_exists(PK)",
            gsi_keys=gsi_keys,
        )

    def update_fields(
        self,
        pk: str,
        sk: str,
        fields: dict[str, Any],
        if_missing: dict[str, Any] | None = None,
    ) -> T:
        """Atomically set attributes on an existing item.

        One UpdateItem call, so the change is atomic at the row level.
        ``fields`` overwrite; ``if_missing`` only fill attributes the item
        does not have yet. None values are skipped.

        Args:
            pk: Partition key value.
            sk: Sort key value.
            fields: Attributes to overwrite.
            if_missing: Attributes to set only when absent.

        Returns:
            The updated model instance.
        """
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        set_parts: list[str] = []

        def _placeholder(attr: str, value: Any) -> tuple[str, str]:
            index = len(names)
            names[f"#f{index}"] = attr
            values[f":v{index}"] = BaseModel._serialize_value(value)
            return f"#f{index}", f":v{index}"

        for attr, value in fields.items():
            if value is None:
                continue
            name, placeholder = _placeholder(attr, value)
            set_parts.append(f"{name} = {placeholder}")

        for attr, value in (if_missing or {}).items():
            if value is None:
                continue
            name, placeholder = _placeholder(attr, value)
            set_parts.append(f"{name} = if_not_exists({name}, {placeholder})")

        try:
            response = self.table.update_item(
                Key=self._build_key(pk, sk),
                UpdateExpression=f"SET {', '.join(set_parts)}",
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            logger.exception("DynamoDB update_item failed", error=str(e), pk=pk, sk=sk)
            raise PersistenceError(
                f"update {self.model_class.__name__}", original_error=str(e)
            ) from e

        return self.model_class.from_dynamodb(response["Attributes"])

    def query(
        self,
        pk: str,
        sk_begins_with: str | None = None,
        index_name: str | None = None,
        limit: int | None = None,
        scan_forward: bool = True,
    ) -> list[T]:
        """Query items by partition key.

        Follows LastEvaluatedKey until ``limit`` items are collected or the
        partition is exhausted.

        Args:
            pk: Partition key value.
            sk_begins_with: Sort key prefix for begins_with condition.
            index_name: Optional GSI name (GSI1 only).
            limit: Maximum items to return.
            scan_forward: Sort direction (True = ascending).

        Returns:
            List of model instances.
        """
        pk_attr, sk_attr = ("GSI1PK", "GSI1SK") if index_name == "GSI1" else ("PK", "SK")

        key_condition = f"{pk_attr} = :pk"
        expr_values: dict[str, Any] = {":pk": pk}
        if sk_begins_with:
            key_condition += f" AND begins_with({sk_attr}, :sk_prefix)"
            expr_values[":sk_prefix"] = sk_begins_with

        kwargs: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ExpressionAttributeValues": expr_values,
            "ScanIndexForward": scan_forward,
        }
        if index_name:
            kwargs["IndexName"] = index_name
        if limit:
            kwargs["Limit"] = limit

        items: list[T] = []
        try:
            while True:
                response = self.table.query(**kwargs)
                items.extend(
                    self.model_class.from_dynamodb(item) for item in response.get("Items", [])
                )
                last_key = response.get("LastEvaluatedKey")
                if not last_key or (limit and len(items) >= limit):
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error("DynamoDB query failed", error=str(e), pk=pk)
            raise PersistenceError("query items", original_error=str(e)) from e

        return items[:limit] if limit else items
