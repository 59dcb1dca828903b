from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from boto3.dynamodb.types import TypeSerializer

from .client import dynamodb_client, table_resource
from .errors import DdbInternal, DdbNotFound
from .pagination import decode_next_token, encode_next_token
from .retry import RetryPolicy, ddb_call


_serializer = TypeSerializer()


def _serialize_map(values: dict[str, Any]) -> dict[str, Any]:
    # The low-level client wants AttributeValue shapes ({"S": ...}, {"N": ...}).
    return {k: _serializer.serialize(v) for k, v in values.items()}


def _with_expression_args(
    out: dict[str, Any],
    *,
    condition_expression: str | None,
    expression_attribute_names: dict[str, str] | None,
    expression_attribute_values: dict[str, Any] | None,
    serialize: bool,
) -> dict[str, Any]:
    if condition_expression:
        out["ConditionExpression"] = condition_expression
    if expression_attribute_names:
        out["ExpressionAttributeNames"] = expression_attribute_names
    if expression_attribute_values:
        out["ExpressionAttributeValues"] = (
            _serialize_map(expression_attribute_values) if serialize else expression_attribute_values
        )
    return out


@dataclass(slots=True)
class Page:
    items: list[dict[str, Any]]
    next_token: str | None


class DynamoTable:
    def __init__(self, *, table_name: str):
        self.table_name = str(table_name)
        self._table = table_resource(self.table_name)
        self._client = dynamodb_client()

    # --- single-item operations ---

    def get_item(self, *, key: dict[str, Any], consistent: bool = True) -> dict[str, Any] | None:
        def _op():
            return self._table.get_item(Key=key, ConsistentRead=bool(consistent)).get("Item")

        return ddb_call("GetItem", _op, table_name=self.table_name, key=key)

    def get_required(self, *, key: dict[str, Any], message: str = "Item not found") -> dict[str, Any]:
        item = self.get_item(key=key)
        if not item:
            raise DdbNotFound(message=message, operation="GetItem", table_name=self.table_name, key=key)
        return item

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        kwargs = _with_expression_args(
            {"Item": item},
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
            serialize=False,
        )
        return ddb_call("PutItem", lambda: self._table.put_item(**kwargs), table_name=self.table_name)

    def update_item(
        self,
        *,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
        condition_expression: str | None = None,
        return_values: str = "ALL_NEW",
    ) -> dict[str, Any] | None:
        kwargs = _with_expression_args(
            {"Key": key, "UpdateExpression": update_expression, "ReturnValues": return_values},
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
            serialize=False,
        )

        def _op():
            return self._table.update_item(**kwargs).get("Attributes")

        return ddb_call("UpdateItem", _op, table_name=self.table_name, key=key)

    # --- queries ---

    def _query_kwargs(
        self,
        *,
        key_condition_expression: Any,
        index_name: str | None,
        limit: int | None,
        scan_index_forward: bool,
        filter_expression: Any | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": key_condition_expression,
            "ScanIndexForward": bool(scan_index_forward),
        }
        if limit:
            kwargs["Limit"] = int(limit)
        if index_name:
            kwargs["IndexName"] = index_name
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression
        return kwargs

    def query_page(
        self,
        *,
        key_condition_expression: Any,
        index_name: str | None = None,
        limit: int = 50,
        scan_index_forward: bool = False,
        filter_expression: Any | None = None,
        next_token: str | None = None,
        token_scope: str | None = None,
    ) -> Page:
        """
        One page of a query. `token_scope` names the partition being read so a
        cursor issued for one partition is refused on another.
        """
        kwargs = self._query_kwargs(
            key_condition_expression=key_condition_expression,
            index_name=index_name,
            limit=max(1, min(500, int(limit or 50))),
            scan_index_forward=scan_index_forward,
            filter_expression=filter_expression,
        )
        lek = decode_next_token(next_token, scope=token_scope) if next_token else None
        if lek:
            kwargs["ExclusiveStartKey"] = lek

        resp = ddb_call("Query", lambda: self._table.query(**kwargs), table_name=self.table_name)
        return Page(
            items=resp.get("Items") or [],
            next_token=encode_next_token(resp.get("LastEvaluatedKey"), scope=token_scope),
        )

    def query_all(
        self,
        *,
        key_condition_expression: Any,
        index_name: str | None = None,
        scan_index_forward: bool = False,
        filter_expression: Any | None = None,
        max_items: int = 5000,
    ) -> list[dict[str, Any]]:
        """
        Drain a query across pages. For bounded partitions only (a team's members,
        a company's opportunities); capped at max_items.
        """
        kwargs = self._query_kwargs(
            key_condition_expression=key_condition_expression,
            index_name=index_name,
            limit=None,
            scan_index_forward=scan_index_forward,
            filter_expression=filter_expression,
        )
        out: list[dict[str, Any]] = []
        while True:
            resp = ddb_call("Query", lambda: self._table.query(**kwargs), table_name=self.table_name)
            out.extend(resp.get("Items") or [])
            lek = resp.get("LastEvaluatedKey")
            if not lek or len(out) >= max_items:
                return out[:max_items]
            kwargs["ExclusiveStartKey"] = lek

    # --- transactions ---

    def transact_write(
        self,
        *,
        puts: Iterable[dict[str, Any]] = (),
        deletes: Iterable[dict[str, Any]] = (),
        updates: Iterable[dict[str, Any]] = (),
        condition_checks: Iterable[dict[str, Any]] = (),
        retry_policy: RetryPolicy | None = None,
    ) -> dict[str, Any]:
        """
        All-or-nothing write. Items are sent in the order puts, deletes, updates,
        condition checks; DdbError.cancellation_reasons follows the same order.
        """
        items: list[dict[str, Any]] = []
        items.extend({"Put": p} for p in puts)
        items.extend({"Delete": d} for d in deletes)
        items.extend({"Update": u} for u in updates)
        items.extend({"ConditionCheck": c} for c in condition_checks)
        if not items:
            return {"ok": True}

        return ddb_call(
            "TransactWriteItems",
            lambda: self._client.transact_write_items(TransactItems=items),
            table_name=self.table_name,
            retry_policy=retry_policy or RetryPolicy(max_attempts=8, base_delay_s=0.08, max_delay_s=2.0),
        )

    # Builders for transact items (client shape).

    def tx_put(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return _with_expression_args(
            {"TableName": self.table_name, "Item": _serialize_map(item)},
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
            serialize=True,
        )

    def tx_delete(
        self,
        *,
        key: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return _with_expression_args(
            {"TableName": self.table_name, "Key": _serialize_map(key)},
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
            serialize=True,
        )

    def tx_update(
        self,
        *,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        return _with_expression_args(
            {
                "TableName": self.table_name,
                "Key": _serialize_map(key),
                "UpdateExpression": update_expression,
            },
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
            serialize=True,
        )

    def tx_condition_check(
        self,
        *,
        key: dict[str, Any],
        condition_expression: str,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return _with_expression_args(
            {"TableName": self.table_name, "Key": _serialize_map(key)},
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
            serialize=True,
        )


def get_main_table() -> DynamoTable:
    from ...settings import settings

    if not settings.ddb_table_name:
        raise DdbInternal(message="DDB_TABLE_NAME is not set", operation="Config")
    return DynamoTable(table_name=settings.ddb_table_name)
