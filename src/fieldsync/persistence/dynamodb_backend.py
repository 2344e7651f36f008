"""DynamoDB document store implementing IDocumentStore.

Single table, PK = COLLECTION#<collection>, SK = DOC#<child key>, with the
child's subtree held in the `body` map attribute. DynamoDB has no push channel
here: writes made through this store fan out immediately, and `poll` re-reads
every subscribed path to pick up writes made elsewhere.
"""

from __future__ import annotations

import copy
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from fieldsync.core.exceptions import StoreError, WriteError
from fieldsync.core.types import ErrorCallback, SnapshotCallback, Unsubscribe
from fieldsync.persistence.documents import (
    SubscriptionRegistry,
    get_in,
    set_in,
    split_path,
    to_plain,
)

_PK_PREFIX = "COLLECTION#"
_SK_PREFIX = "DOC#"
_REVISION = "rev"
_MAX_ATTEMPTS = 5


def _to_dynamodb(obj: Any) -> Any:
    """Convert JSON floats/ints to Decimal for DynamoDB."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, (int, float)):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_dynamodb(i) for i in obj]
    return obj


def _from_dynamodb(obj: Any) -> Any:
    """Convert Decimal values in a DynamoDB item back to int/float."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _from_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_from_dynamodb(i) for i in obj]
    return obj


class DynamoDBDocumentStore:
    """Production IDocumentStore backed by a single DynamoDB table."""

    def __init__(self, table_name: str = "fieldsync-documents", table_suffix: str = "",
                 region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._table_name = f"{table_name}{table_suffix}"
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)
        self._table = self._ddb.Table(self._table_name)
        self._subs = SubscriptionRegistry(self._read)

    # ---- low-level item access ----

    def _query_collection(self, collection: str) -> dict[str, Any]:
        """Query every child document of a collection, following pagination."""
        docs: dict[str, Any] = {}
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": "PK = :pk",
            "ExpressionAttributeValues": {":pk": f"{_PK_PREFIX}{collection}"},
        }
        while True:
            resp = self._table.query(**kwargs)
            for item in resp.get("Items", []):
                docs[item["SK"][len(_SK_PREFIX):]] = _from_dynamodb(item.get("body"))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return docs
            kwargs["ExclusiveStartKey"] = last_key

    def _item_key(self, collection: str, child: str) -> dict[str, str]:
        return {"PK": f"{_PK_PREFIX}{collection}", "SK": f"{_SK_PREFIX}{child}"}

    def _get_item(self, collection: str, child: str) -> dict[str, Any] | None:
        resp = self._table.get_item(Key=self._item_key(collection, child), ConsistentRead=True)
        return resp.get("Item")

    def _get_child(self, collection: str, child: str) -> Any | None:
        item = self._get_item(collection, child)
        return _from_dynamodb(item.get("body")) if item else None

    def _write_child(self, path: str, collection: str, child: str,
                     changes: list[tuple[list[str], Any]]) -> None:
        """Apply all changes to one child item with a single conditional write.

        The write is guarded by the item's revision, so a concurrent writer makes
        it fail and the whole read-modify-write is retried on fresh data.
        """
        key = self._item_key(collection, child)
        for _ in range(_MAX_ATTEMPTS):
            item = self._get_item(collection, child)
            doc = _from_dynamodb(item.get("body")) if item else None
            for rel, value in changes:
                if not rel:
                    doc = copy.deepcopy(value)
                    continue
                if not isinstance(doc, dict):
                    doc = {}
                set_in(doc, rel, copy.deepcopy(value))
            if isinstance(doc, dict) and not doc:
                doc = None

            revision = int(item.get(_REVISION, 0)) if item else 0
            if item is None:
                guard: dict[str, Any] = {"ConditionExpression": "attribute_not_exists(PK)"}
            elif _REVISION in item:
                guard = {
                    "ConditionExpression": "#rev = :rev",
                    "ExpressionAttributeNames": {"#rev": _REVISION},
                    "ExpressionAttributeValues": {":rev": revision},
                }
            else:
                guard = {
                    "ConditionExpression": "attribute_exists(PK) AND attribute_not_exists(#rev)",
                    "ExpressionAttributeNames": {"#rev": _REVISION},
                }
            try:
                if doc is None:
                    if item is not None:
                        self._table.delete_item(Key=key, **guard)
                else:
                    self._table.put_item(
                        Item={**key, "body": _to_dynamodb(doc), _REVISION: revision + 1}, **guard
                    )
                return
            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                    raise
                logger.debug(f"Concurrent write on {path!r}, retrying")
        raise WriteError(path, f"document changed concurrently {_MAX_ATTEMPTS} times")

    def _replace_collection(self, path: str, collection: str, value: Any) -> None:
        if value is not None and not isinstance(value, dict):
            raise WriteError(path, "a collection must be a mapping")
        existing = self._query_collection(collection)
        with self._table.batch_writer() as batch:
            for child in existing:
                if not value or child not in value:
                    batch.delete_item(Key=self._item_key(collection, child))
            for child, body in (value or {}).items():
                batch.put_item(Item={**self._item_key(collection, child), "body": _to_dynamodb(body)})

    # ---- IDocumentStore ----

    def _read(self, path: str) -> Any | None:
        parts = split_path(path)
        if not parts:
            raise StoreError("Reading the store root is not supported")
        try:
            if len(parts) == 1:
                return self._query_collection(parts[0]) or None
            doc = self._get_child(parts[0], parts[1])
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB read failed for path={path!r}: {exc}") from exc
        return get_in(doc, parts[2:]) if len(parts) > 2 else doc

    def get(self, path: str) -> Any | None:
        return self._read(path)

    def set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        if not parts:
            raise WriteError(path, "refusing to replace the store root")
        try:
            if len(parts) == 1:
                self._replace_collection(path, parts[0], to_plain(value))
            else:
                self._write_child(path, parts[0], parts[1], [(parts[2:], to_plain(value))])
        except (ClientError, BotoCoreError) as exc:
            raise WriteError(path, str(exc)) from exc
        self._subs.notify(path)

    def update(self, path: str, partial: dict[str, Any]) -> None:
        """Merge `partial` into the document at path.

        Keys landing in the same child item are written together or not at all.
        """
        parts = split_path(path)
        if not parts:
            raise WriteError(path, "refusing to update the store root")
        by_child: dict[str, list[tuple[list[str], Any]]] = {}
        for name, value in partial.items():
            rel = parts[1:] + split_path(name)
            if not rel:
                raise WriteError(path, f"invalid update key {name!r}")
            by_child.setdefault(rel[0], []).append((rel[1:], to_plain(value)))
        try:
            for child, changes in by_child.items():
                self._write_child(path, parts[0], child, changes)
        except (ClientError, BotoCoreError) as exc:
            raise WriteError(path, str(exc)) from exc
        if by_child:
            self._subs.notify(path)

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None
    ) -> Unsubscribe:
        return self._subs.add(path, on_snapshot, on_error)

    def poll(self) -> int:
        """Re-read every subscription; deliver only those whose value changed."""
        return self._subs.refresh(only_changed=True)

    def close(self) -> None:
        self._subs.clear()
