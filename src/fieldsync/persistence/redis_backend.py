"""Redis document store implementing IDocumentStore.

Each top-level collection is a Redis hash: field = child key, value = JSON of
the child's subtree. Every write publishes the written path on a pub/sub
channel; `poll` drains that channel and re-delivers overlapping subscriptions.
"""

from __future__ import annotations

import json
from typing import Any

import redis
from loguru import logger

from fieldsync.core.exceptions import StoreError, WriteError
from fieldsync.core.types import ErrorCallback, SnapshotCallback, Unsubscribe
from fieldsync.persistence.documents import (
    SubscriptionRegistry,
    get_in,
    join_path,
    set_in,
    split_path,
    to_plain,
)


def _loads(raw: str, key: str) -> Any | None:
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning(f"Discarding undecodable document at {key!r}")
        return None


class RedisDocumentStore:
    """Production IDocumentStore backed by Redis hashes and pub/sub."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "fieldsync", channel: str = "fieldsync:changes") -> None:
        self._host = host
        self._port = port
        self._db = db
        self._key_prefix = key_prefix
        self._channel = channel
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )
        self._pubsub: Any = None
        self._subs = SubscriptionRegistry(self._read)

    def _key(self, collection: str) -> str:
        return f"{self._key_prefix}:{collection}"

    # ---- reads ----

    def _read(self, path: str) -> Any | None:
        parts = split_path(path)
        if not parts:
            raise StoreError("Reading the store root is not supported")
        key = self._key(parts[0])
        try:
            if len(parts) == 1:
                raw_map = self._client.hgetall(key)
                docs = {f: _loads(v, f"{key}/{f}") for f, v in raw_map.items()}
                docs = {f: d for f, d in docs.items() if d is not None}
                return docs or None
            raw = self._client.hget(key, parts[1])
        except redis.RedisError as exc:
            raise StoreError(f"Redis read failed for path={path!r}: {exc}") from exc
        if raw is None:
            return None
        doc = _loads(raw, f"{key}/{parts[1]}")
        return get_in(doc, parts[2:]) if len(parts) > 2 else doc

    def get(self, path: str) -> Any | None:
        return self._read(path)

    # ---- writes ----

    def _replace_collection(self, path: str, key: str, value: Any) -> None:
        if value is not None and not isinstance(value, dict):
            raise WriteError(path, "a collection must be a mapping")
        pipe = self._client.pipeline(transaction=True)
        pipe.delete(key)
        if value:
            pipe.hset(key, mapping={k: json.dumps(v) for k, v in value.items()})
        pipe.execute()

    def _write_children(self, key: str, changes: list[tuple[list[str], Any]]) -> None:
        """Apply every change to the collection hash in one WATCH/MULTI transaction.

        Each change is (path relative to the collection, value); None deletes.
        """
        children = list(dict.fromkeys(rel[0] for rel, _ in changes))

        def apply(pipe: Any) -> None:
            docs: dict[str, Any] = {}
            for child in children:
                raw = pipe.hget(key, child)
                docs[child] = _loads(raw, f"{key}/{child}") if raw is not None else None
            for rel, value in changes:
                if len(rel) == 1:
                    docs[rel[0]] = value
                    continue
                doc = docs[rel[0]] if isinstance(docs[rel[0]], dict) else {}
                set_in(doc, rel[1:], value)
                docs[rel[0]] = doc or None
            pipe.multi()
            for child, doc in docs.items():
                if doc is None:
                    pipe.hdel(key, child)
                else:
                    pipe.hset(key, child, json.dumps(doc))

        self._client.transaction(apply, key)

    def _publish(self, path: str) -> None:
        try:
            self._client.publish(self._channel, join_path(path))
        except redis.RedisError as exc:
            raise WriteError(path, f"change notification failed: {exc}") from exc

    def set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        if not parts:
            raise WriteError(path, "refusing to replace the store root")
        key = self._key(parts[0])
        try:
            if len(parts) == 1:
                self._replace_collection(path, key, to_plain(value))
            else:
                self._write_children(key, [(parts[1:], to_plain(value))])
        except redis.RedisError as exc:
            raise WriteError(path, str(exc)) from exc
        self._publish(path)

    def update(self, path: str, partial: dict[str, Any]) -> None:
        """Write all keys of `partial` together; either every key lands or none does."""
        parts = split_path(path)
        if not parts:
            raise WriteError(path, "refusing to update the store root")
        changes = []
        for name, value in partial.items():
            rel = parts[1:] + split_path(name)
            if not rel:
                raise WriteError(path, f"invalid update key {name!r}")
            changes.append((rel, to_plain(value)))
        if not changes:
            return
        try:
            self._write_children(self._key(parts[0]), changes)
        except redis.RedisError as exc:
            raise WriteError(path, str(exc)) from exc
        self._publish(path)

    # ---- subscriptions ----

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None
    ) -> Unsubscribe:
        if self._pubsub is None:
            try:
                self._pubsub = self._client.pubsub()
                self._pubsub.subscribe(self._channel)
            except redis.RedisError as exc:
                self._pubsub = None
                raise StoreError(f"Redis SUBSCRIBE failed for channel={self._channel!r}: {exc}") from exc
        return self._subs.add(path, on_snapshot, on_error)

    def poll(self) -> int:
        """Drain queued change notifications and deliver fresh snapshots."""
        if self._pubsub is None:
            return 0
        changed: list[str] = []
        try:
            while True:
                message = self._pubsub.get_message(timeout=0.0)
                if message is None:
                    break
                if message.get("type") == "message":
                    changed.append(message["data"])
        except redis.RedisError as exc:
            self._subs.fail_all(StoreError(f"Redis pub/sub read failed: {exc}"))
            return 0

        # one fresh snapshot per affected subscription, however many writes touched it
        affected = {}
        for path in changed:
            for sub in self._subs.overlapping(path):
                affected[sub.sub_id] = sub
        return sum(self._subs.deliver(sub) for sub in affected.values())

    def close(self) -> None:
        self._subs.clear()
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None
