"""Pluggable document store backends behind the IDocumentStore protocol."""

from __future__ import annotations

from fieldsync.core.config import AppSettings
from fieldsync.core.protocols import IDocumentStore
from fieldsync.persistence.dynamodb_backend import DynamoDBDocumentStore
from fieldsync.persistence.memory_backend import MemoryDocumentStore
from fieldsync.persistence.redis_backend import RedisDocumentStore


def create_document_store(settings: AppSettings | None = None) -> IDocumentStore:
    """Create the configured document store backend from application settings."""
    if settings is None:
        settings = AppSettings()

    backend = settings.store.backend
    if backend == "redis":
        return RedisDocumentStore(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
            key_prefix=settings.redis.key_prefix,
            channel=settings.redis.channel,
        )
    if backend == "dynamodb":
        return DynamoDBDocumentStore(
            table_name=settings.dynamodb.table_name,
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
        )
    return MemoryDocumentStore()


__all__ = [
    "DynamoDBDocumentStore",
    "MemoryDocumentStore",
    "RedisDocumentStore",
    "create_document_store",
]
