"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class StoreConfig(BaseSettings):
    """Document store backend selection."""

    model_config = {"env_prefix": "FIELDSYNC_STORE_"}

    backend: Literal["memory", "redis", "dynamodb"] = "memory"


class RedisConfig(BaseSettings):
    """Redis document store configuration."""

    model_config = {"env_prefix": "FIELDSYNC_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "fieldsync"
    channel: str = "fieldsync:changes"


class DynamoDBConfig(BaseSettings):
    """DynamoDB document store configuration."""

    model_config = {"env_prefix": "FIELDSYNC_DYNAMO_"}

    table_name: str = "fieldsync-documents"
    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class CollectionConfig(BaseSettings):
    """Store paths of the collections the payroll core subscribes to."""

    model_config = {"env_prefix": "FIELDSYNC_COLLECTION_"}

    users: str = "users"
    material_requests: str = "material_requests"
    materials: str = "materials"
    payroll: str = "salaries"
    attendance: str = "attendance"
    leave_requests: str = "leaveRequests"


class PayrollConfig(BaseSettings):
    """Roster normalization defaults."""

    model_config = {"env_prefix": "FIELDSYNC_PAYROLL_"}

    default_role: str = "worker"
    default_department: str = "General"
    user_limit: int = 100


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "FIELDSYNC_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_file: str | None = None
    timezone: str = ""  # IANA name; empty uses the host's local zone

    store: StoreConfig = StoreConfig()
    redis: RedisConfig = RedisConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    collections: CollectionConfig = CollectionConfig()
    payroll: PayrollConfig = PayrollConfig()
