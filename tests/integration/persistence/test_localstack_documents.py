"""Integration tests for the DynamoDB and Redis document stores against live services."""

from __future__ import annotations

from decimal import Decimal

import pytest

from fieldsync.core.config import AppSettings
from fieldsync.payroll.context import PayrollContext
from fieldsync.persistence.dynamodb_backend import DynamoDBDocumentStore
from fieldsync.persistence.redis_backend import RedisDocumentStore
from tests.integration.conftest import LOCALSTACK_URL, REDIS_HOST, skip_no_localstack, skip_no_redis


@skip_no_localstack
class TestDynamoDBIntegration:
    @pytest.fixture
    def store(self, seeded_tables):
        return DynamoDBDocumentStore(
            table_suffix=seeded_tables,
            region="us-east-1",
            endpoint_url=LOCALSTACK_URL,
        )

    def test_seeded_roster(self, store):
        users = store.get("users")
        assert {u["username"] for u in users.values()} >= {"asha", "vikram", "meera"}

    def test_seeded_material_cost(self, store):
        context = PayrollContext(store, AppSettings(), year_month="2025-06")
        context.start()
        try:
            assert context.material_costs().get("asha") == Decimal("7600")
        finally:
            context.close()

    def test_mark_paid_round_trip(self, store):
        context = PayrollContext(store, AppSettings(), year_month="2025-06")
        context.start()
        try:
            assert context.bulk_mark_paid(["asha", "meera"]) == ["asha"]
            assert store.get("salaries/asha/2025-06/paymentStatus") == "paid"
        finally:
            store.set("salaries/asha/2025-06/paymentStatus", "pending")
            context.close()


@skip_no_redis
class TestRedisIntegration:
    @pytest.fixture
    def stores(self):
        reader = RedisDocumentStore(host=REDIS_HOST, key_prefix="fieldsync-inttest")
        writer = RedisDocumentStore(host=REDIS_HOST, key_prefix="fieldsync-inttest")
        yield reader, writer
        writer.set("materials", None)
        reader.close()
        writer.close()

    def test_change_reaches_other_client_on_poll(self, stores):
        reader, writer = stores
        snapshots = []
        reader.subscribe("materials", snapshots.append)
        writer.set("materials/M1", {"price": 10})
        assert reader.poll() == 1
        assert snapshots[-1] == {"M1": {"price": 10}}
