"""Seed the FieldSync documents table with a sample roster, catalogue and requests.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from decimal import Decimal
from typing import Any

import boto3

TABLE_NAME = "fieldsync-documents"

SAMPLE_DOCUMENTS: dict[str, dict[str, Any]] = {
    "users": {
        "u1": {"name": "Asha Rao", "username": "asha", "role": "engineer", "department": "Site A"},
        "u2": {"name": "Vikram Singh", "username": "vikram", "role": "worker", "department": "Site A"},
        "u3": {"name": "Meera Iyer", "username": "meera", "role": "worker", "department": "Site B"},
    },
    "materials": {
        "cement": {"name": "Cement (50kg bag)", "price": 380},
        "rebar": {"name": "Rebar 12mm (per rod)", "price": 710.5},
        "sand": {"name": "River sand (per cu ft)", "price": 55},
    },
    "material_requests": {
        "r1": {
            "materialId": "cement", "materialName": "Cement (50kg bag)", "quantityRequested": 20,
            "requestedAt": 1748736000000, "respondedAt": 1748822400000, "status": "approved",
            "responseMessage": "", "userId": "u1", "username": "asha",
        },
        "r2": {
            "materialId": "rebar", "materialName": "Rebar 12mm (per rod)", "quantityRequested": 40,
            "requestedAt": 1748908800000, "respondedAt": 0, "status": "pending",
            "responseMessage": "", "userId": "u2", "username": "vikram",
        },
    },
    "salaries": {
        "asha": {
            "2025-06": {
                "yearMonth": "2025-06", "baseSalary": 42000, "overtimeHours": 6, "overtimePay": 1800,
                "allowances": [{"name": "Site allowance", "amount": 2500}],
                "deductions": [{"name": "Advance", "amount": 5000, "isStatutory": False}],
                "netSalary": 41300, "paymentStatus": "pending", "attendanceDays": 24,
                "calculatedAt": 1751241600000,
            },
        },
    },
}


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create the documents table. Skips if it already exists."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    table_name = f"{TABLE_NAME}{suffix}"
    if table_name in existing:
        print(f"  Table {table_name} already exists, skipping")
        return
    client.create_table(
        TableName=table_name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    print(f"  Created table {table_name}")


def _json_to_dynamodb(obj: Any) -> Any:
    """Convert JSON-parsed floats/ints to Decimal for DynamoDB."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, (int, float)):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _json_to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_json_to_dynamodb(i) for i in obj]
    return obj


def seed_sample_data(ddb: Any, suffix: str = "") -> None:
    """Write every sample collection as COLLECTION#/DOC# items."""
    tbl = ddb.Table(f"{TABLE_NAME}{suffix}")
    for collection, docs in SAMPLE_DOCUMENTS.items():
        with tbl.batch_writer() as batch:
            for child, body in docs.items():
                batch.put_item(Item={
                    "PK": f"COLLECTION#{collection}",
                    "SK": f"DOC#{child}",
                    "body": _json_to_dynamodb(body),
                })
        print(f"  Seeded {len(docs)} {collection} document(s)")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB documents table for FieldSync")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    print("Seeding data...")
    seed_sample_data(ddb, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
