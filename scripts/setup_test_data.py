#!/usr/bin/env python3
"""
Setup script for integration tests.

This script:
1. Pings the MongoDB deployment
2. Seeds a schemaless collection and a schema-bound collection
3. Creates indexes used by the sample data
4. Writes a sample schema directory for SCHEMA_PATH

Usage:
    python scripts/setup_test_data.py [schema-dir]

Environment variables required:
    MONGODB_URI - MongoDB connection string (e.g., mongodb://localhost:27017)

Optional:
    MONGODB_DATABASE - Database to seed (default: mcp_server_test)

This script should be run before pytest to have data to explore with the tools.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

PRODUCT_SCHEMA = """\
modelName: Product
collectionName: products
fields:
  name: {type: string, required: true}
  price: {type: number, required: true, min: 0}
  category: {type: string, enum: [tools, toys]}
  inStock: {type: boolean, default: true}
  createdAt: {type: date, default: now}
  tags: {type: array}
"""

WIDGETS = [
    {"name": "Sprocket", "price": 4, "colour": "red"},
    {"name": "Gear", "price": 9, "colour": "blue"},
    {"name": "Flange", "price": 2, "colour": "red", "isDeleted": True},
]

PRODUCTS = [
    {"name": "Hammer", "price": 12.5, "category": "tools", "inStock": True, "tags": ["steel"]},
    {"name": "Kite", "price": 20, "category": "toys", "inStock": False, "tags": []},
]


def get_env_or_exit(var_name: str) -> str:
    """Get environment variable or exit with error."""
    value = os.getenv(var_name)
    if not value:
        print(f"Error: {var_name} environment variable is required")
        sys.exit(1)
    return value


def seed_collection(database, name: str, documents: list[dict]) -> None:
    """Replace the contents of a collection with the sample documents."""
    collection = database[name]
    collection.delete_many({})
    now = datetime.now(timezone.utc)
    records = [{"createdAt": now, **document} for document in documents]
    for record in records:
        if record.get("isDeleted"):
            record["deletedAt"] = now
    result = collection.insert_many(records)
    print(f"  - Seeded {len(result.inserted_ids)} documents into {name}")


def create_indexes(database) -> None:
    """Create indexes for the sample collections."""
    print("\n3. Creating indexes...")
    indexes = [
        ("products", [("name", ASCENDING)], {"unique": True}),
        ("widgets", [("colour", ASCENDING)], {}),
    ]
    for collection, keys, options in indexes:
        try:
            name = database[collection].create_index(keys, **options)
            print(f"  - Created {name} on {collection}")
        except PyMongoError as e:
            print(f"  - Warning: Could not create index on {collection}: {e}")


def write_schema_dir(directory: Path) -> None:
    """Write the sample schema directory for SCHEMA_PATH."""
    print("\n4. Writing sample schemas...")
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "product.yaml").write_text(PRODUCT_SCHEMA, encoding="utf-8")
    print(f"  - Wrote {directory / 'product.yaml'}")
    print(f"    export SCHEMA_PATH={directory.resolve()}")


def main() -> int:
    """Main entry point."""
    print("Setting up test data for integration tests...")

    connection_string = get_env_or_exit("MONGODB_URI")
    database_name = os.getenv("MONGODB_DATABASE", "mcp_server_test")
    schema_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("test-schemas")

    print(f"\nUsing database: {database_name}")

    client = MongoClient(connection_string, serverSelectionTimeoutMS=10000)
    try:
        print("\n1. Connecting...")
        client.admin.command("ping")
        print("  - Connected to MongoDB")

        database = client[database_name]

        print("\n2. Seeding collections...")
        seed_collection(database, "widgets", WIDGETS)
        seed_collection(database, "products", PRODUCTS)

        create_indexes(database)
        write_schema_dir(schema_dir)

        print("\nTest data setup complete!")
        return 0

    except PyMongoError as e:
        print(f"\nError: {e}")
        return 1
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
