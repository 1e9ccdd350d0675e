#!/usr/bin/env python3
"""
Database Management Utility

This script provides utilities to manage the catalog database:
- Check the MongoDB connection
- Create the collections and unique indexes
- Provision a user
- Purge expired tokens
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from catalog.auth import CredentialStore
from catalog.database import MongoDBManager
from utilities.config import config
from utilities.logger import setup_logging


def make_manager() -> MongoDBManager:
    return MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database
    )


async def check_connection() -> bool:
    """Ping MongoDB and report."""
    print("\n🔌 CHECKING MONGODB CONNECTION")
    print("=" * 80)

    db_manager = make_manager()
    try:
        await db_manager.connect(create_indexes=False)
        health = await db_manager.health_check()
        print(f"✅ Connected to database '{config.mongodb_database}'")
        print(f"   Authors: {health.get('authors_count', 0)}")
        print(f"   Books:   {health.get('books_count', 0)}")
        return True
    except Exception as e:
        print(f"❌ Connection error: {e}")
        return False
    finally:
        await db_manager.disconnect()


async def init_database() -> bool:
    """Create collections and unique indexes."""
    print("\n🗂️  INITIALIZING DATABASE")
    print("=" * 80)

    db_manager = make_manager()
    try:
        await db_manager.connect(create_indexes=False)
        created = await db_manager.create_collections()
        for name, was_created in created.items():
            marker = "✅ created" if was_created else "ℹ️  exists"
            print(f"   {name:10s} {marker}")

        await db_manager.create_indexes()
        print("✅ Unique indexes in place")
        return True
    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        return False
    finally:
        await db_manager.disconnect()


async def create_user(username: str, password: str) -> bool:
    """Provision a user with a bcrypt-hashed password."""
    print(f"\n👤 CREATING USER '{username}'")
    print("=" * 80)

    db_manager = make_manager()
    try:
        database = await db_manager.connect()
        result = await CredentialStore(database).create_user(username, password)
        if not result.ok:
            print(f"❌ {result.error.message}")
            return False

        print(f"✅ User created with id {result.value}")
        return True
    except Exception as e:
        print(f"❌ Error creating user: {e}")
        return False
    finally:
        await db_manager.disconnect()


async def purge_tokens() -> bool:
    """Delete expired tokens."""
    print("\n🧹 PURGING EXPIRED TOKENS")
    print("=" * 80)

    db_manager = make_manager()
    try:
        await db_manager.connect(create_indexes=False)
        removed = await db_manager.purge_expired_tokens()
        if removed:
            print(f"🗑️  Expired tokens removed: {removed}")
        else:
            print("ℹ️  No expired tokens found")
        return True
    except Exception as e:
        print(f"❌ Error purging tokens: {e}")
        return False
    finally:
        await db_manager.disconnect()


def print_usage():
    print("Usage: python manage_db.py [check|init|create-user|purge-tokens] [args]")
    print()
    print("Commands:")
    print("  check                            - Check the MongoDB connection")
    print("  init                             - Create collections and unique indexes")
    print("  create-user <username> <password> - Provision a user")
    print("  purge-tokens                     - Delete tokens whose expiry has passed")
    print()
    print("Examples:")
    print("  python manage_db.py check")
    print("  python manage_db.py create-user testuser testpassword")


async def main(argv=None) -> int:
    """Main function; returns the process exit code."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print_usage()
        return 1

    command = argv[0].lower()

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    if command == "check":
        ok = await check_connection()
    elif command == "init":
        ok = await init_database()
    elif command == "create-user":
        if len(argv) < 3:
            print("❌ Error: username and password required")
            print("Usage: python manage_db.py create-user <username> <password>")
            return 1
        ok = await create_user(argv[1], argv[2])
    elif command == "purge-tokens":
        ok = await purge_tokens()
    else:
        print(f"❌ Unknown command: {command}")
        print("Available commands: check, init, create-user, purge-tokens")
        return 1

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
