#!/usr/bin/env python3
"""
Duplicate user cleanup

Signing in through more than one path used to create several user records for the
same email. This script keeps the oldest record for every email and deletes the rest.
Run with --dry-run first to see what would be removed.
"""

import argparse
import sys
from pathlib import Path

# Add the src directory to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from logger import logger
from database.db_manager import DBManager
from database.repository.user_repository import UserRepository


def cleanup_duplicate_users(users: UserRepository, dry_run: bool = False) -> int:
    """Delete every record but the oldest per email; returns how many were (or would be) deleted"""
    removed = 0
    for group in users.duplicate_email_groups():
        keep_id, *duplicate_ids = group['ids']
        logger.info(f"[CLEANUP] {group['_id']}: keeping {keep_id}, removing {len(duplicate_ids)} duplicates")
        for duplicate_id in duplicate_ids:
            if dry_run or users.delete_by_id(duplicate_id):
                removed += 1
    return removed


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Remove duplicate user records, keeping the oldest per email")
    parser.add_argument('--dry-run', action='store_true', help="Report duplicates without deleting them")
    parser.add_argument('--uri', default=None, help="Document store URI (defaults to the configured one)")
    args = parser.parse_args(argv)

    db_manager = DBManager(uri=args.uri)
    try:
        removed = cleanup_duplicate_users(UserRepository(db_manager.connect()), dry_run=args.dry_run)
    finally:
        db_manager.close()

    verb = "Would remove" if args.dry_run else "Removed"
    logger.info(f"[CLEANUP] {verb} {removed} duplicate user records")
    return 0


if __name__ == "__main__":
    sys.exit(main())
