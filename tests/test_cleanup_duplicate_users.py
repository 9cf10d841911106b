import importlib.util
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from config.config import settings
from database.repository.user_repository import UserRepository

SCRIPT_PATH = Path(__file__).parent.parent / 'scripts' / 'cleanup_duplicate_users.py'


@pytest.fixture(scope='module')
def cleanup_script():
    spec = importlib.util.spec_from_file_location('cleanup_duplicate_users', SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def users(db):
    start = datetime(2024, 1, 1)
    db[settings.Database.USERS_COLLECTION_NAME].insert_many([
        {'uid': 'newest', 'email': 'dup@example.com', 'createdAt': start + timedelta(days=2)},
        {'uid': 'oldest', 'email': 'dup@example.com', 'createdAt': start},
        {'uid': 'middle', 'email': 'dup@example.com', 'createdAt': start + timedelta(days=1)},
        {'uid': 'single', 'email': 'single@example.com', 'createdAt': start},
    ])
    return UserRepository(db)


def remaining_uids(db):
    return sorted(doc['uid'] for doc in db[settings.Database.USERS_COLLECTION_NAME].find())


def test_keeps_oldest_record_per_email(cleanup_script, db, users):
    removed = cleanup_script.cleanup_duplicate_users(users)

    assert removed == 2
    assert remaining_uids(db) == ['oldest', 'single']


def test_dry_run_deletes_nothing(cleanup_script, db, users):
    removed = cleanup_script.cleanup_duplicate_users(users, dry_run=True)

    assert removed == 2
    assert remaining_uids(db) == ['middle', 'newest', 'oldest', 'single']
