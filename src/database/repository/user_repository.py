from typing import Any, Dict, List, Optional

from pymongo.database import Database

from account.account_model import Role, UserRecord
from config.config import settings
from database.repository.base_repository import BaseRepository
from logger import logger
from utils.common_models import utc_now


class UserRepository(BaseRepository[UserRecord]):
    """Repository for user records, keyed by identity-provider uid"""

    collection_name = settings.Database.USERS_COLLECTION_NAME

    def __init__(self, db: Database):
        super().__init__(UserRecord, db)

    def get_by_uid(self, uid: str) -> Optional[UserRecord]:
        return self.get_one({'uid': uid})

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        return self.get_one({'email': email})

    def update_by_uid(self, uid: str, fields: Dict[str, Any]) -> int:
        if not fields:
            return 0
        result = self.collection.update_one({'uid': uid}, {'$set': fields})
        logger.info(f"[USER_REPOSITORY] Updated user {uid}: {list(fields)}")
        return result.matched_count

    def set_role(self, uid: str, role: Role, **extra) -> int:
        return self.update_by_uid(uid, {'role': Role(role).value, 'lastLoginAt': utc_now(), **extra})

    def delete_by_uid(self, uid: str) -> bool:
        result = self.collection.delete_one({'uid': uid})
        return result.deleted_count > 0

    def create_or_update(self, uid: str, email: str, display_name: Optional[str] = None,
                         photo_url: Optional[str] = None) -> UserRecord:
        """
        Upsert a user at sign-in.

        The email is checked first to avoid duplicate records for one person, then the uid.
        An existing record keeps its role.
        """
        existing = self.get_by_email(email)
        if existing:
            logger.info(f"[USER_REPOSITORY] User exists with email {email}, updating instead of creating")
            fields = {'uid': uid, 'lastLoginAt': utc_now()}
            if display_name:
                fields['displayName'] = display_name
            if photo_url:
                fields['photoURL'] = photo_url
            self.collection.update_one({'email': email}, {'$set': fields})
            return self.get_by_email(email)

        existing = self.get_by_uid(uid)
        if existing:
            logger.info(f"[USER_REPOSITORY] User exists with uid {uid}, updating profile data")
            fields = {'email': email, 'lastLoginAt': utc_now()}
            if display_name:
                fields['displayName'] = display_name
            if photo_url:
                fields['photoURL'] = photo_url
            self.update_by_uid(uid, fields)
            return self.get_by_uid(uid)

        logger.info(f"[USER_REPOSITORY] Creating new user for {email}")
        return self.create(UserRecord.new(uid=uid, email=email, display_name=display_name, photo_url=photo_url))

    def fraud_agent_uids(self) -> List[str]:
        return [doc['uid'] for doc in self.collection.find({'isFraud': True}, {'uid': 1}) if doc.get('uid')]

    def duplicate_email_groups(self) -> List[Dict[str, Any]]:
        """Emails owned by more than one record, each with its record ids oldest first"""
        pipeline = [
            {'$sort': {'createdAt': 1}},
            {'$group': {'_id': '$email', 'ids': {'$push': '$_id'}, 'count': {'$sum': 1}}},
            {'$match': {'count': {'$gt': 1}}},
        ]
        return list(self.collection.aggregate(pipeline))
