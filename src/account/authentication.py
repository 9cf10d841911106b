from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin.exceptions import FirebaseError
from pymongo.database import Database

from logger import logger
from account.account_model import Role, UserData, UserRecord
from account.firebase_manager import FirebaseManager, get_firebase_manager
from account.jwt_manager import verify_jwt
from database.db_manager import get_db
from database.repository.user_repository import UserRepository
from utils.exceptions import ForbiddenError, NotFoundError, ServiceUnavailableError, UnauthorizedError

# Missing credentials are reported with our own error code, not FastAPI's default
security = HTTPBearer(auto_error=False)


def get_identity_provider() -> Optional[FirebaseManager]:
    """Dependency resolving the external identity provider, None when unavailable"""
    return get_firebase_manager()


def authenticate(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_db),
    identity_provider: Optional[FirebaseManager] = Depends(get_identity_provider),
) -> UserData:
    """
    Resolve the caller from a bearer token.

    Backend-issued JWTs are tried first; anything else is verified as a Firebase ID token.
    A Firebase subject without a user record is registered with the default role.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Unauthorized: No token provided", code='UNAUTHORIZED_NO_TOKEN')

    token = credentials.credentials
    users = UserRepository(db)

    payload = verify_jwt(token)
    if payload and payload.get('uid'):
        record = users.get_by_uid(payload['uid'])
        if record is None:
            raise NotFoundError("User not found in database", code='USER_NOT_FOUND')
        logger.debug(f"[AUTH] Backend JWT verified for {record.email} with role {record.role}")
        return UserData.from_record(record)

    if identity_provider is None:
        raise ServiceUnavailableError("Authentication service unavailable", code='AUTH_SERVICE_UNAVAILABLE')

    try:
        decoded = identity_provider.verify_id_token(token)
    except (ValueError, FirebaseError) as e:
        logger.warning(f"[AUTH] Token verification failed: {e}")
        raise ForbiddenError("Forbidden: Invalid or expired token", code='FORBIDDEN_INVALID_TOKEN')

    uid = decoded['uid']
    email = decoded.get('email') or ''
    record = users.get_by_uid(uid)
    if record is None:
        logger.info(f"[AUTH] Creating new user for {email}")
        record = users.create(UserRecord.new(
            uid=uid,
            email=email,
            display_name=decoded.get('name'),
            photo_url=decoded.get('picture'),
            role=Role.USER,
        ))

    logger.debug(f"[AUTH] Firebase token verified for {email} with role {record.role}")
    return UserData.from_record(record)
