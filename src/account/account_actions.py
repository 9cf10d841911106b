from typing import List, Optional

from fastapi import HTTPException
from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError
from pymongo.database import Database

from logger import logger
from account.account_actions_model import *
from account.account_model import Role, UserData, UserRecord
from account.firebase_manager import FirebaseManager
from account.jwt_manager import create_jwt
from utils.common_models import MessageResponse
from database.repository.offer_repository import OfferRepository
from database.repository.property_repository import PropertyRepository
from database.repository.review_repository import ReviewRepository
from database.repository.user_repository import UserRepository
from database.repository.wishlist_repository import WishlistRepository
from utils.exceptions import (
    ConflictError, NotFoundError, RequestValidationFailed, ServiceUnavailableError, UnauthorizedError, UpstreamError
)


def to_summary(record: UserRecord) -> UserSummary:
    return UserSummary(
        uid=record.uid,
        backend_id=record.backend_id,
        email=record.email,
        display_name=record.display_name,
        photo_url=record.photo_url,
        role=record.role,
        is_fraud=record.is_fraud,
    )


class AccountActionsHandler:
    def __init__(self, db: Database, user_data: Optional[UserData] = None,
                 identity_provider: Optional[FirebaseManager] = None):
        self.db = db
        self.user_data = user_data
        self.identity_provider = identity_provider
        self.users = UserRepository(db)

    def _require_identity_provider(self) -> FirebaseManager:
        if self.identity_provider is None:
            raise ServiceUnavailableError(
                "Firebase authentication is not available. Please configure Firebase credentials.",
                code='AUTH_SERVICE_UNAVAILABLE',
            )
        return self.identity_provider

    def register(self, request: RegisterRequest) -> RegisterResponse:
        identity_provider = self._require_identity_provider()
        logger.info(f"[ACCOUNT] Registration attempt for {request.email}")

        if self.users.get_by_email(request.email):
            raise ConflictError("User already exists with this email address",
                                code='EMAIL_ALREADY_EXISTS', status_code=409)

        try:
            firebase_user = identity_provider.create_user(
                email=request.email,
                password=request.password,
                display_name=request.display_name,
                photo_url=request.photo_url,
            )
        except firebase_auth.EmailAlreadyExistsError:
            raise ConflictError("User already exists with this email address",
                                code='EMAIL_ALREADY_EXISTS', status_code=409)
        except (ValueError, FirebaseError) as e:
            logger.warning(f"[ACCOUNT] Firebase rejected registration for {request.email}: {e}")
            raise RequestValidationFailed(str(e), code='REGISTRATION_FAILED')

        # Self-registration always yields a plain user; roles are granted by an admin
        record = self.users.create(UserRecord.new(
            uid=firebase_user.uid,
            email=request.email,
            display_name=request.display_name,
            photo_url=request.photo_url,
            role=Role.USER,
        ))
        logger.info(f"[ACCOUNT] User registration completed for {request.email}")
        return RegisterResponse(message="User registered successfully. Please log in.", user=to_summary(record))

    def login(self, request: LoginRequest) -> LoginResponse:
        identity_provider = self._require_identity_provider()
        try:
            decoded = identity_provider.verify_id_token(request.id_token)
        except (ValueError, FirebaseError) as e:
            logger.warning(f"[ACCOUNT] Login with invalid ID token: {e}")
            raise UnauthorizedError("Invalid or expired ID token", code='INVALID_ID_TOKEN')

        email = decoded.get('email')
        if not email:
            raise UnauthorizedError("ID token carries no email", code='INVALID_ID_TOKEN')

        record = self.users.create_or_update(
            uid=decoded['uid'],
            email=email,
            display_name=decoded.get('name') or email.split('@')[0],
            photo_url=decoded.get('picture'),
        )
        token = create_jwt(uid=record.uid, email=record.email, role=record.role)
        logger.info(f"[ACCOUNT] Login successful for {email} with role {record.role}")
        return LoginResponse(message="Login successful", token=token, user=to_summary(record))

    def me(self) -> MeResponse:
        record = self.users.get_by_uid(self.user_data.uid)
        if record is None:
            raise NotFoundError("User not found", code='USER_NOT_FOUND')
        return MeResponse(user=to_summary(record))

    def profile(self) -> ProfileResponse:
        record = self.users.get_by_uid(self.user_data.uid)
        if record is None or not record.uid:
            raise NotFoundError("User not found", code='USER_NOT_FOUND')
        return ProfileResponse(user=to_summary(record))

    def update_profile(self, request: UpdateProfileRequest) -> MessageResponse:
        fields = {}
        if request.display_name:
            fields['displayName'] = request.display_name
        if request.photo_url:
            fields['photoURL'] = request.photo_url

        if self.identity_provider is not None and fields:
            firebase_fields = {}
            if request.display_name:
                firebase_fields['display_name'] = request.display_name
            if request.photo_url:
                firebase_fields['photo_url'] = request.photo_url
            try:
                self.identity_provider.update_user(self.user_data.uid, **firebase_fields)
            except (ValueError, FirebaseError) as e:
                logger.warning(f"[ACCOUNT] Firebase profile update failed for {self.user_data.uid}: {e}")

        self.users.update_by_uid(self.user_data.uid, fields)
        return MessageResponse(message="Profile updated successfully")

    def list_users(self) -> List[UserSummary]:
        return [to_summary(record) for record in self.users.get_by_filter({})]

    def _change_role(self, uid: str, role: Role, message: str, **extra) -> RoleChangeResponse:
        if self.users.get_by_uid(uid) is None:
            raise NotFoundError("User not found", code='USER_NOT_FOUND')
        self.users.set_role(uid, role, **extra)
        logger.info(f"[ACCOUNT] Admin {self.user_data.email} set role of {uid} to {Role(role).value}")
        return RoleChangeResponse(message=message, user=to_summary(self.users.get_by_uid(uid)))

    def make_admin(self, uid: str) -> RoleChangeResponse:
        return self._change_role(uid, Role.ADMIN, "User promoted to admin")

    def make_agent(self, uid: str) -> RoleChangeResponse:
        return self._change_role(uid, Role.AGENT, "User promoted to agent")

    def mark_fraud(self, uid: str) -> RoleChangeResponse:
        record = self.users.get_by_uid(uid)
        if record is None:
            raise NotFoundError("User not found", code='USER_NOT_FOUND')
        if Role(record.role) != Role.AGENT:
            raise RequestValidationFailed("User is not an agent", code='NOT_AN_AGENT')
        return self._change_role(uid, Role.FRAUD, "Agent marked as fraud", isFraud=True)

    def delete_user(self, uid: str) -> DeleteUserResponse:
        """Remove a user together with everything they own"""
        record = self.users.get_by_uid(uid)
        if record is None:
            raise NotFoundError("User not found", code='USER_NOT_FOUND')

        summary = DeletionSummary()
        try:
            if Role(record.role) in (Role.AGENT, Role.FRAUD):
                summary.properties = PropertyRepository(self.db).delete_by_agent(uid)
            summary.offers = OfferRepository(self.db).delete_by_buyer(uid)
            summary.reviews = ReviewRepository(self.db).delete_by_reviewer(uid)
            summary.wishlist_items = WishlistRepository(self.db).delete_by_user(uid)
            summary.user = self.users.delete_by_uid(uid)
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"[ACCOUNT] Failed deleting data of user {uid}: {e}")
            raise UpstreamError(f"Server error deleting user: {e}", code='DELETE_FAILED')

        if not summary.user:
            raise NotFoundError("User not found in database", code='USER_NOT_FOUND')

        if self.identity_provider is not None:
            try:
                self.identity_provider.delete_user(uid)
                summary.firebase_user = True
            except (ValueError, FirebaseError) as e:
                logger.warning(f"[ACCOUNT] Firebase deletion failed for {uid}: {e}")

        logger.info(f"[ACCOUNT] User deletion completed: {summary.model_dump()}")
        return DeleteUserResponse(message="User and all related data deleted successfully", deletion_summary=summary)
