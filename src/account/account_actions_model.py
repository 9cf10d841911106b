from typing import Optional

from pydantic import EmailStr, Field

from account.account_model import Role
from utils.common_models import CamelModel


class UserSummary(CamelModel):
    uid: str
    backend_id: Optional[str] = None
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias='photoURL')
    role: Role = Role.USER
    is_fraud: bool = False


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias='photoURL')


class RegisterResponse(CamelModel):
    message: str
    user: UserSummary


class LoginRequest(CamelModel):
    id_token: str = Field(..., min_length=1, description='Firebase ID token from the client SDK')


class LoginResponse(CamelModel):
    message: str
    token: str
    user: UserSummary


class MeResponse(CamelModel):
    user: UserSummary


class ProfileResponse(CamelModel):
    user: UserSummary


class UpdateProfileRequest(CamelModel):
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias='photoURL')


class RoleChangeResponse(CamelModel):
    message: str
    user: UserSummary


class DeletionSummary(CamelModel):
    properties: int = 0
    offers: int = 0
    reviews: int = 0
    wishlist_items: int = 0
    user: bool = False
    firebase_user: bool = False


class DeleteUserResponse(CamelModel):
    message: str
    deletion_summary: DeletionSummary
