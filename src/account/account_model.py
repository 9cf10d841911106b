from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from utils.common_models import CaseInsensitiveEnum, MarketplaceDocument, utc_now


class Role(str, CaseInsensitiveEnum):
    USER = 'user'
    AGENT = 'agent'
    ADMIN = 'admin'
    FRAUD = 'fraud'


class UserRecord(MarketplaceDocument):
    """A document in the users collection"""
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias='photoURL')
    role: Role = Role.USER
    is_fraud: bool = False
    backend_id: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @classmethod
    def new(cls, uid: str, email: str, display_name: Optional[str] = None,
            photo_url: Optional[str] = None, role: Role = Role.USER) -> 'UserRecord':
        now = utc_now()
        return cls(
            uid=uid,
            email=email,
            display_name=display_name or email.split('@')[0],
            photo_url=photo_url,
            role=role,
            is_fraud=False,
            backend_id=f"user_{uid}",
            created_at=now,
            last_login_at=now,
        )


class UserData(BaseModel):
    """Verified identity of the caller, attached to every authenticated request"""
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: Role = Role.USER
    is_fraud: bool = False
    backend_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: UserRecord) -> 'UserData':
        return cls(
            uid=record.uid,
            email=record.email,
            display_name=record.display_name,
            photo_url=record.photo_url,
            role=record.role,
            is_fraud=record.is_fraud,
            backend_id=record.backend_id,
        )
