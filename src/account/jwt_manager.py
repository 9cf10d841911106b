from datetime import timedelta
from typing import Optional

import jwt

from config.config import settings
from gcp.secret import secret_mgr
from utils.common_models import utc_now

jwt_algorithm = settings.Authentication.JWT_ALGORITHM


def _jwt_secret() -> str:
    return secret_mgr.secret(settings.Secret.JWT_SECRET_KEY)


def create_jwt(uid: str, email: str, role: str) -> str:
    payload = {
        'uid': uid,
        'email': email,
        'role': role,
        'exp': utc_now() + timedelta(days=settings.Authentication.JWT_EXPIRY_DAYS),
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=jwt_algorithm)


def verify_jwt(token: str) -> Optional[dict]:
    """Decoded payload of a backend-issued token, None if the token is not one"""
    secret = _jwt_secret()
    if not secret:
        return None
    try:
        return jwt.decode(token, secret, algorithms=[jwt_algorithm])
    except jwt.PyJWTError:
        return None
