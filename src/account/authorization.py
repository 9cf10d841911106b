from fastapi import Depends

from account.account_model import Role, UserData
from account.authentication import authenticate
from utils.exceptions import ForbiddenError


def require_roles(*roles: Role):
    """
    Dependency factory admitting only callers whose role is one of `roles`.

    Ownership of individual offers, reviews and wishlist entries is checked by the
    handlers themselves; a matching role is necessary but not sufficient.
    """
    allowed = {Role(role).value for role in roles}

    def guard(user_data: UserData = Depends(authenticate)) -> UserData:
        if Role(user_data.role).value not in allowed:
            raise ForbiddenError(f"Forbidden: requires role {' or '.join(sorted(allowed))}", code='FORBIDDEN_ROLE')
        return user_data

    return guard


require_user = require_roles(Role.USER)
require_agent = require_roles(Role.AGENT)
require_admin = require_roles(Role.ADMIN)
