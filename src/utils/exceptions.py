from typing import Optional
from fastapi import HTTPException, status


class MarketplaceError(HTTPException):
    """HTTPException carrying a machine-readable error code"""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = 'SERVER_ERROR'

    def __init__(self, detail: str, code: Optional[str] = None, status_code: Optional[int] = None, **extra):
        super().__init__(status_code=status_code or self.status_code, detail=detail)
        self.code = code or self.code
        self.extra = extra


class UnauthorizedError(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = 'UNAUTHORIZED'


class ForbiddenError(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'FORBIDDEN'


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'NOT_FOUND'


class ConflictError(MarketplaceError):
    # Offer state conflicts surface as 400; duplicate resources pass 409
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'CONFLICT'


class RequestValidationFailed(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'VALIDATION_ERROR'


class UpstreamError(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 'UPSTREAM_ERROR'


class ServiceUnavailableError(MarketplaceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = 'SERVICE_UNAVAILABLE'
