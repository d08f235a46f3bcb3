"""
Service Errors
Exceptions raised by services and translated into HTTP responses by the API layer
"""


class ServiceError(Exception):
    """Base error carrying the HTTP status it maps to"""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Missing or malformed input"""
    status_code = 400


class AuthenticationError(ServiceError):
    """No credentials were supplied"""
    status_code = 401


class MalformedTokenError(ServiceError):
    """Bearer token is not a well-formed JWT"""
    status_code = 400


class InvalidTokenError(ServiceError):
    """Bearer token is invalid, expired or belongs to no user"""
    status_code = 403


class PermissionDeniedError(ServiceError):
    """Caller is authenticated but may not act on the resource"""
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """Unique constraint violation (duplicate favorite, request, playlist entry...)"""
    status_code = 400


class UpstreamError(ServiceError):
    """A collaborator (inference API, object storage) failed"""
    status_code = 500
