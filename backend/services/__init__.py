from .auth import AuthService, AuthError
from .members import MemberStore

__all__ = [
    'AuthService',
    'AuthError',
    'MemberStore',
]
