"""
Users module.

Stores user records and profiles.

Public API:
- IUserService: Interface for user operations
- UserRecord, UserProfile, UserRole, AuthProvider: Models
- User exceptions: UserNotFoundError, EmailInUseError
"""

from .interfaces import IUserService
from .models import AuthProvider, UserProfile, UserRecord, UserRole
from .exceptions import EmailInUseError, UserNotFoundError

__all__ = [
    "IUserService",
    "AuthProvider",
    "UserProfile",
    "UserRecord",
    "UserRole",
    "EmailInUseError",
    "UserNotFoundError",
]
