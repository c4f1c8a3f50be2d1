"""
User module data models.

The user record is the system's view of an identity-provider account. Its
``role`` field is a cache: the membership collections owned by the roles
module are authoritative for admin, superadmin and counselor status.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, EmailStr

from shared.models import Timestamp


class UserRole(str, Enum):
    """Exactly one of these is held by every user."""

    USER = "user"
    COUNSELOR = "counselor"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class AuthProvider(str, Enum):
    PASSWORD = "password"
    GOOGLE = "google"


class UserRecord(BaseModel):
    """Stored user document (``users/{id}``)."""

    id: str = Field(..., description="Identity provider subject ID")
    email: str = Field(..., description="Email address")
    name: str = Field(default="", description="Display name")
    role: UserRole = Field(default=UserRole.USER, description="Cached role")
    avatar_id: str = Field(default="default", description="Avatar identifier")
    email_verified: bool = Field(default=False)
    provider: AuthProvider = Field(default=AuthProvider.PASSWORD)
    created_at: Timestamp
    updated_at: Timestamp
    last_active: Optional[Timestamp] = None
    disabled: bool = Field(default=False, description="Blocked by an admin")
    deleted: bool = Field(default=False, description="Soft-delete flag")


class UserProfile(BaseModel):
    """User data safe to return to clients."""

    id: str
    email: str
    name: str
    role: UserRole
    avatar_id: str
    email_verified: bool
    provider: AuthProvider
    created_at: Timestamp
    last_active: Optional[Timestamp] = None

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserProfile":
        return cls.model_validate(record.model_dump())


class UpdateProfileRequest(BaseModel):
    """Fields a user may change on their own profile."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    avatar_id: Optional[str] = Field(None, min_length=1, max_length=64)


class UserListItem(BaseModel):
    """Row in the admin user listing."""

    id: str
    email: str
    name: str
    role: UserRole
    disabled: bool
    created_at: Timestamp


class NewUser(BaseModel):
    """Data needed to create a user record."""

    id: str
    email: EmailStr
    name: str = ""
    avatar_id: str = "default"
    email_verified: bool = False
    provider: AuthProvider = AuthProvider.PASSWORD
