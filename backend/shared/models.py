"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime, timezone
from typing import Annotated, Callable, Optional
from pydantic import BaseModel, Field, PlainSerializer

# Fixed-width UTC format so stored timestamps compare correctly as text,
# both in memory and through the jsonb ->> operator in Postgres.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime in the store's fixed-width UTC format."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


Timestamp = Annotated[
    datetime,
    PlainSerializer(format_timestamp, return_type=str, when_used="json"),
]

Clock = Callable[[], datetime]


class Principal(BaseModel):
    """
    The authenticated caller of a request.

    Built by the auth middleware once the access token, the user record and
    the session have all been checked, then passed explicitly to route
    handlers and services. Never stored on shared mutable state.
    """

    id: str = Field(..., description="User ID (subject of the access token)")
    role: str = Field(default="user", description="Role cached on the user record")
    email: str = Field(default="", description="User's email address")
    email_verified: bool = Field(default=False, description="Whether email is verified")
    token_id: Optional[str] = Field(
        default=None, description="Refresh token issued with the presented access token"
    )

    model_config = {
        "frozen": True,  # Make immutable for safety
        "extra": "ignore",
    }
