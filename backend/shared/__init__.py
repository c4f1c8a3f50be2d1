"""
Shared infrastructure for MindQuest backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- store / supabase_store: Document store with atomic transactions
- retry: Bounded retry for transient backing-store failures
- exceptions: Base exception classes
- security_events: Structured security event logging

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    MindQuestError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    BackingStoreError,
    TransientBackingStoreError,
    TransactionConflictError,
    ExternalServiceError,
)
from .models import Principal, utcnow
from .store import IDocumentStore, InMemoryDocumentStore, Transaction, where

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "reset_client_cache",
    "MindQuestError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "BackingStoreError",
    "TransientBackingStoreError",
    "TransactionConflictError",
    "ExternalServiceError",
    "Principal",
    "utcnow",
    "IDocumentStore",
    "InMemoryDocumentStore",
    "Transaction",
    "where",
]
