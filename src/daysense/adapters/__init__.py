"""Adapters for the remote services DaySense talks to."""

from daysense.adapters.base import (
    AdapterError,
    AuthenticationError,
    BaseAdapter,
    ConnectionError,
    FetchError,
    HTTPAdapter,
    WriteError,
)
from daysense.adapters.firestore import FirestoreAdapter
from daysense.adapters.identity import AuthUser, IdentityAdapter
from daysense.adapters.inference import InferenceAdapter

__all__ = [
    "AdapterError",
    "AuthUser",
    "AuthenticationError",
    "BaseAdapter",
    "ConnectionError",
    "FetchError",
    "FirestoreAdapter",
    "HTTPAdapter",
    "IdentityAdapter",
    "InferenceAdapter",
    "WriteError",
]
