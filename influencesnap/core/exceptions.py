"""Custom exceptions for InfluenceSnap."""

from enum import Enum


class InfluenceSnapError(Exception):
    """Base exception for InfluenceSnap."""
    pass


class AuthFailure(Enum):
    """Reason an authentication attempt was rejected."""
    INVALID = "invalid"
    RATE_LIMITED = "rate_limited"
    CHALLENGE_REQUIRED = "challenge_required"


class AuthError(InfluenceSnapError):
    """Could not establish a session with the platform."""
    
    def __init__(self, reason: AuthFailure, message: str = ""):
        self.reason = reason
        super().__init__(message or f"Authentication failed: {reason.value}")


class ProfileNotFoundError(InfluenceSnapError):
    """Handle does not resolve to a profile on the platform."""
    pass


class FetchError(InfluenceSnapError):
    """Failed to retrieve profile metadata or the post feed."""
    pass


class DownloadError(InfluenceSnapError):
    """Failed to download or store an asset."""
    pass


class StoreError(InfluenceSnapError):
    """Snapshot store is unreachable or a store operation failed."""
    pass


class ProxyError(InfluenceSnapError):
    """Failed to fetch an upstream image for relaying."""
    pass


class LabelingError(InfluenceSnapError):
    """External image labeling service failed or is not configured."""
    pass
