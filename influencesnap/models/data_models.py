"""Data models for retrieved and stored influencer data."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def normalize_handle(handle: str) -> str:
    """Canonical form of a profile handle; the platform ignores case and a leading @."""
    return handle.strip().lstrip("@").lower()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class ProfileMetadata:
    """Profile metadata as reported by the platform."""
    name: str
    followers: int = 0
    following: int = 0
    post_count: int = 0
    profile_image_url: Optional[str] = None


@dataclass
class RawPost:
    """One entry of the platform's post feed."""
    image_url: Optional[str] = None
    caption: str = ""
    likes: int = 0
    comments: int = 0


@dataclass
class PostRecord:
    """A post embedded in a snapshot."""
    image_ref: str = ""
    caption: str = ""
    likes: int = 0
    comments: int = 0


@dataclass
class Snapshot:
    """The current stored record for one handle."""
    handle: str
    name: str = ""
    profile_image_ref: str = ""
    followers: int = 0
    following: int = 0
    post_count: int = 0
    posts: List[PostRecord] = field(default_factory=list)
    fetched_at: Optional[datetime] = None


@dataclass
class EngagementMetrics:
    """Engagement figures derived from a snapshot's post sample."""
    average_likes: float
    average_comments: float
    engagement_rate: float
