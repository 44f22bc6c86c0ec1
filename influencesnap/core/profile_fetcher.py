"""Instaloader-based retrieval of profile metadata and recent posts."""

from typing import Dict, Iterator

import instaloader

from influencesnap.core.auth import PlatformSession
from influencesnap.core.exceptions import FetchError, ProfileNotFoundError
from influencesnap.models.data_models import ProfileMetadata, RawPost
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


def _count(value) -> int:
    """Platform counts may be missing or negative when hidden."""
    return max(int(value or 0), 0)


class ProfileFetcher:
    """
    Resolves handles and reads profile data through a PlatformSession.
    
    All methods block on network I/O; callers in async code should run
    them in a worker thread.
    """
    
    def __init__(self):
        self._profiles: Dict[str, instaloader.Profile] = {}
    
    def _profile(self, session: PlatformSession, external_id: str) -> instaloader.Profile:
        profile = self._profiles.get(external_id)
        if profile is None:
            profile = instaloader.Profile.from_id(session.context, int(external_id))
            self._profiles[external_id] = profile
        return profile
    
    def resolve_handle(self, session: PlatformSession, handle: str) -> str:
        """
        Resolve a handle to the platform's user id.
        
        Args:
            session: Authenticated session
            handle: Profile handle
        
        Returns:
            External user id as a string
        
        Raises:
            ProfileNotFoundError: If the handle does not exist
            FetchError: On any other platform error
        """
        logger.info(f"Resolving handle: {handle}")
        try:
            profile = instaloader.Profile.from_username(session.context, handle)
        except (
            instaloader.exceptions.ProfileNotExistsException,
            instaloader.exceptions.QueryReturnedNotFoundException,
        ):
            raise ProfileNotFoundError(f"Profile not found: {handle}")
        except instaloader.exceptions.InstaloaderException as e:
            raise FetchError(f"Failed to resolve {handle}: {e}") from e
        
        external_id = str(profile.userid)
        self._profiles[external_id] = profile
        logger.debug(f"Resolved {handle} -> {external_id}")
        return external_id
    
    def fetch_metadata(self, session: PlatformSession, external_id: str) -> ProfileMetadata:
        """
        Fetch profile metadata.
        
        Raises:
            ProfileNotFoundError: If the id no longer resolves
            FetchError: On any other platform error
        """
        try:
            profile = self._profile(session, external_id)
            metadata = ProfileMetadata(
                name=profile.full_name or "",
                followers=_count(profile.followers),
                following=_count(profile.followees),
                post_count=_count(profile.mediacount),
                profile_image_url=profile.profile_pic_url or None,
            )
        except (
            instaloader.exceptions.ProfileNotExistsException,
            instaloader.exceptions.QueryReturnedNotFoundException,
        ):
            raise ProfileNotFoundError(f"Profile not found: {external_id}")
        except instaloader.exceptions.InstaloaderException as e:
            raise FetchError(f"Failed to fetch metadata for {external_id}: {e}") from e
        
        logger.info(
            f"Profile {external_id}: {metadata.followers} followers, "
            f"{metadata.post_count} posts reported"
        )
        return metadata
    
    def fetch_recent_posts(self, session: PlatformSession, external_id: str, limit: int) -> Iterator[RawPost]:
        """
        Yield the most recent posts, newest first.
        
        The feed is paginated by instaloader; iteration stops after `limit`
        entries or when the feed is exhausted. The returned generator can
        only be consumed once.
        
        Raises:
            FetchError: If the feed cannot be read
        """
        if limit <= 0:
            return
        
        yielded = 0
        try:
            profile = self._profile(session, external_id)
            for post in profile.get_posts():
                yield RawPost(
                    image_url=post.url or None,
                    caption=post.caption or "",
                    likes=_count(post.likes),
                    comments=_count(post.comments),
                )
                yielded += 1
                if yielded >= limit:
                    break
        except instaloader.exceptions.InstaloaderException as e:
            raise FetchError(f"Failed to read post feed for {external_id}: {e}") from e
        
        logger.debug(f"Read {yielded} posts for {external_id}")
