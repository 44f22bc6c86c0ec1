"""Ingestion service orchestrating the fetch, download and store workflow."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from influencesnap.core.auth import Authenticator, Credentials
from influencesnap.core.downloader import AssetDownloader
from influencesnap.core.profile_fetcher import ProfileFetcher
from influencesnap.models.data_models import PostRecord, Snapshot, normalize_handle, utcnow
from influencesnap.storage.repository import SnapshotRepository
from influencesnap.utils.config import IMAGES_DIR, IMAGES_URL_PREFIX, WINDOW_SIZE
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class IngestSummary:
    """Summary of one ingestion run."""
    handle: str
    posts_fetched: int = 0
    assets_downloaded: int = 0
    assets_failed: int = 0
    errors: List[str] = field(default_factory=list)


class IngestionService:
    """
    One-shot pipeline producing the current snapshot for a handle.
    
    Steps run in order and each awaits the previous one; only the asset
    downloads fan out. Nothing is retried. Any failure before the store
    step propagates and leaves the stored snapshot untouched.
    """
    
    def __init__(
        self,
        repository: SnapshotRepository,
        credentials: Credentials,
        authenticator: Optional[Authenticator] = None,
        fetcher: Optional[ProfileFetcher] = None,
        downloader_factory: Optional[Callable[[], AssetDownloader]] = None,
        window_size: int = WINDOW_SIZE,
        store_dir: Path = IMAGES_DIR,
        url_prefix: str = IMAGES_URL_PREFIX,
    ):
        self.repository = repository
        self.credentials = credentials
        self.authenticator = authenticator or Authenticator()
        self.fetcher = fetcher or ProfileFetcher()
        self.window_size = window_size
        self.downloader_factory = downloader_factory or (
            lambda: AssetDownloader(store_dir, url_prefix, max_concurrent=window_size)
        )
    
    async def run(self, handle: str) -> IngestSummary:
        """
        Fetch, download and store a fresh snapshot for a handle.
        
        Args:
            handle: Target profile handle, matched case-insensitively
        
        Returns:
            IngestSummary
        
        Raises:
            AuthError: If the platform rejects the login
            ProfileNotFoundError: If the handle does not resolve
            FetchError: If metadata or the feed cannot be read
            StoreError: If the snapshot cannot be stored
        """
        handle = normalize_handle(handle)
        started_at = utcnow()
        summary = IngestSummary(handle=handle)
        
        session = await asyncio.to_thread(self.authenticator.establish_session, self.credentials)
        try:
            # Stage 1: profile and posts
            logger.info(f"Fetching profile for {handle}...")
            external_id = await asyncio.to_thread(self.fetcher.resolve_handle, session, handle)
            metadata = await asyncio.to_thread(self.fetcher.fetch_metadata, session, external_id)
            
            logger.info("Profile info fetched. Now fetching posts...")
            raw_posts = await asyncio.to_thread(
                lambda: list(self.fetcher.fetch_recent_posts(session, external_id, self.window_size))
            )
            summary.posts_fetched = len(raw_posts)
        finally:
            session.close()
        
        # Stage 2: assets, profile picture first then posts in feed order
        assets = [(metadata.profile_image_url, f"{handle}/profile.jpg")]
        assets += [
            (post.image_url, f"{handle}/post_{index}.jpg")
            for index, post in enumerate(raw_posts, start=1)
        ]
        
        async with self.downloader_factory() as downloader:
            refs = await downloader.download_batch(assets)
        
        for (url, key), ref in zip(assets, refs):
            if ref:
                summary.assets_downloaded += 1
            elif url:
                summary.assets_failed += 1
                summary.errors.append(f"Failed to download {key}")
        
        # Stage 3: replace the stored snapshot
        snapshot = Snapshot(
            handle=handle,
            name=metadata.name,
            profile_image_ref=refs[0],
            followers=metadata.followers,
            following=metadata.following,
            post_count=metadata.post_count,
            posts=[
                PostRecord(
                    image_ref=ref,
                    caption=post.caption,
                    likes=post.likes,
                    comments=post.comments,
                )
                for post, ref in zip(raw_posts, refs[1:])
            ],
            fetched_at=started_at,
        )
        await self.repository.replace(snapshot)
        
        logger.info(
            f"✅ Snapshot for {handle} stored: {summary.posts_fetched} posts, "
            f"{summary.assets_downloaded} assets saved, {summary.assets_failed} failed"
        )
        return summary
