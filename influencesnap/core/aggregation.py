"""Engagement metrics computed from stored snapshots at query time."""

from typing import List, Optional, Tuple

from influencesnap.models.data_models import EngagementMetrics, Snapshot, normalize_handle
from influencesnap.storage.repository import SnapshotRepository
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


def compute_metrics(snapshot: Snapshot) -> EngagementMetrics:
    """
    Derive engagement figures from the stored post sample.
    
    Averages divide by the number of stored posts (at least 1), not by the
    platform-reported post count. The rate is 0 when there are no followers.
    """
    sample_size = max(1, len(snapshot.posts))
    average_likes = sum(post.likes for post in snapshot.posts) / sample_size
    average_comments = sum(post.comments for post in snapshot.posts) / sample_size
    
    if snapshot.followers > 0:
        engagement_rate = (average_likes + average_comments) / snapshot.followers * 100
    else:
        engagement_rate = 0.0
    
    return EngagementMetrics(
        average_likes=average_likes,
        average_comments=average_comments,
        engagement_rate=engagement_rate,
    )


class AggregationResolver:
    """Reads snapshots and attaches freshly computed metrics on every call."""
    
    def __init__(self, repository: SnapshotRepository):
        self.repository = repository
    
    async def list_influencers(self) -> List[Tuple[Snapshot, EngagementMetrics]]:
        """All stored snapshots with their metrics; empty store gives []."""
        snapshots = await self.repository.list_all()
        if not snapshots:
            logger.warning("No influencer data found. Run the ingest command first.")
        return [(snapshot, compute_metrics(snapshot)) for snapshot in snapshots]
    
    async def get_influencer(self, handle: str) -> Optional[Tuple[Snapshot, EngagementMetrics]]:
        """One snapshot with its metrics, or None if the handle has none."""
        snapshot = await self.repository.find_by_handle(normalize_handle(handle))
        if snapshot is None:
            return None
        return snapshot, compute_metrics(snapshot)
