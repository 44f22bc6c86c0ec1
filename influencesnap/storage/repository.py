"""Repository layer for snapshot storage."""

from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from influencesnap.core.exceptions import StoreError
from influencesnap.models.data_models import PostRecord, Snapshot, utcnow
from influencesnap.models.schema import PostRow, SnapshotRow
from influencesnap.storage.database import Database
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


class SnapshotRepository(ABC):
    """Storage interface the ingestion and query paths depend on."""
    
    @abstractmethod
    async def find_by_handle(self, handle: str) -> Optional[Snapshot]:
        """Return the current snapshot for a handle, or None."""
    
    @abstractmethod
    async def replace(self, snapshot: Snapshot) -> None:
        """Atomically replace whatever is stored for snapshot.handle."""
    
    @abstractmethod
    async def list_all(self) -> List[Snapshot]:
        """Return every stored snapshot."""


def _to_snapshot(row: SnapshotRow) -> Snapshot:
    return Snapshot(
        handle=row.handle,
        name=row.name or "",
        profile_image_ref=row.profile_image_ref or "",
        followers=row.followers or 0,
        following=row.following or 0,
        post_count=row.post_count or 0,
        posts=[
            PostRecord(
                image_ref=post.image_ref or "",
                caption=post.caption or "",
                likes=post.likes or 0,
                comments=post.comments or 0,
            )
            for post in row.posts
        ],
        fetched_at=row.fetched_at,
    )


def _to_row(snapshot: Snapshot) -> SnapshotRow:
    return SnapshotRow(
        handle=snapshot.handle,
        name=snapshot.name,
        profile_image_ref=snapshot.profile_image_ref,
        followers=snapshot.followers,
        following=snapshot.following,
        post_count=snapshot.post_count,
        fetched_at=snapshot.fetched_at or utcnow(),
        posts=[
            PostRow(
                position=position,
                image_ref=post.image_ref,
                caption=post.caption,
                likes=post.likes,
                comments=post.comments,
            )
            for position, post in enumerate(snapshot.posts)
        ],
    )


class SqlSnapshotRepository(SnapshotRepository):
    """SnapshotRepository backed by SQLAlchemy."""
    
    def __init__(self, database: Database):
        self.database = database
    
    async def find_by_handle(self, handle: str) -> Optional[Snapshot]:
        """
        Get snapshot by handle.
        
        Args:
            handle: Profile handle
        
        Returns:
            Snapshot or None
        
        Raises:
            StoreError: If the query fails
        """
        try:
            async with self.database.session() as session:
                result = await session.execute(
                    select(SnapshotRow).where(SnapshotRow.handle == handle)
                )
                row = result.scalar_one_or_none()
                return _to_snapshot(row) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load snapshot for {handle}: {e}") from e
    
    async def replace(self, snapshot: Snapshot) -> None:
        """
        Delete the stored snapshot for the handle and insert the new one.
        
        Both steps run in one transaction: either the new snapshot is
        stored or the previous one is left untouched.
        
        Args:
            snapshot: Newly assembled snapshot
        
        Raises:
            StoreError: If the transaction fails
        """
        try:
            async with self.database.session() as session:
                existing = await session.execute(
                    select(SnapshotRow.id).where(SnapshotRow.handle == snapshot.handle)
                )
                ids = list(existing.scalars().all())
                if ids:
                    await session.execute(delete(PostRow).where(PostRow.snapshot_id.in_(ids)))
                    await session.execute(delete(SnapshotRow).where(SnapshotRow.id.in_(ids)))
                    logger.debug(f"Deleted {len(ids)} snapshot(s) for {snapshot.handle}")
                
                session.add(_to_row(snapshot))
                await session.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to replace snapshot for {snapshot.handle}: {e}") from e
        
        logger.info(f"Stored snapshot for {snapshot.handle} ({len(snapshot.posts)} posts)")
    
    async def list_all(self) -> List[Snapshot]:
        """
        Get all stored snapshots ordered by handle.
        
        Raises:
            StoreError: If the query fails
        """
        try:
            async with self.database.session() as session:
                result = await session.execute(
                    select(SnapshotRow).order_by(SnapshotRow.handle)
                )
                return [_to_snapshot(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list snapshots: {e}") from e
