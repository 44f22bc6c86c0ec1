"""SQLAlchemy ORM models for InfluenceSnap."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from influencesnap.models.data_models import utcnow


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class SnapshotRow(Base):
    """Stored snapshot of one influencer profile."""
    
    __tablename__ = "snapshots"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    
    # Natural key: at most one snapshot per handle
    handle: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(200))
    profile_image_ref: Mapped[Optional[str]] = mapped_column(Text)
    
    # Counts
    followers: Mapped[int] = mapped_column(Integer, default=0)
    following: Mapped[int] = mapped_column(Integer, default=0)
    post_count: Mapped[int] = mapped_column(Integer, default=0)
    
    fetched_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    
    # Relationships
    posts: Mapped[List["PostRow"]] = relationship(
        back_populates="snapshot",
        cascade="all, delete-orphan",
        order_by="PostRow.position",
        lazy="selectin",
    )
    
    def __repr__(self) -> str:
        return f"<SnapshotRow(handle='{self.handle}', posts={len(self.posts)})>"


class PostRow(Base):
    """Post owned by a snapshot, most recent first by position."""
    
    __tablename__ = "snapshot_posts"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    
    snapshot_id: Mapped[int] = mapped_column(
        ForeignKey("snapshots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    
    image_ref: Mapped[Optional[str]] = mapped_column(Text)
    caption: Mapped[Optional[str]] = mapped_column(Text)
    
    # Engagement metrics
    likes: Mapped[int] = mapped_column(Integer, default=0)
    comments: Mapped[int] = mapped_column(Integer, default=0)
    
    snapshot: Mapped["SnapshotRow"] = relationship(back_populates="posts")
    
    def __repr__(self) -> str:
        return f"<PostRow(snapshot={self.snapshot_id}, position={self.position})>"
