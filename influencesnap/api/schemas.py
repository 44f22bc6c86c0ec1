"""Pydantic schemas for the query API.

Responses use camelCase field names. They are built from the stored
snapshot plus the metrics computed for the request and never written back.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from influencesnap.models.data_models import EngagementMetrics, Snapshot


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PostRead(CamelModel):
    image_ref: str = ""
    caption: str = ""
    likes: int = 0
    comments: int = 0


class InfluencerRead(CamelModel):
    handle: str
    name: str
    profile_image_ref: str
    followers: int
    following: int
    post_count: int
    posts: List[PostRead]
    fetched_at: Optional[datetime] = None
    average_likes: float
    average_comments: float
    engagement_rate: float

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, metrics: EngagementMetrics) -> "InfluencerRead":
        return cls(
            handle=snapshot.handle,
            name=snapshot.name,
            profile_image_ref=snapshot.profile_image_ref,
            followers=snapshot.followers,
            following=snapshot.following,
            post_count=snapshot.post_count,
            posts=[
                PostRead(
                    image_ref=post.image_ref,
                    caption=post.caption,
                    likes=post.likes,
                    comments=post.comments,
                )
                for post in snapshot.posts
            ],
            fetched_at=snapshot.fetched_at,
            average_likes=metrics.average_likes,
            average_comments=metrics.average_comments,
            engagement_rate=metrics.engagement_rate,
        )


class AnalyzeImageRequest(CamelModel):
    image_url: str = Field(min_length=1)


class AnalyzeImageResponse(CamelModel):
    label: str
