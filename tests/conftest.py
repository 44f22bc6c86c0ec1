"""Shared fixtures. No test touches the network or the real data directory."""

import os
import tempfile

os.environ.setdefault("INFLUENCESNAP_DATA_DIR", tempfile.mkdtemp(prefix="influencesnap-tests-"))

from typing import Dict, List, Optional

import pytest

from influencesnap.models.data_models import PostRecord, Snapshot
from influencesnap.storage.database import Database
from influencesnap.storage.repository import SnapshotRepository, SqlSnapshotRepository


class InMemorySnapshotRepository(SnapshotRepository):
    """Dict-backed repository recording how often replace was called."""
    
    def __init__(self):
        self.snapshots: Dict[str, Snapshot] = {}
        self.replace_calls = 0
    
    async def find_by_handle(self, handle: str) -> Optional[Snapshot]:
        return self.snapshots.get(handle)
    
    async def replace(self, snapshot: Snapshot) -> None:
        self.replace_calls += 1
        self.snapshots[snapshot.handle] = snapshot
    
    async def list_all(self) -> List[Snapshot]:
        return [self.snapshots[h] for h in sorted(self.snapshots)]


def make_snapshot(handle: str = "alice", followers: int = 1000, likes=(10, 20), comments=(1, 3), post_count: int = 250) -> Snapshot:
    return Snapshot(
        handle=handle,
        name=handle.title(),
        profile_image_ref=f"/images/{handle}/profile.jpg",
        followers=followers,
        following=42,
        post_count=post_count,
        posts=[
            PostRecord(
                image_ref=f"/images/{handle}/post_{i}.jpg",
                caption=f"post {i}",
                likes=like,
                comments=comment,
            )
            for i, (like, comment) in enumerate(zip(likes, comments), start=1)
        ],
    )


@pytest.fixture
def memory_repository():
    return InMemorySnapshotRepository()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def database(db_url):
    db = Database(db_url)
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def repository(database):
    return SqlSnapshotRepository(database)
