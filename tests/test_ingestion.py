"""Tests for the ingestion pipeline."""

import itertools

import httpx
import pytest

from influencesnap.core.auth import Credentials, DeviceFingerprint
from influencesnap.core.downloader import AssetDownloader
from influencesnap.core.exceptions import AuthError, AuthFailure, FetchError, ProfileNotFoundError
from influencesnap.core.ingestion import IngestionService
from influencesnap.models.data_models import ProfileMetadata, RawPost

from conftest import make_snapshot


class FakeSession:
    def __init__(self):
        self.closed = False
        self.fingerprint = DeviceFingerprint.derive("scraper")
    
    def close(self):
        self.closed = True


class FakeAuthenticator:
    def __init__(self, error=None):
        self.error = error
        self.sessions = []
    
    def establish_session(self, credentials):
        if self.error:
            raise self.error
        session = FakeSession()
        self.sessions.append(session)
        return session


class FakeFetcher:
    """Serves an endless feed so the window limit is what stops reading."""
    
    def __init__(self, posts=None, missing=False, feed_error=False):
        self.posts = posts
        self.missing = missing
        self.feed_error = feed_error
        self.consumed = 0
    
    def resolve_handle(self, session, handle):
        if self.missing:
            raise ProfileNotFoundError(f"Profile not found: {handle}")
        return "1234"
    
    def fetch_metadata(self, session, external_id):
        return ProfileMetadata(
            name="Alice",
            followers=2000,
            following=10,
            post_count=812,
            profile_image_url="https://cdn.example/profile.jpg",
        )
    
    def fetch_recent_posts(self, session, external_id, limit):
        if self.feed_error:
            raise FetchError("feed unavailable")
        source = self.posts if self.posts is not None else (
            RawPost(image_url=f"https://cdn.example/{i}.jpg", caption=f"c{i}", likes=i * 10, comments=i)
            for i in itertools.count(1)
        )
        for post in itertools.islice(source, limit):
            self.consumed += 1
            yield post


def failing_transport(failed_paths=()):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in failed_paths:
            return httpx.Response(503)
        return httpx.Response(200, content=b"img")
    return httpx.MockTransport(handler)


def build_service(repository, tmp_path, fetcher=None, authenticator=None, failed_paths=(), window_size=10):
    return IngestionService(
        repository,
        Credentials("scraper", "secret"),
        authenticator=authenticator or FakeAuthenticator(),
        fetcher=fetcher or FakeFetcher(),
        downloader_factory=lambda: AssetDownloader(
            tmp_path, "/images", max_concurrent=window_size, transport=failing_transport(failed_paths)
        ),
        window_size=window_size,
    )


async def test_run_stores_snapshot(memory_repository, tmp_path):
    summary = await build_service(memory_repository, tmp_path).run("alice")
    
    snapshot = memory_repository.snapshots["alice"]
    assert snapshot.name == "Alice"
    assert snapshot.post_count == 812
    assert len(snapshot.posts) == 10
    assert snapshot.profile_image_ref == "/images/alice/profile.jpg"
    assert snapshot.posts[0].image_ref == "/images/alice/post_1.jpg"
    assert snapshot.posts[0].likes == 10
    assert snapshot.posts[9].image_ref == "/images/alice/post_10.jpg"
    assert (tmp_path / "alice" / "post_10.jpg").exists()
    assert summary.posts_fetched == 10
    assert summary.assets_downloaded == 11
    assert summary.assets_failed == 0


async def test_feed_is_read_only_up_to_window(memory_repository, tmp_path):
    fetcher = FakeFetcher()
    await build_service(memory_repository, tmp_path, fetcher=fetcher, window_size=3).run("alice")
    
    assert fetcher.consumed == 3
    assert len(memory_repository.snapshots["alice"].posts) == 3


async def test_short_feed_is_not_padded(memory_repository, tmp_path):
    fetcher = FakeFetcher(posts=[RawPost(image_url="https://cdn.example/only.jpg", likes=7)])
    await build_service(memory_repository, tmp_path, fetcher=fetcher).run("alice")
    
    snapshot = memory_repository.snapshots["alice"]
    assert len(snapshot.posts) == 1
    assert snapshot.posts[0].caption == ""
    assert snapshot.posts[0].comments == 0


async def test_failed_asset_does_not_block_others(memory_repository, tmp_path):
    summary = await build_service(memory_repository, tmp_path, failed_paths=("/3.jpg",)).run("alice")
    
    posts = memory_repository.snapshots["alice"].posts
    assert len(posts) == 10
    assert posts[2].image_ref == ""
    assert posts[2].likes == 30
    assert all(p.image_ref for i, p in enumerate(posts) if i != 2)
    assert summary.assets_failed == 1
    assert summary.errors == ["Failed to download alice/post_3.jpg"]


async def test_failed_profile_picture_leaves_empty_ref(memory_repository, tmp_path):
    await build_service(memory_repository, tmp_path, failed_paths=("/profile.jpg",)).run("alice")
    assert memory_repository.snapshots["alice"].profile_image_ref == ""


async def test_post_without_image_gets_empty_ref(memory_repository, tmp_path):
    fetcher = FakeFetcher(posts=[RawPost(image_url=None, caption="text only", likes=3)])
    summary = await build_service(memory_repository, tmp_path, fetcher=fetcher).run("alice")
    
    assert memory_repository.snapshots["alice"].posts[0].image_ref == ""
    assert summary.assets_failed == 0


async def test_rerun_replaces_snapshot(repository, tmp_path):
    service = build_service(repository, tmp_path)
    await service.run("alice")
    await service.run("alice")
    
    snapshots = await repository.list_all()
    assert [s.handle for s in snapshots] == ["alice"]
    assert len(snapshots[0].posts) == 10


async def test_handle_casing_maps_to_one_snapshot(repository, tmp_path):
    service = build_service(repository, tmp_path)
    summary = await service.run("Alice")
    await service.run("@alice")
    
    snapshots = await repository.list_all()
    assert [s.handle for s in snapshots] == ["alice"]
    assert summary.handle == "alice"
    assert snapshots[0].profile_image_ref == "/images/alice/profile.jpg"
    assert (tmp_path / "alice" / "profile.jpg").exists()


async def test_session_is_released(memory_repository, tmp_path):
    authenticator = FakeAuthenticator()
    await build_service(memory_repository, tmp_path, authenticator=authenticator).run("alice")
    assert authenticator.sessions[0].closed


async def test_auth_failure_aborts_without_store(memory_repository, tmp_path):
    authenticator = FakeAuthenticator(error=AuthError(AuthFailure.INVALID))
    with pytest.raises(AuthError):
        await build_service(memory_repository, tmp_path, authenticator=authenticator).run("alice")
    assert memory_repository.replace_calls == 0


@pytest.mark.parametrize(
    "fetcher, error",
    [
        (FakeFetcher(missing=True), ProfileNotFoundError),
        (FakeFetcher(feed_error=True), FetchError),
    ],
)
async def test_fetch_failure_preserves_previous_snapshot(memory_repository, tmp_path, fetcher, error):
    previous = make_snapshot("alice")
    await memory_repository.replace(previous)
    authenticator = FakeAuthenticator()
    
    with pytest.raises(error):
        await build_service(memory_repository, tmp_path, fetcher=fetcher, authenticator=authenticator).run("alice")
    
    assert memory_repository.snapshots["alice"] is previous
    assert memory_repository.replace_calls == 1
    assert authenticator.sessions[0].closed
