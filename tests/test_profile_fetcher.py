"""Tests for profile and feed retrieval with a fake instaloader backend."""

import itertools
from types import SimpleNamespace

import instaloader
import pytest

from influencesnap.core.exceptions import FetchError, ProfileNotFoundError
from influencesnap.core.profile_fetcher import ProfileFetcher


class FakePost:
    def __init__(self, index, caption="caption", likes=None, comments=None, url="auto"):
        self.url = f"https://cdn.example/{index}.jpg" if url == "auto" else url
        self.caption = caption
        self.likes = index * 10 if likes is None else likes
        self.comments = index if comments is None else comments


class FakeProfile:
    by_name = {}
    pages_served = 0
    
    def __init__(self, userid, username, posts=None, feed_error=None):
        self.userid = userid
        self.username = username
        self.full_name = username.title()
        self.followers = 1500
        self.followees = 300
        self.mediacount = 640
        self.profile_pic_url = f"https://cdn.example/{username}.jpg"
        self.posts = posts
        self.feed_error = feed_error
    
    @classmethod
    def from_username(cls, context, username):
        if username not in cls.by_name:
            raise instaloader.exceptions.ProfileNotExistsException(f"Profile {username} does not exist.")
        return cls.by_name[username]
    
    @classmethod
    def from_id(cls, context, profile_id):
        for profile in cls.by_name.values():
            if profile.userid == profile_id:
                return profile
        raise instaloader.exceptions.ProfileNotExistsException(f"No profile with id {profile_id}")
    
    def get_posts(self):
        if self.feed_error:
            raise self.feed_error
        source = self.posts if self.posts is not None else (FakePost(i) for i in itertools.count(1))
        for post in source:
            FakeProfile.pages_served += 1
            yield post


@pytest.fixture
def profiles(monkeypatch):
    FakeProfile.by_name = {}
    FakeProfile.pages_served = 0
    monkeypatch.setattr(instaloader, "Profile", FakeProfile)
    return FakeProfile.by_name


@pytest.fixture
def session():
    return SimpleNamespace(context=object())


def test_resolve_handle(profiles, session):
    profiles["alice"] = FakeProfile(42, "alice")
    assert ProfileFetcher().resolve_handle(session, "alice") == "42"


def test_resolve_unknown_handle(profiles, session):
    with pytest.raises(ProfileNotFoundError):
        ProfileFetcher().resolve_handle(session, "ghost")


def test_resolve_platform_error(profiles, session, monkeypatch):
    def blocked(context, username):
        raise instaloader.exceptions.ConnectionException("403 Forbidden")
    
    monkeypatch.setattr(FakeProfile, "from_username", staticmethod(blocked))
    with pytest.raises(FetchError):
        ProfileFetcher().resolve_handle(session, "alice")


def test_fetch_metadata(profiles, session):
    profiles["alice"] = FakeProfile(42, "alice")
    fetcher = ProfileFetcher()
    
    metadata = fetcher.fetch_metadata(session, fetcher.resolve_handle(session, "alice"))
    
    assert metadata.name == "Alice"
    assert metadata.followers == 1500
    assert metadata.following == 300
    assert metadata.post_count == 640
    assert metadata.profile_image_url == "https://cdn.example/alice.jpg"


def test_fetch_metadata_by_id_without_resolve(profiles, session):
    profiles["bob"] = FakeProfile(7, "bob")
    assert ProfileFetcher().fetch_metadata(session, "7").name == "Bob"


def test_recent_posts_stop_at_limit(profiles, session):
    profiles["alice"] = FakeProfile(42, "alice")
    
    posts = list(ProfileFetcher().fetch_recent_posts(session, "42", 10))
    
    assert len(posts) == 10
    assert FakeProfile.pages_served == 10
    assert posts[0].likes == 10
    assert posts[0].image_url == "https://cdn.example/1.jpg"


def test_recent_posts_stop_when_feed_exhausted(profiles, session):
    profiles["alice"] = FakeProfile(42, "alice", posts=[FakePost(1), FakePost(2)])
    assert len(list(ProfileFetcher().fetch_recent_posts(session, "42", 10))) == 2


def test_recent_posts_are_lazy_and_single_use(profiles, session):
    profiles["alice"] = FakeProfile(42, "alice")
    
    feed = ProfileFetcher().fetch_recent_posts(session, "42", 5)
    assert FakeProfile.pages_served == 0
    
    first = next(feed)
    assert first.likes == 10
    assert len(list(feed)) == 4
    assert list(feed) == []


def test_missing_fields_default(profiles, session):
    profiles["alice"] = FakeProfile(42, "alice", posts=[FakePost(1, caption=None, likes=-1, url=None)])
    profiles["alice"].posts[0].comments = None
    
    post = next(ProfileFetcher().fetch_recent_posts(session, "42", 10))
    
    assert post.caption == ""
    assert post.comments == 0
    assert post.likes == 0
    assert post.image_url is None


def test_feed_error_raises_fetch_error(profiles, session):
    profiles["alice"] = FakeProfile(
        42, "alice", feed_error=instaloader.exceptions.PrivateProfileNotFollowedException("private")
    )
    with pytest.raises(FetchError):
        list(ProfileFetcher().fetch_recent_posts(session, "42", 10))
