"""Shared record factories for building synthetic corpora."""
import pytest

from tempus.config import LoadPolicy
from tempus.loader import load_corpus


def make_post(post_id, author_id="author-x", timestamp="2024-01-01T00:00:00Z", **overrides):
    record = {
        "id": post_id,
        "type": "status",
        "authorId": author_id,
        "era": "modern",
        "content": f"Post {post_id}",
        "timestamp": timestamp,
        "displayDate": timestamp[:10],
        "likes": 0,
        "comments": 0,
        "shares": 0,
        "accuracy": "documented",
        "hashtags": [],
        "mentions": [],
    }
    record.update(overrides)
    return record


def make_profile(profile_id, handle=None, **overrides):
    record = {
        "id": profile_id,
        "name": profile_id.replace("-", " ").title(),
        "displayName": profile_id.replace("-", " ").title(),
        "handle": handle or f"@{profile_id.replace('-', '')}",
        "bio": f"Bio of {profile_id}",
        "avatar": f"/avatars/{profile_id}.jpg",
        "era": ["modern"],
        "isVerified": False,
        "followers": 0,
        "following": 0,
        "relationships": [],
    }
    record.update(overrides)
    return record


def make_era(era_id="modern", **overrides):
    record = {
        "id": era_id,
        "name": era_id.replace("-", " ").title(),
        "description": f"The {era_id} era",
        "startDate": "1900-01-01",
        "endDate": "2100-01-01",
    }
    record.update(overrides)
    return record


def build_corpus(posts=(), profiles=(), eras=None, relationships=(), **kwargs):
    kwargs.setdefault("policy", LoadPolicy.FAIL_CLOSED)
    return load_corpus(
        list(posts),
        list(profiles),
        [make_era()] if eras is None else list(eras),
        list(relationships),
        **kwargs,
    )


@pytest.fixture
def three_post_corpus():
    """Three posts by author X dated 2024-01-01 .. 2024-01-03."""
    return build_corpus(
        posts=[
            make_post("p1", timestamp="2024-01-01T00:00:00Z"),
            make_post("p2", timestamp="2024-01-02T00:00:00Z"),
            make_post("p3", timestamp="2024-01-03T00:00:00Z"),
        ],
        profiles=[make_profile("author-x")],
    )
