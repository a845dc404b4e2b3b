"""Ranking - trending hashtags, engagement leaders and simulated affinity.

Three separate metrics, not interchangeable:
- trend score:      likes + 2 * comments            (hashtags only)
- engagement score: likes + 2 * comments + 3 * shares  (posts and profiles)
- affinity score:   weighted relevance of a post to one profile

Every ranking breaks ties on a stable key, so the result does not depend on
the order of the input posts.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .corpus import Corpus
from .models import AccuracyLevel, Post, Profile
from .relationships import get_connected_profiles


# =============================================================================
# Parameters
# =============================================================================

COMMENT_WEIGHT = 2
SHARE_WEIGHT = 3

AFFINITY_MENTION = 100
AFFINITY_HASHTAG = 20
AFFINITY_CONNECTION = 50
AFFINITY_LIKES_DIVISOR = 1000
AFFINITY_LIKES_CAP = 20
AFFINITY_ACCURACY = 10
AFFINITY_ACCURATE_LEVELS = frozenset({AccuracyLevel.VERIFIED, AccuracyLevel.DOCUMENTED})

DEFAULT_TRENDING_HASHTAGS = 15
DEFAULT_TOP_POSTS = 10
DEFAULT_TOP_PROFILES = 10
DEFAULT_SIMULATED_LIKES = 20


@dataclass(frozen=True)
class TrendingTag:
    tag: str
    post_count: int
    total_likes: int
    total_comments: int
    trend_score: int
    top_post: Post
    era: str

    @property
    def label(self) -> str:
        return f"#{self.tag}"


@dataclass(frozen=True)
class TagCount:
    tag: str
    count: int


@dataclass(frozen=True)
class ProfileEngagement:
    profile: Profile
    post_count: int
    total_likes: int
    total_comments: int
    engagement_score: int


@dataclass(frozen=True)
class ScoredPost:
    post: Post
    score: float


@dataclass(frozen=True)
class EngagementSummary:
    total_posts: int
    total_hashtags: int
    total_engagement: int
    avg_likes_per_post: int


def trend_score(likes: int, comments: int) -> int:
    return likes + COMMENT_WEIGHT * comments


def engagement_score(post: Post) -> int:
    return post.likes + COMMENT_WEIGHT * post.comments + SHARE_WEIGHT * post.shares


# =============================================================================
# Trending
# =============================================================================

def trending_hashtags(posts: Iterable[Post], limit: int = DEFAULT_TRENDING_HASHTAGS) -> List[TrendingTag]:
    """
    Aggregate hashtags over ``posts`` and rank them by trend score.

    A tag repeated inside one post counts once. The representative post is
    the tag's most-liked post (canonical order on ties).
    """
    stats: Dict[str, dict] = {}

    for post in posts:
        for tag in post.unique_hashtags:
            entry = stats.setdefault(tag, {"count": 0, "likes": 0, "comments": 0, "top": None})
            entry["count"] += 1
            entry["likes"] += post.likes
            entry["comments"] += post.comments
            top = entry["top"]
            if top is None or (-post.likes, post.sort_key) < (-top.likes, top.sort_key):
                entry["top"] = post

    ranked = [
        TrendingTag(
            tag=tag,
            post_count=entry["count"],
            total_likes=entry["likes"],
            total_comments=entry["comments"],
            trend_score=trend_score(entry["likes"], entry["comments"]),
            top_post=entry["top"],
            era=entry["top"].era,
        )
        for tag, entry in stats.items()
    ]
    ranked.sort(key=lambda t: (-t.trend_score, t.tag))
    return ranked[:limit]


def get_trending(corpus: Corpus, limit: int = 10) -> List[TagCount]:
    """Most used hashtags across the corpus by post count."""
    counts: Dict[str, int] = defaultdict(int)
    for post in corpus.posts:
        for tag in post.unique_hashtags:
            counts[tag] += 1

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [TagCount(tag=tag, count=count) for tag, count in ranked[:limit]]


# =============================================================================
# Engagement
# =============================================================================

def top_posts(posts: Iterable[Post], limit: int = DEFAULT_TOP_POSTS) -> List[Post]:
    """Highest engagement score first, canonical order on ties."""
    return sorted(posts, key=lambda p: (-engagement_score(p), p.sort_key))[:limit]


def top_profiles(
    corpus: Corpus,
    posts: Optional[Iterable[Post]] = None,
    limit: int = DEFAULT_TOP_PROFILES,
) -> List[ProfileEngagement]:
    """
    Rank authors by the summed engagement score of their posts.

    ``posts`` defaults to the whole corpus; pass an era-filtered list to rank
    within an era. Authors with no posts in the set, and posts whose author
    is not a loaded profile, are left out.
    """
    if posts is None:
        posts = corpus.posts

    totals: Dict[str, list] = {}
    for post in posts:
        if post.author_id not in corpus.profiles_by_id:
            continue
        entry = totals.setdefault(post.author_id, [0, 0, 0, 0])
        entry[0] += 1
        entry[1] += post.likes
        entry[2] += post.comments
        entry[3] += engagement_score(post)

    ranked = [
        ProfileEngagement(
            profile=corpus.profiles_by_id[author_id],
            post_count=count,
            total_likes=likes,
            total_comments=comments,
            engagement_score=score,
        )
        for author_id, (count, likes, comments, score) in totals.items()
    ]
    ranked.sort(key=lambda e: (-e.engagement_score, e.profile.id))
    return ranked[:limit]


def get_suggested_profiles(corpus: Corpus, limit: int = 5) -> List[Profile]:
    """Verified profiles by follower count."""
    verified = [p for p in corpus.profiles if p.is_verified]
    verified.sort(key=lambda p: (-p.followers, p.id))
    return verified[:limit]


def engagement_summary(posts: Sequence[Post]) -> EngagementSummary:
    total_likes = sum(p.likes for p in posts)
    hashtags = {tag for p in posts for tag in p.hashtags}
    return EngagementSummary(
        total_posts=len(posts),
        total_hashtags=len(hashtags),
        total_engagement=sum(p.likes + p.comments + p.shares for p in posts),
        # Round half up
        avg_likes_per_post=int(total_likes / len(posts) + 0.5) if posts else 0,
    )


# =============================================================================
# Affinity
# =============================================================================

def _profile_terms(profile: Profile) -> List[str]:
    terms = [t.lower() for t in (*profile.tags, *profile.occupation)]
    return [t for t in terms if t]


def affinity_score(profile: Profile, post: Post, connected_ids: Set[str]) -> float:
    """
    How likely ``profile`` would have liked ``post``.

    +100 when the post mentions the profile, +20 per hashtag overlapping a
    profile tag or occupation (substring either way), +50 when the author is
    connected to the profile, up to +20 from likes (likes / 1000) and +10 for
    verified or documented accuracy.
    """
    score = 0.0

    if profile.id in post.mentions:
        score += AFFINITY_MENTION

    terms = _profile_terms(profile)
    if terms:
        for tag in post.unique_hashtags:
            tag = tag.lower()
            if tag and any(tag in term or term in tag for term in terms):
                score += AFFINITY_HASHTAG

    if post.author_id in connected_ids:
        score += AFFINITY_CONNECTION

    score += min(post.likes / AFFINITY_LIKES_DIVISOR, AFFINITY_LIKES_CAP)

    if post.accuracy in AFFINITY_ACCURATE_LEVELS:
        score += AFFINITY_ACCURACY

    return score


def rank_affinity(
    profile: Profile,
    posts: Iterable[Post],
    connected_ids: Set[str],
    limit: int = DEFAULT_SIMULATED_LIKES,
) -> List[ScoredPost]:
    """Score same-era posts by other authors and keep the best ``limit``."""
    eras = set(profile.era)
    scored = []
    for post in posts:
        if post.author_id == profile.id or post.era not in eras:
            continue
        score = affinity_score(profile, post, connected_ids)
        if score > 0:
            scored.append(ScoredPost(post=post, score=score))

    scored.sort(key=lambda s: (-s.score, s.post.sort_key))
    return scored[:limit]


def get_simulated_likes(
    corpus: Corpus,
    profile_id: str,
    limit: int = DEFAULT_SIMULATED_LIKES,
) -> List[ScoredPost]:
    """Posts a historical figure would plausibly have liked; empty for unknown ids."""
    profile = corpus.profiles_by_id.get(profile_id)
    if profile is None:
        return []
    connected_ids = {c.profile.id for c in get_connected_profiles(corpus, profile_id)}
    return rank_affinity(profile, corpus.posts, connected_ids, limit=limit)
