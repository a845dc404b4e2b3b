"""FastAPI application for the Tempus engine.

Read-only adapter over the query, ranking, relationship and notification
functions. The corpus is loaded once per process by the ``get_corpus``
dependency.
"""
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import List, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .corpus import Corpus
from .errors import CorpusLoadError, InvalidFilterError, StaleCursorError
from .loader import load_default_corpus
from .models import (
    AccuracyLevel,
    Connection,
    CorpusModel,
    Era,
    FeedSegment,
    Notification,
    Post,
    PostType,
    Profile,
    Relationship,
)
from .notifications import NotificationBatch, generate_activity_notifications
from .pagination import get_feed_segment
from . import queries, ranking, relationships


app = FastAPI(
    title="Tempus API",
    description="Historical timeline retrieval, ranking and relationship graph",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# =============================================================================
# Corpus dependency
# =============================================================================

@lru_cache(maxsize=1)
def _default_corpus() -> Corpus:
    return load_default_corpus()


def get_corpus() -> Corpus:
    """Process-wide corpus; override in tests via ``app.dependency_overrides``."""
    return _default_corpus()


@app.exception_handler(CorpusLoadError)
async def corpus_load_error_handler(request: Request, exc: CorpusLoadError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(InvalidFilterError)
async def invalid_filter_handler(request: Request, exc: InvalidFilterError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StaleCursorError)
async def stale_cursor_handler(request: Request, exc: StaleCursorError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "cursor": exc.cursor})


# =============================================================================
# Schemas
# =============================================================================

class SearchResponse(CorpusModel):
    posts: Tuple[Post, ...]
    profiles: Tuple[Profile, ...]
    eras: Tuple[Era, ...]


class TagCountResponse(CorpusModel):
    tag: str
    count: int


class TrendingTagResponse(CorpusModel):
    tag: str
    post_count: int
    total_likes: int
    total_comments: int
    trend_score: int
    top_post_id: str
    era: str


class ProfileEngagementResponse(CorpusModel):
    profile: Profile
    post_count: int
    total_likes: int
    total_comments: int
    engagement_score: int


class ScoredPostResponse(CorpusModel):
    post: Post
    score: float


class EngagementSummaryResponse(CorpusModel):
    total_posts: int
    total_hashtags: int
    total_engagement: int
    avg_likes_per_post: int


class ConnectionGroup(CorpusModel):
    type: str
    connections: Tuple[Connection, ...]


class TimelineMonth(CorpusModel):
    month: str
    posts: Tuple[Post, ...]


class NotificationRequest(CorpusModel):
    """Caller-owned notification state plus the activity signals."""
    followed_ids: List[str] = []
    liked_post_ids: List[str] = []
    existing: List[Notification] = []
    last_generated: Optional[date] = None
    today: Optional[date] = None


def _era_posts(corpus: Corpus, era: Optional[str]) -> List[Post]:
    if not era:
        return list(corpus.posts)
    return queries.get_posts(corpus, queries.FeedFilters(era=era))


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/")
async def root(corpus: Corpus = Depends(get_corpus)):
    """Health check."""
    return {
        "service": "tempus",
        "status": "healthy" if corpus.is_complete else "degraded",
        "version": "0.1.0",
        "corpusVersion": corpus.version,
        "posts": len(corpus.posts),
        "profiles": len(corpus.profiles),
        "eras": len(corpus.eras),
        "invalidRecords": len(corpus.errors),
    }


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------

@app.get("/posts", response_model=List[Post])
async def list_posts(
    era: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    author_id: Optional[str] = Query(None, alias="authorId"),
    post_type: Optional[List[PostType]] = Query(None, alias="type"),
    accuracy: Optional[List[AccuracyLevel]] = Query(None),
    tag: Optional[List[str]] = Query(None),
    location: Optional[str] = None,
    search: Optional[str] = None,
    strict: Optional[bool] = None,
    corpus: Corpus = Depends(get_corpus)
):
    """Posts matching every given facet, newest first."""
    filters = queries.FeedFilters(
        era=era,
        start_date=start_date,
        end_date=end_date,
        author_id=author_id,
        post_types=frozenset(post_type or ()),
        accuracy=frozenset(accuracy or ()),
        tags=frozenset(tag or ()),
        location=location,
        search=search,
    )
    return queries.get_posts(corpus, filters, strict=strict)


@app.get("/posts/{post_id}", response_model=Post)
async def get_post(post_id: str, corpus: Corpus = Depends(get_corpus)):
    post = queries.get_post(corpus, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@app.get("/feed", response_model=FeedSegment)
async def get_feed(
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    strict: Optional[bool] = None,
    corpus: Corpus = Depends(get_corpus)
):
    """One page of the feed; pass the previous ``nextCursor`` to continue."""
    return get_feed_segment(corpus, cursor, limit, strict=strict)


@app.get("/threads/{thread_id}", response_model=List[Post])
async def get_thread(thread_id: str, corpus: Corpus = Depends(get_corpus)):
    thread = queries.get_thread(corpus, thread_id)
    if not thread:
        raise HTTPException(status_code=404, detail="Thread not found")
    return thread


@app.get("/on-this-day", response_model=List[Post])
async def on_this_day(
    month: Optional[int] = Query(None, ge=1, le=12),
    day: Optional[int] = Query(None, ge=1, le=31),
    era: Optional[str] = None,
    limit: int = Query(8, ge=1),
    corpus: Corpus = Depends(get_corpus)
):
    """Posts from any year on the given month and day (default: today, UTC)."""
    today = datetime.now(timezone.utc).date()
    return queries.get_posts_on_this_day(
        corpus,
        month or today.month,
        day or today.day,
        era=era,
        limit=limit,
    )


@app.get("/timeline", response_model=List[TimelineMonth])
async def get_timeline(corpus: Corpus = Depends(get_corpus)):
    """Posts grouped by month, oldest month first."""
    return [
        TimelineMonth(month=month, posts=tuple(posts))
        for month, posts in queries.get_timeline(corpus)
    ]


# -----------------------------------------------------------------------------
# Profiles
# -----------------------------------------------------------------------------

@app.get("/profiles", response_model=List[Profile])
async def list_profiles(corpus: Corpus = Depends(get_corpus)):
    return list(queries.get_profiles(corpus))


@app.get("/profiles/handle/{handle}", response_model=Profile)
async def get_profile_by_handle(handle: str, corpus: Corpus = Depends(get_corpus)):
    """Case-insensitive handle lookup; the '@' is optional."""
    profile = queries.get_profile_by_handle(corpus, handle)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@app.get("/profiles/{profile_id}", response_model=Profile)
async def get_profile(profile_id: str, corpus: Corpus = Depends(get_corpus)):
    profile = queries.get_profile(corpus, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


def _require_profile(corpus: Corpus, profile_id: str) -> Profile:
    profile = queries.get_profile(corpus, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@app.get("/profiles/{profile_id}/posts", response_model=List[Post])
async def get_profile_posts(profile_id: str, corpus: Corpus = Depends(get_corpus)):
    _require_profile(corpus, profile_id)
    return queries.get_posts_by_author(corpus, profile_id)


@app.get("/profiles/{profile_id}/relationships", response_model=List[Relationship])
async def get_profile_relationships(profile_id: str, corpus: Corpus = Depends(get_corpus)):
    """Relationships the profile declares, in declaration order."""
    _require_profile(corpus, profile_id)
    return list(relationships.get_relationships(corpus, profile_id))


@app.get("/profiles/{profile_id}/connections", response_model=List[ConnectionGroup])
async def get_profile_connections(
    profile_id: str,
    invert: Optional[bool] = None,
    corpus: Corpus = Depends(get_corpus)
):
    """Outgoing and incoming connections grouped by relationship type."""
    _require_profile(corpus, profile_id)
    connections = relationships.get_connected_profiles(corpus, profile_id, invert_types=invert)
    return [
        ConnectionGroup(type=rel_type.value, connections=tuple(group))
        for rel_type, group in relationships.group_connections(connections)
    ]


@app.get("/profiles/{profile_id}/likes", response_model=List[ScoredPostResponse])
async def get_profile_likes(
    profile_id: str,
    limit: int = Query(ranking.DEFAULT_SIMULATED_LIKES, ge=1),
    corpus: Corpus = Depends(get_corpus)
):
    """Posts this historical figure would plausibly have liked."""
    _require_profile(corpus, profile_id)
    return [
        ScoredPostResponse(post=s.post, score=s.score)
        for s in ranking.get_simulated_likes(corpus, profile_id, limit=limit)
    ]


@app.get("/relationships/between", response_model=Relationship)
async def get_relationship_between(
    a: str,
    b: str,
    corpus: Corpus = Depends(get_corpus)
):
    rel = relationships.get_relationship_between(corpus, a, b)
    if not rel:
        raise HTTPException(status_code=404, detail="No relationship between profiles")
    return rel


@app.get("/suggested", response_model=List[Profile])
async def get_suggested(
    limit: int = Query(5, ge=1),
    corpus: Corpus = Depends(get_corpus)
):
    """Verified profiles with the most followers."""
    return ranking.get_suggested_profiles(corpus, limit=limit)


# -----------------------------------------------------------------------------
# Eras
# -----------------------------------------------------------------------------

@app.get("/eras", response_model=List[Era])
async def list_eras(corpus: Corpus = Depends(get_corpus)):
    return list(queries.get_eras(corpus))


@app.get("/eras/{era_id}", response_model=Era)
async def get_era(era_id: str, corpus: Corpus = Depends(get_corpus)):
    era = queries.get_era(corpus, era_id)
    if not era:
        raise HTTPException(status_code=404, detail="Era not found")
    return era


@app.get("/eras/{era_id}/profiles", response_model=List[Profile])
async def get_era_profiles(era_id: str, corpus: Corpus = Depends(get_corpus)):
    if not queries.get_era(corpus, era_id):
        raise HTTPException(status_code=404, detail="Era not found")
    return queries.get_profiles_by_era(corpus, era_id)


# -----------------------------------------------------------------------------
# Search and ranking
# -----------------------------------------------------------------------------

@app.get("/search", response_model=SearchResponse)
async def search(
    q: str,
    limit: Optional[int] = Query(None, ge=1),
    corpus: Corpus = Depends(get_corpus)
):
    results = queries.search(corpus, q, limit=limit)
    return SearchResponse(posts=results.posts, profiles=results.profiles, eras=results.eras)


@app.get("/trending", response_model=List[TagCountResponse])
async def get_trending(
    limit: int = Query(10, ge=1),
    corpus: Corpus = Depends(get_corpus)
):
    """Hashtags by number of posts using them."""
    return [
        TagCountResponse(tag=t.tag, count=t.count)
        for t in ranking.get_trending(corpus, limit=limit)
    ]


@app.get("/trending/hashtags", response_model=List[TrendingTagResponse])
async def get_trending_hashtags(
    era: Optional[str] = None,
    limit: int = Query(ranking.DEFAULT_TRENDING_HASHTAGS, ge=1),
    corpus: Corpus = Depends(get_corpus)
):
    """Hashtags by trend score (likes + 2 * comments)."""
    return [
        TrendingTagResponse(
            tag=t.tag,
            post_count=t.post_count,
            total_likes=t.total_likes,
            total_comments=t.total_comments,
            trend_score=t.trend_score,
            top_post_id=t.top_post.id,
            era=t.era,
        )
        for t in ranking.trending_hashtags(_era_posts(corpus, era), limit=limit)
    ]


@app.get("/trending/posts", response_model=List[Post])
async def get_top_posts(
    era: Optional[str] = None,
    limit: int = Query(ranking.DEFAULT_TOP_POSTS, ge=1),
    corpus: Corpus = Depends(get_corpus)
):
    return ranking.top_posts(_era_posts(corpus, era), limit=limit)


@app.get("/trending/profiles", response_model=List[ProfileEngagementResponse])
async def get_top_profiles(
    era: Optional[str] = None,
    limit: int = Query(ranking.DEFAULT_TOP_PROFILES, ge=1),
    corpus: Corpus = Depends(get_corpus)
):
    return [
        ProfileEngagementResponse(
            profile=e.profile,
            post_count=e.post_count,
            total_likes=e.total_likes,
            total_comments=e.total_comments,
            engagement_score=e.engagement_score,
        )
        for e in ranking.top_profiles(corpus, _era_posts(corpus, era), limit=limit)
    ]


@app.get("/trending/summary", response_model=EngagementSummaryResponse)
async def get_engagement_summary(
    era: Optional[str] = None,
    corpus: Corpus = Depends(get_corpus)
):
    summary = ranking.engagement_summary(_era_posts(corpus, era))
    return EngagementSummaryResponse(
        total_posts=summary.total_posts,
        total_hashtags=summary.total_hashtags,
        total_engagement=summary.total_engagement,
        avg_likes_per_post=summary.avg_likes_per_post,
    )


# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------

@app.post("/notifications/generate", response_model=NotificationBatch)
async def generate_notifications(
    request: NotificationRequest,
    corpus: Corpus = Depends(get_corpus)
):
    """
    Run the daily notification generation over caller-owned state.
    The caller persists the returned list and ``lastGenerated`` date.
    """
    return generate_activity_notifications(
        corpus,
        request.followed_ids,
        request.liked_post_ids,
        existing=request.existing,
        last_generated=request.last_generated,
        today=request.today,
    )
