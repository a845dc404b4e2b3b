"""Query and filter functions over a loaded corpus.

Every function takes the Corpus as its first argument and returns new
sequences; the corpus itself is never modified. Lookups that miss return None.

Malformed filter values (dates that do not parse) are handled according to the
``strict`` flag: lenient mode drops the offending facet and logs a warning,
strict mode raises InvalidFilterError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from pydantic import AliasChoices, Field, field_validator

from .config import settings
from .corpus import Corpus
from .errors import InvalidFilterError
from .models import AccuracyLevel, CorpusModel, Era, Post, PostType, Profile
from .timestamps import month_day_key, try_parse_instant, year_month_key


logger = logging.getLogger(__name__)

PostPredicate = Callable[[Post], bool]


class FeedFilters(CorpusModel):
    """
    Facets for :func:`get_posts`.

    Facets are ANDed; set-valued facets (post_types, accuracy, tags) match when
    the post has any of the given values. Dates stay as strings so malformed
    input reaches the strict/lenient policy instead of failing here.
    """
    era: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    author_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("profileId", "authorId", "author_id")
    )
    post_types: FrozenSet[PostType] = frozenset()
    accuracy: FrozenSet[AccuracyLevel] = frozenset()
    tags: FrozenSet[str] = frozenset()
    location: Optional[str] = None
    search: Optional[str] = None

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, value: FrozenSet[str]) -> FrozenSet[str]:
        return frozenset(tag.lstrip("#").lower() for tag in value if tag)


@dataclass(frozen=True)
class SearchResults:
    posts: Tuple[Post, ...]
    profiles: Tuple[Profile, ...]
    eras: Tuple[Era, ...]


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def post_matches_text(post: Post, needle: str) -> bool:
    """Case-insensitive substring match over content, title, tags and hashtags."""
    needle = needle.lower()
    return (
        _contains(post.content, needle)
        or _contains(post.title, needle)
        or any(needle in tag.lower() for tag in (*post.tags, *post.hashtags))
    )


def _date_bound(name: str, value: Optional[str], strict: bool) -> Optional[int]:
    if not value:
        return None
    instant = try_parse_instant(value)
    if instant is None:
        if strict:
            raise InvalidFilterError(f"Unparseable {name}: {value!r}")
        logger.warning(f"Ignoring unparseable {name} filter: {value!r}")
    return instant


def build_predicates(filters: FeedFilters, strict: bool = False) -> List[PostPredicate]:
    """Translate filters into per-facet predicates."""
    predicates: List[PostPredicate] = []

    if filters.era:
        era = filters.era
        predicates.append(lambda p: p.era == era)

    start = _date_bound("start_date", filters.start_date, strict)
    if start is not None:
        predicates.append(lambda p: p.instant >= start)

    end = _date_bound("end_date", filters.end_date, strict)
    if end is not None:
        predicates.append(lambda p: p.instant <= end)

    if filters.author_id:
        author_id = filters.author_id
        predicates.append(lambda p: p.author_id == author_id)

    if filters.post_types:
        types = filters.post_types
        predicates.append(lambda p: p.type in types)

    if filters.accuracy:
        levels = filters.accuracy
        predicates.append(lambda p: p.accuracy in levels)

    if filters.tags:
        tags = filters.tags
        predicates.append(lambda p: any(t.lower() in tags for t in p.hashtags))

    if filters.location:
        place = filters.location.lower()
        predicates.append(lambda p: p.location is not None and (
            _contains(p.location.name, place) or _contains(p.location.modern, place)
        ))

    if filters.search:
        needle = filters.search
        predicates.append(lambda p: post_matches_text(p, needle))

    return predicates


# =============================================================================
# Posts
# =============================================================================

def get_posts(
    corpus: Corpus,
    filters: Optional[FeedFilters] = None,
    *,
    strict: Optional[bool] = None,
) -> List[Post]:
    """All posts matching every facet, in canonical order."""
    if strict is None:
        strict = settings.strict
    if filters is None:
        return list(corpus.posts)

    predicates = build_predicates(filters, strict=strict)
    matched = [p for p in corpus.posts if all(pred(p) for pred in predicates)]
    matched.sort(key=lambda p: p.sort_key)
    return matched


def get_post(corpus: Corpus, post_id: str) -> Optional[Post]:
    return corpus.posts_by_id.get(post_id)


def get_posts_by_author(corpus: Corpus, author_id: str) -> List[Post]:
    return [p for p in corpus.posts if p.author_id == author_id]


def get_thread(corpus: Corpus, thread_id: str) -> List[Post]:
    """Posts of a thread by thread position; unpositioned posts sort as 0."""
    thread = [p for p in corpus.posts if p.thread_id == thread_id]
    thread.sort(key=lambda p: (p.thread_position or 0, p.sort_key))
    return thread


def get_posts_on_this_day(
    corpus: Corpus,
    month: int,
    day: int,
    era: Optional[str] = None,
    limit: int = 8,
) -> List[Post]:
    """Posts from any year whose UTC calendar date is month/day."""
    key = month_day_key(month, day)
    matched = [
        p for p in corpus.posts
        if p.month_day == key and (era is None or p.era == era)
    ]
    return matched[:limit]


def get_timeline(corpus: Corpus) -> List[Tuple[str, List[Post]]]:
    """Posts bucketed by YYYY-MM, oldest month first, canonical order inside."""
    buckets = {}
    for post in reversed(corpus.posts):
        buckets.setdefault(year_month_key(post.instant), []).append(post)
    return [(key, posts[::-1]) for key, posts in buckets.items()]


# =============================================================================
# Profiles and eras
# =============================================================================

def get_profiles(corpus: Corpus) -> Sequence[Profile]:
    return corpus.profiles


def get_profile(corpus: Corpus, profile_id: str) -> Optional[Profile]:
    return corpus.profiles_by_id.get(profile_id)


def get_profile_by_handle(corpus: Corpus, handle: str) -> Optional[Profile]:
    """Case-insensitive; the leading '@' is optional."""
    return corpus.find_handle(handle)


def get_profiles_by_era(corpus: Corpus, era_id: str) -> List[Profile]:
    return [p for p in corpus.profiles if era_id in p.era]


def get_eras(corpus: Corpus) -> Sequence[Era]:
    return corpus.eras


def get_era(corpus: Corpus, era_id: str) -> Optional[Era]:
    return corpus.eras_by_id.get(era_id)


# =============================================================================
# Search
# =============================================================================

def _profile_matches(profile: Profile, needle: str) -> bool:
    return (
        _contains(profile.name, needle)
        or _contains(profile.display_name, needle)
        or _contains(profile.handle, needle)
        or _contains(profile.bio, needle)
    )


def _era_matches(era: Era, needle: str) -> bool:
    return _contains(era.name, needle) or _contains(era.description, needle)


def search(corpus: Corpus, query: str, limit: Optional[int] = None) -> SearchResults:
    """
    Free-text search across posts, profiles and eras.

    Each result list is capped at ``limit`` on its own. Posts keep canonical
    order, profiles and eras keep corpus order.
    """
    if limit is None:
        limit = settings.search_limit
    needle = query.lower()

    posts = [p for p in corpus.posts if post_matches_text(p, needle)][:limit]
    profiles = [p for p in corpus.profiles if _profile_matches(p, needle)][:limit]
    eras = [e for e in corpus.eras if _era_matches(e, needle)][:limit]

    return SearchResults(posts=tuple(posts), profiles=tuple(profiles), eras=tuple(eras))
