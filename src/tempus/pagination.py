"""Cursor pagination over the canonical feed order.

A cursor is the id of the last post the caller has seen. Cursors stay valid
only for the corpus version they were issued against; segments carry that
version so callers can detect a change.
"""
import logging
from typing import Optional

from .config import settings
from .corpus import Corpus
from .errors import InvalidFilterError, StaleCursorError
from .models import FeedSegment


logger = logging.getLogger(__name__)

INITIAL_SEGMENT_ID = "initial"


def get_feed_segment(
    corpus: Corpus,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    *,
    strict: Optional[bool] = None,
) -> FeedSegment:
    """
    Return the ``limit`` posts that follow ``cursor`` in canonical order.

    Without a cursor the first page is returned. An unknown cursor restarts
    from the first page in lenient mode and raises StaleCursorError in strict
    mode. ``next_cursor`` is set only when more posts remain.
    """
    if strict is None:
        strict = settings.strict
    if limit is None:
        limit = settings.feed_page_size

    if limit < 1:
        if strict:
            raise InvalidFilterError(f"limit must be at least 1, got {limit}")
        logger.warning(f"Clamping feed limit {limit} to 1")
        limit = 1

    start = 0
    if cursor:
        position = corpus.position_of(cursor)
        if position is None:
            if strict:
                raise StaleCursorError(cursor)
            logger.warning(f"Unknown feed cursor {cursor!r}; restarting from the first page")
        else:
            start = position + 1

    posts = corpus.posts[start:start + limit]
    has_more = start + limit < len(corpus.posts)

    return FeedSegment(
        id=cursor or INITIAL_SEGMENT_ID,
        start_date=posts[0].timestamp if posts else "",
        end_date=posts[-1].timestamp if posts else "",
        posts=posts,
        has_more=has_more,
        next_cursor=posts[-1].id if has_more and posts else None,
        corpus_version=corpus.version,
    )
