"""Activity notification synthesis.

The caller owns the notification list and the date it was last generated;
this module only computes the next state from a snapshot of both. Every
generated notification has an id derived from its source (post id, event
key), so running generation again never duplicates an entry.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import settings
from .corpus import Corpus
from .models import CorpusModel, Notification, NotificationType


logger = logging.getLogger(__name__)

MAX_NEW_POST_NOTIFICATIONS = 3
MAX_TRENDING_NOTIFICATIONS = 2
TRENDING_LIKES_THRESHOLD = 50
MILESTONE_FOLLOWS = 5
MILESTONE_LIKES = 10
MILESTONE_ID = "milestone-active-user"

NEW_POST_PREVIEW = 80
TRENDING_PREVIEW = 60


# Static events keyed by "MM-DD"
HISTORICAL_EVENT_NOTIFICATIONS: Dict[str, List[dict]] = {
    "01-01": [{
        "id": "event-newyear-1776",
        "title": "Continental Army Flag Raised",
        "description": "Washington raises the Grand Union Flag at Cambridge, Massachusetts.",
        "era": "american-revolution",
        "link": "/era/american-revolution",
    }],
    "07-04": [{
        "id": "event-july4-1776",
        "title": "Declaration of Independence Adopted",
        "description": "The Continental Congress formally adopts the Declaration of Independence!",
        "era": "american-revolution",
        "link": "/search?q=DeclarationOfIndependence",
    }],
    "07-14": [{
        "id": "event-bastille",
        "title": "The Bastille Has Fallen!",
        "description": "Revolutionary forces storm the fortress-prison in Paris.",
        "era": "french-revolution",
        "link": "/era/french-revolution",
    }],
    "11-11": [{
        "id": "event-armistice",
        "title": "Armistice Signed",
        "description": "The guns have fallen silent. The Great War is over.",
        "era": "world-war-1",
        "link": "/era/world-war-1",
    }],
}


class NotificationBatch(CorpusModel):
    """Result of one generation run."""
    notifications: Tuple[Notification, ...]
    last_generated: Optional[date] = None
    added: Tuple[Notification, ...] = ()


def _iso_timestamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _event_notifications(today: date, timestamp: str) -> List[Notification]:
    key = f"{today.month:02d}-{today.day:02d}"
    return [
        Notification(type=NotificationType.EVENT, timestamp=timestamp, **event)
        for event in HISTORICAL_EVENT_NOTIFICATIONS.get(key, [])
    ]


def _preview(text: str, length: int) -> str:
    return text[:length] + ("..." if len(text) > length else "")


def _new_post_notifications(
    corpus: Corpus,
    followed: set,
    timestamp: str,
) -> List[Notification]:
    followed_posts = [p for p in corpus.posts if p.author_id in followed]
    generated = []
    for post in followed_posts[:MAX_NEW_POST_NOTIFICATIONS]:
        profile = corpus.profiles_by_id.get(post.author_id)
        if profile is None:
            continue
        generated.append(Notification(
            id=f"newpost-{post.id}",
            type=NotificationType.NEW_POST,
            title=f"New post from {profile.display_name}",
            description=_preview(post.content, NEW_POST_PREVIEW),
            timestamp=timestamp,
            link=f"/post/{post.id}",
            era=post.era,
            profile_id=profile.id,
            post_id=post.id,
        ))
    return generated


def _trending_notifications(
    corpus: Corpus,
    liked: set,
    timestamp: str,
) -> List[Notification]:
    trending = [
        p for p in corpus.posts
        if p.id in liked and p.likes > TRENDING_LIKES_THRESHOLD
    ][:MAX_TRENDING_NOTIFICATIONS]

    generated = []
    for post in trending:
        profile = corpus.profiles_by_id.get(post.author_id)
        author = profile.display_name if profile else "Unknown"
        generated.append(Notification(
            id=f"trending-{post.id}",
            type=NotificationType.TRENDING,
            title="Your liked post is trending!",
            description=f"\"{post.content[:TRENDING_PREVIEW]}...\" by {author}",
            timestamp=timestamp,
            link=f"/post/{post.id}",
            era=post.era,
            post_id=post.id,
        ))
    return generated


def _milestone_notification(follows: int, likes: int, timestamp: str) -> Optional[Notification]:
    if follows < MILESTONE_FOLLOWS or likes < MILESTONE_LIKES:
        return None
    return Notification(
        id=MILESTONE_ID,
        type=NotificationType.MILESTONE,
        title="Time Traveler Achievement!",
        description=f"You're following {follows} figures and liked {likes} posts across history.",
        timestamp=timestamp,
        link="/settings",
    )


def generate_activity_notifications(
    corpus: Corpus,
    followed_ids: Sequence[str],
    liked_post_ids: Sequence[str],
    existing: Iterable[Notification] = (),
    last_generated: Optional[date] = None,
    today: Optional[date] = None,
    *,
    now: Optional[datetime] = None,
    max_notifications: Optional[int] = None,
) -> NotificationBatch:
    """
    Compute the notification list after today's generation run.

    Runs at most once per calendar day: when ``last_generated`` equals
    ``today`` the existing list is returned untouched. Otherwise new
    notifications (historical events for today's month-day, new posts from
    followed profiles, trending liked posts, the activity milestone) whose
    ids are not already present are prepended, and the list is cut to the
    ``max_notifications`` most recent entries.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if today is None:
        today = now.date()
    if max_notifications is None:
        max_notifications = settings.notification_history_limit

    existing = tuple(existing)
    if last_generated == today:
        logger.debug(f"Notifications already generated for {today}")
        return NotificationBatch(notifications=existing, last_generated=last_generated)

    timestamp = _iso_timestamp(now)
    candidates: List[Notification] = _event_notifications(today, timestamp)
    if followed_ids:
        candidates.extend(_new_post_notifications(corpus, set(followed_ids), timestamp))
    if liked_post_ids:
        candidates.extend(_trending_notifications(corpus, set(liked_post_ids), timestamp))
    milestone = _milestone_notification(len(followed_ids), len(liked_post_ids), timestamp)
    if milestone is not None:
        candidates.append(milestone)

    seen = {n.id for n in existing}
    added: List[Notification] = []
    for notification in candidates:
        if notification.id in seen:
            continue
        seen.add(notification.id)
        added.append(notification)

    if added:
        logger.info(f"Generated {len(added)} notification(s) for {today}")

    return NotificationBatch(
        notifications=(*added, *existing)[:max_notifications],
        last_generated=today,
        added=tuple(added),
    )


# =============================================================================
# List helpers
# =============================================================================

def unread_count(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.read)


def mark_read(notifications: Iterable[Notification], notification_id: str) -> List[Notification]:
    """Copy of the list with one notification marked read."""
    return [
        n.model_copy(update={"read": True}) if n.id == notification_id else n
        for n in notifications
    ]


def mark_all_read(notifications: Iterable[Notification]) -> List[Notification]:
    return [n if n.read else n.model_copy(update={"read": True}) for n in notifications]
