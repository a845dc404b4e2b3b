"""Typed corpus records.

Records mirror the JSON corpus (camelCase keys) but expose snake_case
attributes. Every model is frozen and stores sequences as tuples, so a loaded
corpus cannot be changed in place.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, field_validator
from pydantic.alias_generators import to_camel

from .timestamps import canonical_sort_key, month_day_key, parse_instant, utc_date


# =============================================================================
# Enums
# =============================================================================

class PostType(str, Enum):
    STATUS = "status"
    TWEET = "tweet"
    QUOTE = "quote"
    PHOTO = "photo"
    VIDEO = "video"
    ARTICLE = "article"
    EVENT = "event"
    THREAD = "thread"
    RELATIONSHIP = "relationship"
    LOCATION = "location"
    POLL = "poll"


class AccuracyLevel(str, Enum):
    """How well a post is backed by the historical record, best first."""
    VERIFIED = "verified"
    DOCUMENTED = "documented"
    ATTRIBUTED = "attributed"
    INFERRED = "inferred"
    SPECULATIVE = "speculative"

    @property
    def rank(self) -> int:
        """Ordinal where higher means better attested."""
        return len(_ACCURACY_ORDER) - _ACCURACY_ORDER.index(self)


_ACCURACY_ORDER = list(AccuracyLevel)


class RelationshipType(str, Enum):
    SPOUSE = "spouse"
    FAMILY = "family"
    FRIEND = "friend"
    ALLY = "ally"
    COLLEAGUE = "colleague"
    MENTOR = "mentor"
    STUDENT = "student"
    RIVAL = "rival"
    ENEMY = "enemy"


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    MENTION = "mention"
    TRENDING = "trending"
    NEW_POST = "new_post"
    EVENT = "event"
    MILESTONE = "milestone"


def normalize_handle(handle: str) -> str:
    """Lookup key for a handle: lower-case, without the leading '@'."""
    return handle.strip().lstrip("@").lower()


# =============================================================================
# Base
# =============================================================================

class CorpusModel(BaseModel):
    """Frozen model reading camelCase JSON keys."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Post parts
# =============================================================================

class Media(CorpusModel):
    id: str
    type: Literal["image", "video", "document", "painting", "map"]
    url: str
    alt: str
    caption: Optional[str] = None
    source: Optional[str] = None
    source_label: Optional[str] = None
    year: Optional[int] = None
    artist: Optional[str] = None


class Source(CorpusModel):
    """Citation backing a post or profile."""
    id: str
    title: str
    type: Literal["primary", "secondary", "tertiary"]
    author: Optional[str] = None
    year: Optional[int] = None
    url: Optional[str] = None
    description: Optional[str] = None


class Location(CorpusModel):
    name: str
    coordinates: Optional[Tuple[float, float]] = None
    modern: Optional[str] = None


class Interaction(CorpusModel):
    """A static historical reaction embedded in a post."""
    id: str
    type: Literal["like", "comment", "share", "retweet", "reaction"]
    author_id: str
    author_name: str
    author_handle: Optional[str] = None
    content: Optional[str] = None
    timestamp: str
    reaction_type: Optional[Literal["like", "love", "laugh", "sad", "angry", "wow"]] = None


# =============================================================================
# Corpus entities
# =============================================================================

class Post(CorpusModel):
    """A post in the timeline feed."""
    id: str
    type: PostType
    author_id: str
    era: str

    content: str
    title: Optional[str] = None
    subtitle: Optional[str] = None

    timestamp: str
    display_date: str
    display_time: Optional[str] = None

    location: Optional[Location] = None
    media: Tuple[Media, ...] = ()

    likes: int = Field(ge=0)
    comments: int = Field(ge=0)
    shares: int = Field(ge=0)
    interactions: Tuple[Interaction, ...] = ()

    thread_id: Optional[str] = None
    thread_position: Optional[int] = None
    reply_to_id: Optional[str] = None

    accuracy: AccuracyLevel
    accuracy_note: Optional[str] = None
    sources: Tuple[Source, ...] = ()
    historical_context: Optional[str] = None

    tags: Tuple[str, ...] = ()
    mentions: Tuple[str, ...] = ()
    hashtags: Tuple[str, ...] = ()
    is_pinned: bool = False
    language: Optional[str] = None
    translation: Optional[str] = None

    _instant: int = PrivateAttr(default=0)

    @field_validator("timestamp")
    @classmethod
    def check_timestamp(cls, value: str) -> str:
        parse_instant(value)
        return value

    def model_post_init(self, __context: Any) -> None:
        self._instant = parse_instant(self.timestamp)

    @property
    def instant(self) -> int:
        """Timestamp as UTC microseconds since the epoch."""
        return self._instant

    @property
    def sort_key(self) -> Tuple[int, str]:
        return canonical_sort_key(self._instant, self.id)

    @property
    def month_day(self) -> str:
        _, month, day = utc_date(self._instant)
        return month_day_key(month, day)

    @property
    def unique_hashtags(self) -> Tuple[str, ...]:
        """Hashtags with repeats removed, first occurrence kept."""
        return tuple(dict.fromkeys(self.hashtags))


class Relationship(CorpusModel):
    """Directed edge declared by the profile that carries it."""
    profile_id: str = Field(
        validation_alias=AliasChoices("profileId", "targetProfileId", "profile_id")
    )
    type: RelationshipType
    description: Optional[str] = None
    since: Optional[str] = None
    until: Optional[str] = None


class RelationshipRecord(CorpusModel):
    """Entry of the standalone relationships collection."""
    source: str = Field(validation_alias=AliasChoices("from", "source"))
    target: str = Field(validation_alias=AliasChoices("to", "target"))
    type: RelationshipType
    description: Optional[str] = None
    since: Optional[str] = Field(default=None, validation_alias=AliasChoices("startDate", "since"))
    until: Optional[str] = Field(default=None, validation_alias=AliasChoices("endDate", "until"))

    @property
    def record_id(self) -> str:
        return f"{self.source}->{self.target}"

    def to_relationship(self) -> Relationship:
        return Relationship(
            profile_id=self.target,
            type=self.type,
            description=self.description,
            since=self.since,
            until=self.until,
        )


class Profile(CorpusModel):
    """Historical figure profile."""
    id: str
    name: str
    display_name: str
    handle: str
    bio: str
    avatar: str
    era: Tuple[str, ...]

    title: Optional[str] = None
    nationality: Optional[str] = None
    birth_date: Optional[str] = None
    death_date: Optional[str] = None

    is_verified: bool
    is_active: bool = True
    followers: int = Field(default=0, ge=0)
    following: int = Field(default=0, ge=0)

    tags: Tuple[str, ...] = ()
    occupation: Tuple[str, ...] = ()
    accuracy: Optional[AccuracyLevel] = None
    sources: Tuple[Source, ...] = ()
    relationships: Tuple[Relationship, ...] = ()

    @field_validator("handle")
    @classmethod
    def canonical_handle(cls, value: str) -> str:
        key = value.strip().lstrip("@")
        if not key:
            raise ValueError("handle must not be empty")
        return f"@{key}"

    @property
    def handle_key(self) -> str:
        return normalize_handle(self.handle)


class Era(CorpusModel):
    """Time period metadata."""
    id: str
    name: str
    short_name: Optional[str] = None
    description: str
    start_date: str
    end_date: str
    color: Optional[str] = None
    previous_era: Optional[str] = None
    next_era: Optional[str] = None
    post_count: Optional[int] = Field(default=None, ge=0)
    profile_count: Optional[int] = Field(default=None, ge=0)


# =============================================================================
# Derived values
# =============================================================================

class Connection(CorpusModel):
    """One entry of a profile's merged relationship view."""
    profile: Profile
    relationship: Relationship
    direction: Literal["outgoing", "incoming"]


class FeedSegment(CorpusModel):
    """A page of the canonical feed."""
    id: str
    start_date: str
    end_date: str
    posts: Tuple[Post, ...]
    has_more: bool
    next_cursor: Optional[str] = None
    corpus_version: Optional[str] = None


class Notification(CorpusModel):
    id: str
    type: NotificationType
    title: str
    description: str
    timestamp: str
    read: bool = False
    link: Optional[str] = None
    era: Optional[str] = None
    profile_id: Optional[str] = None
    post_id: Optional[str] = None
