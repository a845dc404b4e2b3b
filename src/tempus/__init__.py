"""Tempus - retrieval, ranking and relationship graph over a historical timeline corpus."""

__version__ = "0.1.0"

from .config import LoadPolicy, Settings, get_settings, settings
from .corpus import Corpus
from .errors import (
    CorpusLoadError,
    CorpusValidationError,
    InvalidFilterError,
    RecordError,
    StaleCursorError,
    TempusError,
)
from .loader import load_corpus, load_corpus_from_dir, load_default_corpus
from .models import (
    AccuracyLevel,
    Connection,
    Era,
    FeedSegment,
    Notification,
    NotificationType,
    Post,
    PostType,
    Profile,
    Relationship,
    RelationshipType,
)
from .notifications import (
    NotificationBatch,
    generate_activity_notifications,
    mark_all_read,
    mark_read,
    unread_count,
)
from .pagination import get_feed_segment
from .queries import (
    FeedFilters,
    SearchResults,
    get_era,
    get_eras,
    get_post,
    get_posts,
    get_posts_by_author,
    get_posts_on_this_day,
    get_profile,
    get_profile_by_handle,
    get_profiles,
    get_profiles_by_era,
    get_thread,
    get_timeline,
    search,
)
from .ranking import (
    engagement_score,
    engagement_summary,
    get_simulated_likes,
    get_suggested_profiles,
    get_trending,
    rank_affinity,
    top_posts,
    top_profiles,
    trending_hashtags,
)
from .relationships import (
    get_connected_profiles,
    get_relationship_between,
    get_relationships,
    group_connections,
)
