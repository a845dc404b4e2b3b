"""Test cursor pagination over the feed."""
import pytest

from tempus.errors import InvalidFilterError, StaleCursorError
from tempus.pagination import INITIAL_SEGMENT_ID, get_feed_segment

from conftest import build_corpus, make_post, make_profile


@pytest.fixture
def large_corpus():
    """23 posts, some sharing a timestamp."""
    posts = [
        make_post(f"post-{i:02d}", timestamp=f"2024-01-{(i % 10) + 1:02d}T00:00:00Z")
        for i in range(23)
    ]
    return build_corpus(posts=posts, profiles=[make_profile("author-x")])


class TestFeedScenario:
    """Test paging the three-post corpus."""

    def test_first_page(self, three_post_corpus):
        """The first page holds the two newest posts."""
        segment = get_feed_segment(three_post_corpus, None, 2)
        assert [p.id for p in segment.posts] == ["p3", "p2"]
        assert segment.has_more is True
        assert segment.next_cursor == "p2"
        assert segment.id == INITIAL_SEGMENT_ID

    def test_second_page(self, three_post_corpus):
        """Following the cursor returns the last post."""
        segment = get_feed_segment(three_post_corpus, "p2", 2)
        assert [p.id for p in segment.posts] == ["p1"]
        assert segment.has_more is False
        assert segment.next_cursor is None
        assert segment.id == "p2"

    def test_segment_dates(self, three_post_corpus):
        segment = get_feed_segment(three_post_corpus, None, 2)
        assert segment.start_date == "2024-01-03T00:00:00Z"
        assert segment.end_date == "2024-01-02T00:00:00Z"

    def test_segment_carries_corpus_version(self, three_post_corpus):
        segment = get_feed_segment(three_post_corpus, None, 2)
        assert segment.corpus_version == three_post_corpus.version

    def test_exact_fit_has_no_more(self, three_post_corpus):
        segment = get_feed_segment(three_post_corpus, None, 3)
        assert segment.has_more is False
        assert segment.next_cursor is None

    def test_default_limit(self, three_post_corpus):
        segment = get_feed_segment(three_post_corpus)
        assert len(segment.posts) == 3


class TestTiling:
    """Test that following cursors visits every post once."""

    @pytest.mark.parametrize("limit", [1, 2, 5, 7, 23, 50])
    def test_pages_tile_the_feed(self, large_corpus, limit):
        seen = []
        cursor = None
        while True:
            segment = get_feed_segment(large_corpus, cursor, limit)
            assert len(segment.posts) <= limit
            seen.extend(p.id for p in segment.posts)
            if not segment.has_more:
                break
            cursor = segment.next_cursor

        assert seen == [p.id for p in large_corpus.posts]
        assert len(set(seen)) == 23


class TestEdgeCases:
    """Test stale cursors, bad limits and empty corpora."""

    def test_lenient_stale_cursor_restarts(self, three_post_corpus):
        """An unknown cursor returns the first page."""
        segment = get_feed_segment(three_post_corpus, "deleted-post", 2, strict=False)
        assert [p.id for p in segment.posts] == ["p3", "p2"]
        assert segment.id == "deleted-post"

    def test_strict_stale_cursor_raises(self, three_post_corpus):
        with pytest.raises(StaleCursorError) as exc_info:
            get_feed_segment(three_post_corpus, "deleted-post", 2, strict=True)
        assert exc_info.value.cursor == "deleted-post"

    def test_cursor_at_end(self, three_post_corpus):
        segment = get_feed_segment(three_post_corpus, "p1", 2)
        assert segment.posts == ()
        assert segment.has_more is False
        assert segment.start_date == ""

    def test_lenient_zero_limit_is_clamped(self, three_post_corpus):
        segment = get_feed_segment(three_post_corpus, None, 0, strict=False)
        assert [p.id for p in segment.posts] == ["p3"]
        assert segment.has_more is True

    def test_strict_zero_limit_raises(self, three_post_corpus):
        with pytest.raises(InvalidFilterError):
            get_feed_segment(three_post_corpus, None, 0, strict=True)

    def test_empty_corpus(self):
        segment = get_feed_segment(build_corpus(), None, 5)
        assert segment.posts == ()
        assert segment.has_more is False
        assert segment.next_cursor is None
