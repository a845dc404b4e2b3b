"""Test relationship graph resolution."""
import random

import pytest

from tempus.models import RelationshipType
from tempus.relationships import (
    TYPE_PRIORITY,
    get_connected_profiles,
    get_relationship_between,
    get_relationships,
    group_connections,
    inverse_type,
)

from conftest import build_corpus, make_profile


def rel(target, rel_type, **extra):
    return {"profileId": target, "type": rel_type, **extra}


@pytest.fixture
def mentor_corpus():
    """A declares B as mentor; B declares nothing."""
    return build_corpus(profiles=[
        make_profile("a", relationships=[rel("b", "mentor", description="Taught by B")]),
        make_profile("b"),
    ])


@pytest.fixture
def court_corpus():
    return build_corpus(profiles=[
        make_profile("king", relationships=[
            rel("queen", "spouse"),
            rel("minister", "colleague"),
            rel("rebel", "enemy"),
            rel("ghost", "ally"),
        ]),
        make_profile("queen", relationships=[rel("king", "spouse"), rel("minister", "rival")]),
        make_profile("minister", relationships=[rel("king", "ally"), rel("minister", "friend")]),
        make_profile("rebel"),
    ])


class TestMentorScenario:
    """Test incoming edges for a one-sided declaration."""

    def test_incoming_keeps_declared_type(self, mentor_corpus):
        """B sees A as an incoming 'mentor' connection."""
        connections = get_connected_profiles(mentor_corpus, "b", invert_types=False)
        assert len(connections) == 1
        conn = connections[0]
        assert conn.profile.id == "a"
        assert conn.direction == "incoming"
        assert conn.relationship.type is RelationshipType.MENTOR
        assert conn.relationship.profile_id == "a"
        assert conn.relationship.description == "Taught by B"

    def test_inverted_incoming_type(self, mentor_corpus):
        connections = get_connected_profiles(mentor_corpus, "b", invert_types=True)
        assert connections[0].relationship.type is RelationshipType.STUDENT

    def test_outgoing_side(self, mentor_corpus):
        connections = get_connected_profiles(mentor_corpus, "a")
        assert [(c.profile.id, c.direction) for c in connections] == [("b", "outgoing")]

    def test_declared_edges_only_on_source(self, mentor_corpus):
        assert len(get_relationships(mentor_corpus, "a")) == 1
        assert get_relationships(mentor_corpus, "b") == ()


class TestConnectedProfiles:
    """Test the merged outgoing and incoming view."""

    def test_outgoing_first_then_incoming(self, court_corpus):
        connections = get_connected_profiles(court_corpus, "king")
        assert [(c.profile.id, c.direction) for c in connections] == [
            ("queen", "outgoing"),
            ("minister", "outgoing"),
            ("rebel", "outgoing"),
            ("queen", "incoming"),
            ("minister", "incoming"),
        ]

    def test_unknown_target_is_skipped(self, court_corpus):
        """The 'ghost' edge points at no loaded profile."""
        ids = {c.profile.id for c in get_connected_profiles(court_corpus, "king")}
        assert "ghost" not in ids

    def test_self_loop_is_not_incoming(self, court_corpus):
        connections = get_connected_profiles(court_corpus, "minister")
        incoming = [c for c in connections if c.direction == "incoming"]
        assert {c.profile.id for c in incoming} == {"king", "queen"}

    def test_unknown_profile(self, court_corpus):
        assert get_connected_profiles(court_corpus, "nobody") == []
        assert get_relationships(court_corpus, "nobody") == ()

    def test_every_outgoing_edge_has_incoming_mirror(self):
        """For any random graph, a -> b implies b sees a as incoming."""
        rng = random.Random(7)
        ids = [f"p{i}" for i in range(12)]
        types = [t.value for t in RelationshipType]
        profiles = []
        for pid in ids:
            targets = rng.sample(ids, rng.randint(0, 4))
            profiles.append(make_profile(pid, relationships=[
                rel(t, rng.choice(types)) for t in targets if t != pid
            ]))
        corpus = build_corpus(profiles=profiles)

        for profile in corpus.profiles:
            for edge in profile.relationships:
                incoming = [
                    c for c in get_connected_profiles(corpus, edge.profile_id)
                    if c.direction == "incoming" and c.profile.id == profile.id
                ]
                assert incoming
                assert any(c.relationship.type == edge.type for c in incoming)


class TestRelationshipBetween:
    """Test direct edge lookup."""

    def test_forward_edge_preferred(self, court_corpus):
        """queen -> minister is 'rival', checked before minister -> queen."""
        assert get_relationship_between(court_corpus, "queen", "minister").type is RelationshipType.RIVAL

    def test_falls_back_to_reverse(self, court_corpus):
        assert get_relationship_between(court_corpus, "rebel", "king").type is RelationshipType.ENEMY

    def test_first_declared_edge(self):
        corpus = build_corpus(profiles=[
            make_profile("a", relationships=[rel("b", "friend"), rel("b", "rival")]),
            make_profile("b"),
        ])
        assert get_relationship_between(corpus, "a", "b").type is RelationshipType.FRIEND

    def test_no_edge(self, court_corpus):
        assert get_relationship_between(court_corpus, "rebel", "queen") is None
        assert get_relationship_between(court_corpus, "nobody", "king") is None


class TestGrouping:
    """Test grouping connections for display."""

    def test_groups_in_priority_order(self, court_corpus):
        groups = group_connections(get_connected_profiles(court_corpus, "king"))
        types = [t for t, _ in groups]
        assert types == [t for t in TYPE_PRIORITY if t in types]
        assert types[0] is RelationshipType.SPOUSE

    def test_profile_listed_once_per_group(self, court_corpus):
        """The queen is spouse in both directions but appears once."""
        groups = dict(group_connections(get_connected_profiles(court_corpus, "king")))
        assert [c.profile.id for c in groups[RelationshipType.SPOUSE]] == ["queen"]

    def test_empty(self):
        assert group_connections([]) == []


class TestGraph:
    """Test the underlying graph index."""

    def test_edge_count(self, court_corpus):
        assert court_corpus.graph.edge_count == 8

    def test_dangling_targets(self, court_corpus):
        assert court_corpus.graph.dangling_targets(court_corpus.profiles_by_id) == ["ghost"]

    def test_inverse_type(self):
        assert inverse_type(RelationshipType.MENTOR) is RelationshipType.STUDENT
        assert inverse_type(RelationshipType.STUDENT) is RelationshipType.MENTOR
        assert inverse_type(RelationshipType.RIVAL) is RelationshipType.RIVAL
