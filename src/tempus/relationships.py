"""Relationship graph resolution.

Edges are declared on the source profile only. The graph keeps them in a
networkx MultiDiGraph so both directions can be walked without scanning every
profile: successors give a profile's own declarations, predecessors give the
profiles that declared something about it.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

import networkx as nx

from .config import settings
from .models import Connection, Profile, Relationship, RelationshipType

if TYPE_CHECKING:
    from .corpus import Corpus


# Display priority when connections are grouped by type
TYPE_PRIORITY: Tuple[RelationshipType, ...] = (
    RelationshipType.SPOUSE,
    RelationshipType.FAMILY,
    RelationshipType.FRIEND,
    RelationshipType.ALLY,
    RelationshipType.MENTOR,
    RelationshipType.STUDENT,
    RelationshipType.COLLEAGUE,
    RelationshipType.RIVAL,
    RelationshipType.ENEMY,
)

INVERSE_TYPES: Dict[RelationshipType, RelationshipType] = {
    RelationshipType.MENTOR: RelationshipType.STUDENT,
    RelationshipType.STUDENT: RelationshipType.MENTOR,
}


def inverse_type(rel_type: RelationshipType) -> RelationshipType:
    """Type of the same edge seen from its target; symmetric types map to themselves."""
    return INVERSE_TYPES.get(rel_type, rel_type)


class RelationshipGraph:
    """Read-only directed multigraph of declared relationships."""

    def __init__(self, profiles: Iterable[Profile]):
        graph = nx.MultiDiGraph()
        for profile in profiles:
            graph.add_node(profile.id)
            for rel in profile.relationships:
                graph.add_edge(profile.id, rel.profile_id, relationship=rel)
        self._graph = nx.freeze(graph)

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def outgoing(self, profile_id: str) -> List[Tuple[str, Relationship]]:
        """(target id, edge) pairs declared by ``profile_id``."""
        if profile_id not in self._graph:
            return []
        return [
            (target, data["relationship"])
            for _, target, data in self._graph.out_edges(profile_id, data=True)
        ]

    def incoming(self, profile_id: str) -> List[Tuple[str, Relationship]]:
        """(source id, edge) pairs declared by other profiles about ``profile_id``."""
        if profile_id not in self._graph:
            return []
        return [
            (source, data["relationship"])
            for source, _, data in self._graph.in_edges(profile_id, data=True)
            if source != profile_id
        ]

    def first_edge(self, source: str, target: str) -> Optional[Relationship]:
        edges = self._graph.get_edge_data(source, target)
        if not edges:
            return None
        # Keys are assigned in insertion order
        return edges[min(edges)]["relationship"]

    def dangling_targets(self, known_ids: Iterable[str]) -> List[str]:
        """Edge targets that are not loaded profiles."""
        known = set(known_ids)
        return sorted(node for node in self._graph.nodes if node not in known)


# =============================================================================
# Queries
# =============================================================================

def get_relationships(corpus: "Corpus", profile_id: str) -> Tuple[Relationship, ...]:
    """Outgoing edges of a profile in declaration order."""
    profile = corpus.profiles_by_id.get(profile_id)
    if profile is None:
        return ()
    return profile.relationships


def get_connected_profiles(
    corpus: "Corpus",
    profile_id: str,
    *,
    invert_types: Optional[bool] = None,
) -> List[Connection]:
    """
    Merged view of a profile's relationships.

    Outgoing edges come first, as declared. Every edge another profile
    declared toward ``profile_id`` is added as an incoming connection that
    keeps the declared type and description; with ``invert_types`` the type
    is mapped through INVERSE_TYPES instead. Edges to profiles that are not
    in the corpus are skipped.
    """
    if invert_types is None:
        invert_types = settings.invert_incoming_types

    profiles = corpus.profiles_by_id
    connections: List[Connection] = []

    for rel in get_relationships(corpus, profile_id):
        target = profiles.get(rel.profile_id)
        if target is None:
            continue
        connections.append(Connection(profile=target, relationship=rel, direction="outgoing"))

    for source_id, rel in corpus.graph.incoming(profile_id):
        source = profiles.get(source_id)
        if source is None:
            continue
        incoming_rel = Relationship(
            profile_id=source_id,
            type=inverse_type(rel.type) if invert_types else rel.type,
            description=rel.description,
            since=rel.since,
            until=rel.until,
        )
        connections.append(Connection(profile=source, relationship=incoming_rel, direction="incoming"))

    return connections


def get_relationship_between(corpus: "Corpus", profile_a: str, profile_b: str) -> Optional[Relationship]:
    """First edge a -> b, else first edge b -> a."""
    edge = corpus.graph.first_edge(profile_a, profile_b)
    if edge is not None:
        return edge
    return corpus.graph.first_edge(profile_b, profile_a)


def group_connections(
    connections: Iterable[Connection],
) -> List[Tuple[RelationshipType, List[Connection]]]:
    """Group by type in display priority, one entry per profile per group."""
    groups: Dict[RelationshipType, List[Connection]] = {t: [] for t in TYPE_PRIORITY}
    seen: Dict[RelationshipType, set] = {t: set() for t in TYPE_PRIORITY}

    for conn in connections:
        rel_type = conn.relationship.type
        if conn.profile.id in seen[rel_type]:
            continue
        seen[rel_type].add(conn.profile.id)
        groups[rel_type].append(conn)

    return [(t, groups[t]) for t in TYPE_PRIORITY if groups[t]]
