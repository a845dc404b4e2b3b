"""Immutable corpus handle shared by every query."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from .errors import RecordError
from .models import Era, Post, Profile, normalize_handle
from .relationships import RelationshipGraph


@dataclass(frozen=True)
class Corpus:
    """
    Loaded posts, profiles and eras plus their lookup indexes.

    Posts are held in canonical order (newest first, id ascending on ties).
    Build instances with :func:`tempus.loader.load_corpus` or
    :meth:`Corpus.build`; nothing here changes after construction.
    """
    posts: Tuple[Post, ...]
    profiles: Tuple[Profile, ...]
    eras: Tuple[Era, ...]
    posts_by_id: Mapping[str, Post]
    profiles_by_id: Mapping[str, Profile]
    profiles_by_handle: Mapping[str, Profile]
    eras_by_id: Mapping[str, Era]
    post_positions: Mapping[str, int]
    graph: RelationshipGraph
    version: str = ""
    errors: Tuple[RecordError, ...] = field(default=())

    @classmethod
    def build(
        cls,
        posts: Iterable[Post],
        profiles: Iterable[Profile],
        eras: Iterable[Era],
        version: str = "",
        errors: Iterable[RecordError] = (),
    ) -> "Corpus":
        """Index already-validated records. Ids and handles must be unique."""
        ordered = tuple(sorted(posts, key=lambda p: p.sort_key))
        profiles = tuple(profiles)
        eras = tuple(eras)

        return cls(
            posts=ordered,
            profiles=profiles,
            eras=eras,
            posts_by_id=MappingProxyType({p.id: p for p in ordered}),
            profiles_by_id=MappingProxyType({p.id: p for p in profiles}),
            profiles_by_handle=MappingProxyType({p.handle_key: p for p in profiles}),
            eras_by_id=MappingProxyType({e.id: e for e in eras}),
            post_positions=MappingProxyType({p.id: i for i, p in enumerate(ordered)}),
            graph=RelationshipGraph(profiles),
            version=version,
            errors=tuple(errors),
        )

    def position_of(self, post_id: str) -> Optional[int]:
        """Index of a post in canonical order."""
        return self.post_positions.get(post_id)

    def find_handle(self, handle: str) -> Optional[Profile]:
        return self.profiles_by_handle.get(normalize_handle(handle))

    @property
    def is_complete(self) -> bool:
        """True when no records were dropped during load."""
        return not self.errors
