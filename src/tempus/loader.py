"""Corpus loader - validates raw records into an immutable Corpus.

Loading happens once per process:
1. Validate each collection record by record, collecting RecordErrors
2. Reject duplicate ids and handles
3. Merge the standalone relationships collection into profile edges
4. Fill denormalized era counts
5. Apply the load policy (fail closed or fail open)
"""
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .config import LoadPolicy, settings
from .corpus import Corpus
from .errors import CorpusLoadError, CorpusValidationError, RecordError
from .models import Era, Post, Profile, RelationshipRecord


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

RawRecords = Sequence[Mapping[str, Any]]


# =============================================================================
# Validation helpers
# =============================================================================

def _format_validation_error(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "record"
        messages.append(f"{location}: {err.get('msg', 'invalid value')}")
    return messages


def _raw_id(raw: Any, index: int) -> str:
    if isinstance(raw, Mapping) and isinstance(raw.get("id"), str) and raw["id"]:
        return raw["id"]
    if isinstance(raw, Mapping) and raw.get("from") and raw.get("to"):
        return f"{raw['from']}->{raw['to']}"
    return f"#{index}"


def _validate_collection(
    collection: str,
    model: Type[ModelT],
    raw_records: Iterable[Any],
    errors: List[RecordError],
    unique_ids: bool = True,
) -> List[ModelT]:
    """Validate records one by one; failures are appended to ``errors``."""
    valid: List[ModelT] = []
    seen: set = set()

    for index, raw in enumerate(raw_records):
        record_id = _raw_id(raw, index)
        if not isinstance(raw, Mapping):
            errors.append(RecordError(collection, record_id, "record is not an object"))
            continue

        try:
            record = model.model_validate(raw)
        except ValidationError as exc:
            for message in _format_validation_error(exc):
                errors.append(RecordError(collection, record_id, message))
            continue

        if unique_ids:
            if record.id in seen:
                errors.append(RecordError(collection, record.id, "duplicate id"))
                continue
            seen.add(record.id)

        valid.append(record)

    return valid


def _drop_duplicate_handles(profiles: List[Profile], errors: List[RecordError]) -> List[Profile]:
    kept: List[Profile] = []
    owners: Dict[str, str] = {}
    for profile in profiles:
        owner = owners.get(profile.handle_key)
        if owner is not None:
            errors.append(RecordError(
                "profiles", profile.id, f"handle {profile.handle} already used by {owner}"
            ))
            continue
        owners[profile.handle_key] = profile.id
        kept.append(profile)
    return kept


def _merge_relationships(
    profiles: List[Profile],
    records: List[RelationshipRecord],
    errors: List[RecordError],
) -> List[Profile]:
    """Attach standalone relationship records to their source profiles."""
    extra: Dict[str, list] = {}
    known = {p.id for p in profiles}

    for record in records:
        if record.source not in known:
            errors.append(RecordError(
                "relationships", record.record_id, f"unknown source profile {record.source}"
            ))
            continue
        extra.setdefault(record.source, []).append(record.to_relationship())

    if not extra:
        return profiles

    merged = []
    for profile in profiles:
        additions = extra.get(profile.id)
        if not additions:
            merged.append(profile)
            continue

        edges = list(profile.relationships)
        present = {(rel.profile_id, rel.type) for rel in edges}
        for rel in additions:
            if (rel.profile_id, rel.type) in present:
                continue
            present.add((rel.profile_id, rel.type))
            edges.append(rel)
        merged.append(profile.model_copy(update={"relationships": tuple(edges)}))

    return merged


def _check_authors(
    posts: List[Post],
    profile_ids: set,
    enforce: bool,
    errors: List[RecordError],
) -> List[Post]:
    orphans = [p for p in posts if p.author_id not in profile_ids]
    if not orphans:
        return posts

    if not enforce:
        logger.warning(f"{len(orphans)} post(s) reference unknown authors; keeping them")
        return posts

    for post in orphans:
        errors.append(RecordError("posts", post.id, f"unknown author {post.author_id}"))
    orphan_ids = {p.id for p in orphans}
    return [p for p in posts if p.id not in orphan_ids]


def _fill_era_counts(eras: List[Era], posts: List[Post], profiles: List[Profile]) -> List[Era]:
    filled = []
    for era in eras:
        update = {}
        if era.post_count is None:
            update["post_count"] = sum(1 for p in posts if p.era == era.id)
        if era.profile_count is None:
            update["profile_count"] = sum(1 for p in profiles if era.id in p.era)
        filled.append(era.model_copy(update=update) if update else era)
    return filled


def corpus_version(**collections: Any) -> str:
    """SHA256 of the raw collections; stable for identical input."""
    payload = json.dumps(collections, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# =============================================================================
# Public API
# =============================================================================

def load_corpus(
    posts: RawRecords,
    profiles: RawRecords,
    eras: RawRecords,
    relationships: RawRecords = (),
    *,
    policy: Optional[Union[LoadPolicy, str]] = None,
    enforce_author_integrity: Optional[bool] = None,
) -> Corpus:
    """
    Validate raw record collections and build the corpus.

    With the fail-closed policy any invalid record raises
    CorpusValidationError listing every (record, error) pair. With fail-open
    the invalid records are dropped and the same list is kept on
    ``Corpus.errors``.
    """
    policy = LoadPolicy(policy or settings.load_policy)
    if enforce_author_integrity is None:
        enforce_author_integrity = settings.enforce_author_integrity

    posts = list(posts)
    profiles = list(profiles)
    eras = list(eras)
    relationships = list(relationships)

    errors: List[RecordError] = []

    valid_profiles = _validate_collection("profiles", Profile, profiles, errors)
    valid_profiles = _drop_duplicate_handles(valid_profiles, errors)
    valid_eras = _validate_collection("eras", Era, eras, errors)
    valid_posts = _validate_collection("posts", Post, posts, errors)
    valid_records = _validate_collection(
        "relationships", RelationshipRecord, relationships, errors, unique_ids=False
    )

    valid_profiles = _merge_relationships(valid_profiles, valid_records, errors)
    valid_posts = _check_authors(
        valid_posts, {p.id for p in valid_profiles}, enforce_author_integrity, errors
    )
    valid_eras = _fill_era_counts(valid_eras, valid_posts, valid_profiles)

    if errors:
        if policy is LoadPolicy.FAIL_CLOSED:
            logger.error(f"Corpus rejected: {len(errors)} invalid record(s)")
            raise CorpusValidationError(errors)
        logger.warning(f"Corpus loaded with {len(errors)} invalid record(s) dropped")
        for error in errors:
            logger.debug(f"  {error}")

    corpus = Corpus.build(
        posts=valid_posts,
        profiles=valid_profiles,
        eras=valid_eras,
        version=corpus_version(
            posts=posts, profiles=profiles, eras=eras, relationships=relationships
        ),
        errors=errors,
    )

    dangling = corpus.graph.dangling_targets(corpus.profiles_by_id)
    if dangling:
        logger.warning(f"{len(dangling)} relationship target(s) are not loaded profiles")

    logger.info(
        f"Corpus {corpus.version[:12]} loaded: {len(corpus.posts)} posts, "
        f"{len(corpus.profiles)} profiles, {len(corpus.eras)} eras, "
        f"{corpus.graph.edge_count} relationships"
    )
    return corpus


def _read_json_array(path: Path) -> list:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise CorpusLoadError(f"Missing corpus file: {path}")
    except json.JSONDecodeError as e:
        raise CorpusLoadError(f"Invalid JSON in {path}: {e}")

    if not isinstance(data, list):
        raise CorpusLoadError(f"Expected a JSON array in {path}")
    return data


def read_corpus_dir(path: Union[str, Path]) -> Dict[str, list]:
    """
    Read raw collections from a corpus directory.

    Layout: posts/*.json (read in file name order), profiles/index.json,
    eras/index.json and an optional relationships/index.json.
    """
    root = Path(path)
    if not root.is_dir():
        raise CorpusLoadError(f"Corpus directory not found: {root}")

    posts: list = []
    for post_file in sorted((root / "posts").glob("*.json")):
        posts.extend(_read_json_array(post_file))

    relationships_path = root / "relationships" / "index.json"
    return {
        "posts": posts,
        "profiles": _read_json_array(root / "profiles" / "index.json"),
        "eras": _read_json_array(root / "eras" / "index.json"),
        "relationships": _read_json_array(relationships_path) if relationships_path.exists() else [],
    }


def load_corpus_from_dir(
    path: Union[str, Path],
    *,
    policy: Optional[Union[LoadPolicy, str]] = None,
    enforce_author_integrity: Optional[bool] = None,
) -> Corpus:
    """Read and validate a corpus directory."""
    logger.info(f"Loading corpus from {path}")
    raw = read_corpus_dir(path)
    return load_corpus(
        raw["posts"],
        raw["profiles"],
        raw["eras"],
        raw["relationships"],
        policy=policy,
        enforce_author_integrity=enforce_author_integrity,
    )


def load_default_corpus() -> Corpus:
    """Load the corpus configured by ``settings.corpus_dir``."""
    return load_corpus_from_dir(settings.corpus_dir)
