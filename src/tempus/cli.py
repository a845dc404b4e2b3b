"""Tempus CLI

Usage:
  tempus validate --corpus-dir path/to/corpus
  tempus stats
  tempus feed --limit 5 --cursor <post-id>
  tempus search "bastille"
  tempus trending --era french-revolution
  tempus connections <profile-id>
  tempus likes <profile-id>

Every command loads the corpus configured by TEMPUS_CORPUS_DIR (or
--corpus-dir) before running.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config import LoadPolicy, settings
from .corpus import Corpus
from .errors import CorpusLoadError, TempusError
from .loader import load_corpus_from_dir
from .pagination import get_feed_segment
from . import queries, ranking, relationships


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load(ctx: click.Context) -> Corpus:
    """Load the corpus once per invocation and keep it on the context."""
    obj = ctx.ensure_object(dict)
    if "corpus" not in obj:
        try:
            obj["corpus"] = load_corpus_from_dir(obj["corpus_dir"], policy=obj["policy"])
        except CorpusLoadError as e:
            raise click.ClickException(str(e))
    return obj["corpus"]


def _short(text: str, width: int = 72) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[:width - 3] + "..."


@click.group()
@click.option(
    "--corpus-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Corpus directory (default: TEMPUS_CORPUS_DIR or the bundled sample)"
)
@click.option("--fail-open", is_flag=True, default=False, help="Drop invalid records instead of aborting")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, corpus_dir: Optional[Path], fail_open: bool, verbose: bool) -> None:
    """Tempus - historical timeline retrieval and ranking"""

    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["corpus_dir"] = corpus_dir or settings.corpus_dir
    ctx.obj["policy"] = LoadPolicy.FAIL_OPEN if fail_open else settings.load_policy


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Load the corpus and list every invalid record"""

    corpus_dir = ctx.obj["corpus_dir"]
    click.echo(f"Validating corpus at {corpus_dir}...")
    try:
        corpus = load_corpus_from_dir(corpus_dir, policy=LoadPolicy.FAIL_OPEN)
    except CorpusLoadError as e:
        raise click.ClickException(str(e))

    if corpus.is_complete:
        click.echo(
            f"OK: {len(corpus.posts)} posts, {len(corpus.profiles)} profiles, "
            f"{len(corpus.eras)} eras"
        )
        return

    click.echo(f"{len(corpus.errors)} invalid record(s):")
    for error in corpus.errors:
        click.echo(f"  {error}")
    ctx.exit(1)


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Corpus summary"""

    corpus = _load(ctx)
    summary = ranking.engagement_summary(corpus.posts)

    click.echo(f"Corpus version: {corpus.version[:12]}")
    click.echo(f"Posts:         {summary.total_posts}")
    click.echo(f"Profiles:      {len(corpus.profiles)}")
    click.echo(f"Eras:          {len(corpus.eras)}")
    click.echo(f"Relationships: {corpus.graph.edge_count}")
    click.echo(f"Hashtags:      {summary.total_hashtags}")
    click.echo(f"Engagement:    {summary.total_engagement}")
    click.echo(f"Avg likes:     {summary.avg_likes_per_post}")
    click.echo("")
    for era in corpus.eras:
        click.echo(f"  {era.id:<24} {era.post_count or 0:>4} posts  {era.profile_count or 0:>3} profiles")


@cli.command()
@click.option("--limit", default=None, type=int, help="Posts per page")
@click.option("--cursor", default=None, help="Id of the last post already seen")
@click.option("--strict", is_flag=True, default=False, help="Fail on an unknown cursor")
@click.pass_context
def feed(ctx: click.Context, limit: Optional[int], cursor: Optional[str], strict: bool) -> None:
    """Print one page of the feed"""

    corpus = _load(ctx)
    try:
        segment = get_feed_segment(corpus, cursor, limit, strict=strict or None)
    except TempusError as e:
        raise click.ClickException(str(e))

    for post in segment.posts:
        click.echo(f"{post.timestamp}  {post.id:<28} {_short(post.content, 60)}")
    if segment.has_more:
        click.echo("")
        click.echo(f"Next: tempus feed --cursor {segment.next_cursor}")


@cli.command()
@click.argument("query")
@click.option("--limit", default=None, type=int, help="Maximum results per kind")
@click.pass_context
def search(ctx: click.Context, query: str, limit: Optional[int]) -> None:
    """Search posts, profiles and eras"""

    corpus = _load(ctx)
    results = queries.search(corpus, query, limit=limit)

    click.echo(f"Posts ({len(results.posts)}):")
    for post in results.posts:
        click.echo(f"  {post.id:<28} {_short(post.content, 60)}")
    click.echo(f"Profiles ({len(results.profiles)}):")
    for profile in results.profiles:
        click.echo(f"  {profile.handle:<24} {profile.display_name}")
    click.echo(f"Eras ({len(results.eras)}):")
    for era in results.eras:
        click.echo(f"  {era.id:<24} {era.name}")


@cli.command()
@click.option("--era", default=None, help="Restrict to one era")
@click.option("--limit", default=10, show_default=True, help="Number of hashtags")
@click.pass_context
def trending(ctx: click.Context, era: Optional[str], limit: int) -> None:
    """Trending hashtags by likes + 2 * comments"""

    corpus = _load(ctx)
    posts = queries.get_posts(corpus, queries.FeedFilters(era=era)) if era else corpus.posts
    tags = ranking.trending_hashtags(posts, limit=limit)
    if not tags:
        click.echo("No hashtags found")
        return
    for rank, tag in enumerate(tags, start=1):
        click.echo(f"{rank:>3}. {tag.label:<32} score {tag.trend_score:>8}  ({tag.post_count} posts)")


@cli.command()
@click.argument("profile_id")
@click.option("--invert", is_flag=True, default=False, help="Show incoming edges with their inverse type")
@click.pass_context
def connections(ctx: click.Context, profile_id: str, invert: bool) -> None:
    """Relationships of a profile, both directions"""

    corpus = _load(ctx)
    profile = queries.get_profile(corpus, profile_id) or queries.get_profile_by_handle(corpus, profile_id)
    if profile is None:
        raise click.ClickException(f"Unknown profile: {profile_id}")

    found = relationships.get_connected_profiles(corpus, profile.id, invert_types=invert or None)
    click.echo(f"{profile.display_name} ({profile.handle})")
    if not found:
        click.echo("  No connections")
        return
    for rel_type, group in relationships.group_connections(found):
        click.echo(f"  {rel_type.value}:")
        for conn in group:
            arrow = "->" if conn.direction == "outgoing" else "<-"
            click.echo(f"    {arrow} {conn.profile.display_name}")


@cli.command()
@click.argument("profile_id")
@click.option("--limit", default=ranking.DEFAULT_SIMULATED_LIKES, show_default=True)
@click.pass_context
def likes(ctx: click.Context, profile_id: str, limit: int) -> None:
    """Posts a historical figure would have liked"""

    corpus = _load(ctx)
    profile = queries.get_profile(corpus, profile_id) or queries.get_profile_by_handle(corpus, profile_id)
    if profile is None:
        raise click.ClickException(f"Unknown profile: {profile_id}")

    scored = ranking.get_simulated_likes(corpus, profile.id, limit=limit)
    if not scored:
        click.echo("No posts found")
        return
    for item in scored:
        click.echo(f"{item.score:>7.1f}  {item.post.id:<28} {_short(item.post.content, 50)}")


if __name__ == "__main__":
    cli()
