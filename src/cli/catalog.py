# =============================================================================
# src/cli/catalog.py — Catalog Operator CLI
# =============================================================================
#
# One argparse front end for every operator task on the lesson catalog:
#
#   init-db              Create the SQLite schema (idempotent)
#   import-lessons       Upsert lessons from a JSON file, hashing bodies
#   search               Run a catalog search and print one page
#   find-duplicates      List duplicate pairs or transitive groups
#   resolve              Resolve one duplicate group
#   backfill-embeddings  Embed every lesson that has no embedding yet
#   regenerate-hashes    Recompute content hashes with current normalisation
#
# Output is human-readable text by default; --json prints machine-readable
# JSON and implies --quiet so stdout carries nothing else.  Logs always go
# to stderr in quiet mode.
# =============================================================================

"""Operator CLI for the lesson catalog.

Usage::

    python -m src.cli init-db
    python -m src.cli search "tomato" --grade 3 --page-size 10
    python -m src.cli find-duplicates --groups --json
    python -m src.cli resolve --group-id g1 --canonical A --duplicate B --merge --user admin-1
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from src.models.duplicates import DuplicateType, ResolutionMode, ResolutionRequest
from src.models.lesson import Lesson
from src.models.search import SearchFilters


# ---------------------------------------------------------------------------
# Engine / logging setup
# ---------------------------------------------------------------------------


def _suppress_logs() -> None:
    """Send structlog and stdlib logging to stderr at WARNING+."""
    import logging

    import structlog

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)


def _build(args: argparse.Namespace):  # noqa: ANN202
    # Deferred: building the engine pulls in openai and the stores.
    from src.config.loader import load_config, settings_from_config
    from src.main import build_engine
    from src.utils.logging import configure_logging

    config = load_config(args.config)
    app_settings = settings_from_config(config)
    if args.db:
        app_settings = app_settings.model_copy(update={"lesson_db_path": args.db})
    if not args.quiet:
        configure_logging(log_level=app_settings.log_level)
    return build_engine(app_settings, config)


def _emit(args: argparse.Namespace, payload: Any, text: str) -> None:
    if args.json_output:
        print(json.dumps(payload, indent=2, default=str))
    else:
        print(text)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def _cmd_init_db(args: argparse.Namespace) -> int:
    engine = _build(args)
    await engine.initialize()
    _emit(args, {"db_path": engine.settings.lesson_db_path}, f"Initialized {engine.settings.lesson_db_path}")
    return 0


async def _cmd_import_lessons(args: argparse.Namespace) -> int:
    path = Path(args.file)
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Error: cannot read {path}: {exc}", file=sys.stderr)
        return 1
    if not isinstance(records, list):
        print(f"Error: {path} must contain a JSON list of lessons", file=sys.stderr)
        return 1

    engine = _build(args)
    await engine.initialize()

    imported: list[str] = []
    for record in records:
        lesson = Lesson.model_validate(record)
        if not lesson.content_hash:
            lesson = lesson.model_copy(update={
                "content_hash": engine.fingerprints.compute_hash(
                    lesson.body,
                    title=lesson.title,
                    summary=lesson.summary,
                    grade_levels=lesson.grade_levels,
                )
            })
        await engine.lesson_store.upsert_lesson(lesson)
        imported.append(lesson.lesson_id)

    _emit(args, {"imported": imported}, f"Imported {len(imported)} lesson(s)")
    return 0


def _filters_from_args(args: argparse.Namespace) -> SearchFilters:
    return SearchFilters(
        grade_levels=args.grade or [],
        thematic_categories=args.theme or [],
        season_timing=args.season or [],
        cultural_heritage=args.culture or [],
        activity_type=args.activity or [],
        location_requirements=args.location or [],
        lesson_format=args.lesson_format,
        cooking_method=args.cooking_method,
    )


async def _cmd_search(args: argparse.Namespace) -> int:
    engine = _build(args)
    page = await engine.search.search(
        query=args.query,
        filters=_filters_from_args(args),
        page_size=args.page_size,
        page_offset=args.page_offset,
    )

    lines = [f"{page.total_count} match(es); showing {len(page.rows)} from offset {page.page_offset}"]
    if page.expanded_query:
        lines.append(f"Expanded query: {page.expanded_query}")
    for row in page.rows:
        grades = ", ".join(row.grade_levels) or "-"
        lines.append(f"  {row.rank:5.3f}  {row.lesson_id}  {row.title}  [grades: {grades}]")
    _emit(args, page.model_dump(mode="json"), "\n".join(lines))
    return 0


async def _cmd_find_duplicates(args: argparse.Namespace) -> int:
    engine = _build(args)
    if args.groups:
        groups = await engine.detector.find_duplicate_groups(include_resolved=args.include_resolved)
        lines = [f"{len(groups)} duplicate group(s)"]
        for group in groups:
            methods = ", ".join(m.value for m in group.detection_methods)
            lines.append(f"  {group.group_id}  [{group.confidence}; {methods}]")
            for lesson_id in group.lesson_ids:
                lines.append(f"    {lesson_id}  {group.titles.get(lesson_id, '')}")
        _emit(args, [g.model_dump(mode="json") for g in groups], "\n".join(lines))
        return 0

    pairs = await engine.detector.find_duplicate_pairs()
    lines = [f"{len(pairs)} duplicate pair(s)"]
    for pair in pairs:
        similarity = f"{pair.similarity:.3f}" if pair.similarity is not None else "  -  "
        lines.append(
            f"  {similarity}  {pair.detection_method.value:<10}  "
            f"{pair.lesson_id_1} / {pair.lesson_id_2}  {pair.title_1!r}"
        )
    _emit(args, [p.model_dump(mode="json") for p in pairs], "\n".join(lines))
    return 0


def _parse_title_updates(values: list[str] | None) -> dict[str, str]:
    updates: dict[str, str] = {}
    for value in values or []:
        lesson_id, sep, title = value.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"--title expects LESSON_ID=NEW TITLE, got {value!r}")
        updates[lesson_id.strip()] = title
    return updates


async def _cmd_resolve(args: argparse.Namespace) -> int:
    try:
        title_updates = _parse_title_updates(args.title)
    except argparse.ArgumentTypeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    request = ResolutionRequest(
        group_id=args.group_id,
        canonical_id=args.canonical,
        duplicate_ids=args.duplicate,
        duplicate_type=DuplicateType(args.type),
        similarity_score=args.score,
        merge_metadata=args.merge,
        notes=args.notes,
        mode=ResolutionMode(args.mode),
        sub_group_name=args.sub_group_name,
        parent_group_id=args.parent_group_id,
        title_updates=title_updates,
    )

    engine = _build(args)
    result = await engine.resolution.resolve_duplicate_group(request, user_id=args.user)

    if result.success:
        text = (
            f"Resolved {args.group_id}: {result.action_taken.value}, "
            f"{result.archived_count} archived, {len(result.title_updates)} title update(s) "
            f"[{result.resolution_id}]"
        )
    else:
        text = f"Resolution failed ({result.reason.value}): {result.error}"
    _emit(args, result.model_dump(mode="json"), text)
    return 0 if result.success else 1


async def _cmd_backfill_embeddings(args: argparse.Namespace) -> int:
    engine = _build(args)
    if not engine.fingerprints.embeddings_enabled:
        print("Error: no embedding provider configured (set OPENAI_API_KEY)", file=sys.stderr)
        return 1
    report = await engine.maintenance.backfill_embeddings()
    _emit(
        args,
        report.model_dump(mode="json"),
        f"Embedded {len(report.updated)} of {report.examined} lesson(s); {len(report.failed)} failed",
    )
    return 0 if not report.failed else 1


async def _cmd_regenerate_hashes(args: argparse.Namespace) -> int:
    engine = _build(args)
    report = await engine.maintenance.regenerate_hashes()
    _emit(
        args,
        report.model_dump(mode="json"),
        f"Rehashed {report.examined} lesson(s): {len(report.updated)} changed, {report.unchanged} unchanged",
    )
    return 0 if not report.failed else 1


_COMMANDS = {
    "init-db": _cmd_init_db,
    "import-lessons": _cmd_import_lessons,
    "search": _cmd_search,
    "find-duplicates": _cmd_find_duplicates,
    "resolve": _cmd_resolve,
    "backfill-embeddings": _cmd_backfill_embeddings,
    "regenerate-hashes": _cmd_regenerate_hashes,
}


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default="config/config.yaml", help="YAML config file.")
    common.add_argument("--db", default=None, help="Override the catalog database path.")
    common.add_argument("--json", action="store_true", dest="json_output", help="Print JSON.")
    common.add_argument("--quiet", "-q", action="store_true", help="Only warnings, on stderr.")

    parser = argparse.ArgumentParser(
        prog="python -m src.cli",
        description="Operate the lesson catalog: search, duplicate review and maintenance.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", parents=[common], help="Create the database schema.")

    p_import = sub.add_parser("import-lessons", parents=[common], help="Upsert lessons from JSON.")
    p_import.add_argument("file", help="JSON file holding a list of lesson objects.")

    p_search = sub.add_parser("search", parents=[common], help="Search the catalog.")
    p_search.add_argument("query", nargs="?", default=None, help="Free-text query.")
    p_search.add_argument("--grade", action="append", help="Grade level (repeatable).")
    p_search.add_argument("--theme", action="append", help="Thematic category (repeatable).")
    p_search.add_argument("--season", action="append", help="Season (repeatable).")
    p_search.add_argument("--culture", action="append", help="Cultural heritage (repeatable).")
    p_search.add_argument("--activity", action="append", help="Activity type (repeatable).")
    p_search.add_argument("--location", action="append", help="Location requirement (repeatable).")
    p_search.add_argument("--lesson-format", default=None, help="Exact lesson format.")
    p_search.add_argument("--cooking-method", default=None, help="Exact cooking method.")
    p_search.add_argument("--page-size", type=int, default=None)
    p_search.add_argument("--page-offset", type=int, default=0)

    p_dupes = sub.add_parser("find-duplicates", parents=[common], help="List catalog duplicates.")
    p_dupes.add_argument("--groups", action="store_true", help="Group pairs transitively.")
    p_dupes.add_argument(
        "--include-resolved", action="store_true", help="Keep groups that were already resolved."
    )

    p_resolve = sub.add_parser("resolve", parents=[common], help="Resolve a duplicate group.")
    p_resolve.add_argument("--group-id", required=True)
    p_resolve.add_argument("--canonical", required=True, help="Lesson id to keep.")
    p_resolve.add_argument("--duplicate", action="append", required=True, help="Duplicate id (repeatable).")
    p_resolve.add_argument("--type", choices=[t.value for t in DuplicateType], default=DuplicateType.NEAR.value)
    p_resolve.add_argument("--score", type=float, default=1.0, help="Similarity score in [0, 1].")
    p_resolve.add_argument("--merge", action="store_true", help="Union list attributes into the canonical.")
    p_resolve.add_argument("--notes", default=None)
    p_resolve.add_argument("--mode", choices=[m.value for m in ResolutionMode], default=ResolutionMode.SINGLE.value)
    p_resolve.add_argument("--sub-group-name", default=None)
    p_resolve.add_argument("--parent-group-id", default=None)
    p_resolve.add_argument("--title", action="append", help="LESSON_ID=NEW TITLE (repeatable).")
    p_resolve.add_argument("--user", required=True, help="Resolving user id.")

    sub.add_parser("backfill-embeddings", parents=[common], help="Embed lessons lacking one.")
    sub.add_parser("regenerate-hashes", parents=[common], help="Recompute content hashes.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the chosen subcommand and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # JSON mode implies quiet so stdout stays parseable.
    args.quiet = args.quiet or args.json_output
    if args.quiet:
        _suppress_logs()

    return asyncio.run(_COMMANDS[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
