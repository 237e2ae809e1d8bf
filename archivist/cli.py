"""
Archivist CLI — inspect archive dumps with the same engine the portal uses.

Commands:
- archivist tree      — Root categories, or one folder listing
- archivist courses   — Approved resources grouped by course and type
- archivist terms     — Term filter values
- archivist check     — Report orphan documents and parent cycles

Dumps are JSON or YAML files holding either a list of records or a mapping
{"documents": [...], "resources": [...]}. With --remote the commands read the
REST store at remote.base_url instead of a dump.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import yaml

from archivist.archive import ArchiveEngine
from archivist.engine.cache import CacheLayer
from archivist.engine.config import ArchivistConfig, load_config
from archivist.engine.errors import ArchivistError
from archivist.engine.logging import configure_logging, init_logging, log, log_system_event, shutdown_logging
from archivist.engine.remote import HttpCollectionSource
from archivist.engine.subscription import CollectionSource, InMemoryStore
from archivist.resources.filters import ALL, FilterConfig

logger = logging.getLogger("archivist.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="archivist",
        description="Archivist — archive navigation and resource aggregation",
    )
    parser.add_argument("--config", help="Path to archivist.yaml (default: auto-discover)")
    parser.add_argument("--remote", action="store_true", help="Read the REST store at remote.base_url")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # archivist tree
    tree_parser = subparsers.add_parser("tree", help="List root categories or a folder")
    tree_parser.add_argument("dump", nargs="?", help="Document dump (JSON/YAML)")
    tree_parser.add_argument("--category", help="Root category id")
    tree_parser.add_argument("--path", help="Folder id inside the category (default: category root)")

    # archivist courses
    courses_parser = subparsers.add_parser("courses", help="Group resources by course")
    courses_parser.add_argument("dump", nargs="?", help="Resource dump (JSON/YAML)")
    courses_parser.add_argument("--search", default="", help="Course code or name substring")
    courses_parser.add_argument("--type", dest="resource_type", default=ALL, help="Resource type")
    courses_parser.add_argument("--term", default=ALL, help="Term, e.g. '2023 Güz'")
    courses_parser.add_argument("--saved", nargs="*", default=[], help="Saved resource ids")
    courses_parser.add_argument("--saved-only", action="store_true", help="Only saved resources")
    courses_parser.add_argument("--json", action="store_true", help="Emit JSON")

    # archivist terms
    terms_parser = subparsers.add_parser("terms", help="List term filter values")
    terms_parser.add_argument("dump", nargs="?", help="Resource dump (JSON/YAML)")

    # archivist check
    check_parser = subparsers.add_parser("check", help="Report orphans and parent cycles")
    check_parser.add_argument("dump", nargs="?", help="Document dump (JSON/YAML)")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except ArchivistError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    configure_logging(level=config.logging.level, fmt=config.logging.format)

    queue_cfg = config.logging.async_queue
    init_logging(
        log_dir=config.logging.directory,
        flush_interval_ms=queue_cfg.flush_interval_ms,
        flush_batch_size=queue_cfg.flush_batch_size,
        max_queue_size=queue_cfg.max_queue_size,
    )
    log(log_system_event("cli_command", details={"command": args.command, "remote": args.remote}))

    commands = {
        "tree": cmd_tree,
        "courses": cmd_courses,
        "terms": cmd_terms,
        "check": cmd_check,
    }
    try:
        return commands[args.command](args, config)
    except (OSError, KeyError, ValueError, ArchivistError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_logging()


def load_dump(path: str, config: ArchivistConfig) -> Dict[str, List[Dict[str, Any]]]:
    """Read a dump file into {collection_name: records}."""
    file_path = Path(path)
    with open(file_path, "r", encoding="utf-8") as f:
        if file_path.suffix.lower() in (".yaml", ".yml"):
            raw = yaml.safe_load(f)
        else:
            raw = json.load(f)

    collections = config.collections
    if isinstance(raw, list):
        # A bare list is routed by shape
        key = collections.resources if any("courseCode" in r for r in raw) else collections.documents
        return {key: raw}
    if isinstance(raw, dict):
        return {
            collections.documents: raw.get("documents", raw.get(collections.documents, [])),
            collections.resources: raw.get("resources", raw.get(collections.resources, [])),
        }
    raise ValueError(f"{path}: expected a list or a mapping of collections")


def _source(args: argparse.Namespace, config: ArchivistConfig) -> CollectionSource:
    if args.remote:
        return HttpCollectionSource(config.remote.base_url, timeout=config.remote.timeout)
    if not args.dump:
        raise ValueError("a dump file is required without --remote")
    return InMemoryStore(load_dump(args.dump, config))


@contextmanager
def _engine(args: argparse.Namespace, config: ArchivistConfig, saved=None) -> Iterator[ArchiveEngine]:
    source = _source(args, config)
    engine = ArchiveEngine(source, config=config, cache=CacheLayer(), saved=saved)
    try:
        engine.start()
        if engine.errors:
            raise engine.errors[0]
        yield engine
    finally:
        engine.close()
        if isinstance(source, HttpCollectionSource):
            source.close()


def cmd_tree(args: argparse.Namespace, config: ArchivistConfig) -> int:
    with _engine(args, config) as engine:
        if not args.category:
            roots = engine.root_categories()
            if not roots:
                print("No categories.")
            for category in roots:
                print(f"[{category.id}] {category.title}")
            return 0

        if args.path:
            cursor = engine.open_at(args.category, args.path)
        else:
            cursor = engine.cursor(args.category)
        print(" / ".join(crumb.label for crumb in cursor.breadcrumb))
        items = engine.children(args.category)
        if not items:
            print("  (empty folder)")
        for item in items:
            marker = "+" if item.is_folder else "-"
            size = f"  {item.size}" if item.is_file and item.size else ""
            print(f"  {marker} [{item.id}] {item.title}{size}")
    return 0


def cmd_courses(args: argparse.Namespace, config: ArchivistConfig) -> int:
    filters = FilterConfig(
        saved_only=args.saved_only,
        search_text=args.search,
        resource_type=args.resource_type,
        term=args.term,
    )
    with _engine(args, config, saved=set(args.saved)) as engine:
        groups = engine.grouped_courses(filters)
        if args.json:
            print(json.dumps([g.to_dict() for g in groups], ensure_ascii=False, indent=2))
            return 0
        if not groups:
            print("No resources match the current filters.")
        for group in groups:
            name = f" — {group.name}" if group.name else ""
            print(f"{group.code}{name} ({group.total_count})")
            for resource_type, items in group.by_type.items():
                print(f"  {resource_type}: {len(items)}")
                for item in items:
                    term = f" [{item.term}]" if item.term else ""
                    print(f"    - {item.title}{term}")
    return 0


def cmd_terms(args: argparse.Namespace, config: ArchivistConfig) -> int:
    with _engine(args, config) as engine:
        for term in engine.available_terms():
            print(term)
    return 0


def cmd_check(args: argparse.Namespace, config: ArchivistConfig) -> int:
    with _engine(args, config) as engine:
        anomalies = engine.tree.anomalies()
        print(f"{len(engine.tree)} document(s), {len(engine.root_categories())} categor(ies)")
        for doc_id in anomalies.orphans:
            doc = engine.tree.get(doc_id)
            print(f"  orphan: [{doc_id}] parent '{doc.parent_path}' not found")
        for cycle in anomalies.cycles:
            print(f"  cycle: {' -> '.join(cycle)}")
        if anomalies.unreachable:
            print(f"  unreachable below anomalies: {', '.join(anomalies.unreachable)}")
        if anomalies.has_any:
            return 1
        print("  OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())
