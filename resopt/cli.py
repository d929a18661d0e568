#!/usr/bin/env python3
"""
resopt-remap: rewrite resource id arrays in a store dump.

Loads a JSON store dump, remaps the int arrays of every resource holder
class with the given remap table, writes the result back and prints a
per-class summary.

Exit status: 0 on success, 1 when some classes had to be skipped, 2 on
configuration or input errors.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from loguru import logger

from resopt.config import ResourceConfig
from resopt.dex_json import dump_stores, load_stores
from resopt.errors import UnknownRole
from resopt.ids import RemapTable
from resopt.ir import iter_store_classes
from resopt.remapper import PassStats, ResourceArrayRemapper


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, record.getMessage())


def setup_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, format="[{level}] {message}", level="DEBUG" if verbose else "INFO")
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.DEBUG if verbose else logging.INFO, force=True)


def dump_initializers(stores, config: ResourceConfig, title: str) -> None:
    """Log the static initializer of every holder class."""
    for cls in iter_store_classes(stores):
        if not config.is_id_holder(cls.name):
            continue
        clinit = cls.get_clinit()
        if clinit is None or clinit.get_code() is None:
            continue
        logger.info("{} {} <clinit>:\n{}", title, cls.name, clinit.get_code().dump())


def print_summary(stats: PassStats) -> None:
    print("=" * 78)
    print(f"{'Class':<40} {'Role':<11} {'Groups':<7} {'Kept':<6} {'Deleted':<8}")
    print("-" * 78)
    for r in stats.reports:
        status = "" if r.error is None else "  SKIPPED"
        print(f"{r.class_name:<40} {r.role.value:<11} {r.groups:<7} {r.kept:<6} {r.deleted:<8}{status}")
    print("-" * 78)
    print(f"{'TOTAL':<40} {'':<11} {stats.groups:<7} {stats.kept:<6} {stats.deleted:<8}")
    if stats.failures:
        print(f"\n{len(stats.failures)} classes skipped:")
        for class_name, error in stats.failures:
            print(f"  {class_name}: {error}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Remap resource id arrays in resource holder classes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  resopt-remap classes.json --remap-table ids.json -o remapped.json
  resopt-remap classes.json --remap-table ids.json --config resources.json --jobs 4
        """,
    )
    parser.add_argument("stores", type=Path, help="JSON store dump to rewrite")
    parser.add_argument("--remap-table", "-t", type=Path, required=True,
                        help="JSON mapping of old resource id to new resource id")
    parser.add_argument("--config", "-c", type=Path,
                        help="JSON resource config (customized classes, role rules)")
    parser.add_argument("--output", "-o", type=Path,
                        help="Where to write the result (default: overwrite STORES)")
    parser.add_argument("--jobs", "-j", type=int, default=1,
                        help="Worker threads (default: 1)")
    parser.add_argument("--dump", action="store_true",
                        help="Log holder initializers before and after rewriting")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = ResourceConfig.from_json(args.config) if args.config else ResourceConfig()
        table = RemapTable.from_json(args.remap_table)
        stores = load_stores(args.stores)
    except (OSError, ValueError) as e:
        logger.error("Cannot load input: {}", e)
        return 2

    logger.info("Loaded {} classes, {} remapped ids", sum(1 for _ in iter_store_classes(stores)), len(table))

    if args.dump:
        dump_initializers(stores, config, "BASELINE")

    try:
        stats = ResourceArrayRemapper(config, table, jobs=args.jobs).run(stores)
    except UnknownRole as e:
        logger.error("Configuration error: {}", e)
        return 2
    except ValueError as e:
        logger.error("{}", e)
        return 2

    if args.dump:
        dump_initializers(stores, config, "MODIFIED")

    dump_stores(stores, args.output or args.stores)
    print_summary(stats)
    logger.debug("Stats: {}", json.dumps(stats.as_dict()))

    return 1 if stats.failures else 0


if __name__ == "__main__":
    sys.exit(main())
