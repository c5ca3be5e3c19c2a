"""Command-line interface for huntmap."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from huntmap import __version__
from huntmap.config import DEFAULT_FILE_NAMES, WorldConfig, WorldPaths, load_world_config
from huntmap.contracts import validate_hunt_report, validate_monster_census
from huntmap.errors import FatalInputError, IssueLog
from huntmap.features import collect_unique_ids, extract_tiles, render_unique_ids
from huntmap.hunts import render_report, report_as_dict
from huntmap.logging_utils import LogOptions, configure_logging
from huntmap.monsters import monsters_by_region, render_census
from huntmap.occurrences import count_occurrences, count_occurrences_by_region
from huntmap.pipeline import (
    LoadOptions,
    load_map_tree,
    load_region_index,
    load_region_palette,
    load_world,
    run_hunt_analysis,
)
from huntmap.regions import format_regions

LOGGER = logging.getLogger("huntmap.cli")


def _add_world_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the input location flags shared by analysis commands."""
    parser.add_argument(
        "--world-dir",
        help="Directory holding the world files (overrides the config).",
    )
    parser.add_argument("--map", help="Path to the OTBM map or its JSON node dump.")
    parser.add_argument("--raster", help="Path to the region bounds raster.")
    parser.add_argument("--spawns", help="Path to the spawn XML file.")
    parser.add_argument("--areas", help="Path to the area catalog XML file.")
    parser.add_argument("--regions", help="Path to a regions.xml palette.")
    parser.add_argument(
        "--output",
        default="-",
        help="Output path or '-' for stdout.",
    )


def _add_load_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Load the world inputs with this many worker threads.",
    )
    parser.add_argument(
        "--raster-jobs",
        type=int,
        default=1,
        help="Split the raster classification into this many row bands.",
    )


def _add_hunts_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the hunt report subcommand."""
    hunts = subparsers.add_parser("hunts", help="Report hunt areas grouped by region.")
    _add_world_arguments(hunts)
    _add_load_arguments(hunts)
    hunts.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Report format.",
    )
    hunts.add_argument(
        "--match-floor",
        action="store_true",
        help="Only join spawns placed on the same floor as the tile.",
    )


def _add_monsters_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the monster census subcommand."""
    monsters = subparsers.add_parser(
        "monsters",
        help="Count spawned monsters per region and area.",
    )
    _add_world_arguments(monsters)
    _add_load_arguments(monsters)
    monsters.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Report format.",
    )


def _add_unique_ids_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the unique id audit subcommand."""
    unique = subparsers.add_parser(
        "unique-ids",
        help="List every distinct tile id and item id used on the map.",
    )
    _add_world_arguments(unique)


def _add_occurrences_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the id occurrence subcommand."""
    occurrences = subparsers.add_parser(
        "occurrences",
        help="Count tile/item id occurrences on the map.",
    )
    _add_world_arguments(occurrences)
    _add_load_arguments(occurrences)
    occurrences.add_argument(
        "--id",
        dest="ids",
        type=int,
        action="append",
        required=True,
        help="Tile or item id to count (repeatable).",
    )
    occurrences.add_argument(
        "--by-region",
        action="store_true",
        help="Bucket counts by region.",
    )


def _add_regions_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the region palette subcommand."""
    regions = subparsers.add_parser("regions", help="Show the region palette in use.")
    regions.add_argument("--world-dir", help="Directory holding regions.xml.")
    regions.add_argument("--regions", help="Path to a regions.xml palette.")


def _add_version_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the version subcommand."""
    subparsers.add_parser("version", help="Print the current version.")


def _world_dir(args: argparse.Namespace, config: WorldConfig) -> Path | None:
    value = getattr(args, "world_dir", None)
    return Path(value) if value else config.world_dir


def _input_path(args: argparse.Namespace, config: WorldConfig, key: str) -> Path | None:
    """Return an explicit input path or its default inside the world dir."""
    value = getattr(args, key, None)
    if value:
        return Path(value)
    root = _world_dir(args, config)
    if root is None:
        return None
    return root / config.files.get(key, DEFAULT_FILE_NAMES[key])


def _palette_path(args: argparse.Namespace, config: WorldConfig) -> Path | None:
    """Return the regions.xml path when given or present in the world dir."""
    if getattr(args, "regions", None):
        return Path(args.regions)
    candidate = _input_path(args, config, "regions")
    if candidate is not None and candidate.exists():
        return candidate
    return None


def _load_options(args: argparse.Namespace, config: WorldConfig) -> LoadOptions:
    return LoadOptions(
        calibration=config.calibration,
        attribute_codes=config.attribute_codes,
        jobs=max(1, int(getattr(args, "jobs", 1) or 1)),
        raster_jobs=max(1, int(getattr(args, "raster_jobs", 1) or 1)),
    )


def _write_output(text: str, output: str) -> None:
    if output == "-":
        print(text)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")
    LOGGER.info("Report written to %s.", path)


def _require(parser: argparse.ArgumentParser, path: Path | None, flag: str) -> Path:
    if path is None:
        parser.error(f"{flag} or --world-dir is required")
    return path


def _resolve_world(
    args: argparse.Namespace,
    config: WorldConfig,
    parser: argparse.ArgumentParser,
) -> WorldPaths:
    try:
        return config.resolve_paths(
            world_dir=_world_dir(args, config),
            overrides={key: getattr(args, key, None) for key in DEFAULT_FILE_NAMES},
        )
    except ValueError as exc:
        parser.error(str(exc))


def _run_hunts(
    args: argparse.Namespace,
    config: WorldConfig,
    parser: argparse.ArgumentParser,
) -> int:
    world = load_world(_resolve_world(args, config, parser), _load_options(args, config))
    analysis = run_hunt_analysis(world, match_floor=args.match_floor)
    if args.format == "json":
        payload = report_as_dict(analysis)
        validate_hunt_report(payload)
        _write_output(json.dumps(payload, indent=2), args.output)
    else:
        _write_output(render_report(analysis.regions), args.output)
    if analysis.issues:
        LOGGER.warning("Data quality issues: %s", analysis.issues)
    LOGGER.info(
        "%d tiles without an area; %d hunt areas without a region.",
        analysis.tiles_without_area,
        len(analysis.unresolved_anchors),
    )
    return 0


def _run_monsters(
    args: argparse.Namespace,
    config: WorldConfig,
    parser: argparse.ArgumentParser,
) -> int:
    world = load_world(_resolve_world(args, config, parser), _load_options(args, config))
    census = monsters_by_region(world.spawn_index, world.region_index, world.tiles, world.areas)
    if args.format == "json":
        payload = census.as_dict()
        validate_monster_census(payload)
        _write_output(json.dumps(payload, indent=2), args.output)
    else:
        _write_output(render_census(census), args.output)
    if len(world.issues):
        LOGGER.warning("Data quality issues: %s", world.issues.counts())
    return 0


def _run_unique_ids(
    args: argparse.Namespace,
    config: WorldConfig,
    parser: argparse.ArgumentParser,
) -> int:
    map_path = _require(parser, _input_path(args, config, "map"), "--map")
    tree = load_map_tree(map_path, config.attribute_codes)
    _write_output(render_unique_ids(collect_unique_ids(tree, IssueLog())), args.output)
    return 0


def _run_occurrences(
    args: argparse.Namespace,
    config: WorldConfig,
    parser: argparse.ArgumentParser,
) -> int:
    map_path = _require(parser, _input_path(args, config, "map"), "--map")
    issues = IssueLog()
    tiles = extract_tiles(load_map_tree(map_path, config.attribute_codes), issues)
    if args.by_region:
        raster_path = _require(parser, _input_path(args, config, "raster"), "--raster")
        palette = load_region_palette(_palette_path(args, config), issues)
        index = load_region_index(raster_path, palette, _load_options(args, config))
        payload = count_occurrences_by_region(tiles, index, args.ids).as_dict()
    else:
        result = count_occurrences(tiles, args.ids)
        payload = {
            "tiles_analyzed": result.tiles_analyzed,
            "results": {str(key): value for key, value in result.counts.items()},
        }
    payload["map"] = str(map_path)
    _write_output(json.dumps(payload, indent=2), args.output)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = argparse.ArgumentParser(
        prog="huntmap",
        description="Huntmap world spatial index and hunt correlation",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON on stderr.",
    )
    parser.add_argument(
        "--log-file",
        help="Optional path for JSON log output.",
    )
    parser.add_argument(
        "--config",
        help="Path to a huntmap.json world config.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_hunts_parser(subparsers)
    _add_monsters_parser(subparsers)
    _add_unique_ids_parser(subparsers)
    _add_occurrences_parser(subparsers)
    _add_regions_parser(subparsers)
    _add_version_parser(subparsers)

    args = parser.parse_args(argv)
    log_file_value = getattr(args, "log_file", None)
    configure_logging(
        LogOptions(
            verbose=getattr(args, "verbose", 0) or 0,
            quiet=bool(getattr(args, "quiet", False)),
            log_file=Path(log_file_value) if log_file_value else None,
            json_console=bool(getattr(args, "log_json", False)),
        )
    )

    if args.command == "version":
        print(__version__)
        return 0

    try:
        config = load_world_config(Path(args.config) if args.config else None)
        if args.command == "hunts":
            return _run_hunts(args, config, parser)
        if args.command == "monsters":
            return _run_monsters(args, config, parser)
        if args.command == "unique-ids":
            return _run_unique_ids(args, config, parser)
        if args.command == "occurrences":
            return _run_occurrences(args, config, parser)
        if args.command == "regions":
            print(format_regions(load_region_palette(_palette_path(args, config))))
            return 0
    except FatalInputError as exc:
        LOGGER.error("Aborting: %s", exc, extra={"input": exc.input_name})
        return 2

    parser.error(f"Unknown command: {args.command}")
    return 2
