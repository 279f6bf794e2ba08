"""Command-line entry point for time-zone lookups."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from tzindex.batch import BatchLookupError, BatchLookupInputs, BatchLookupRunner
from tzindex.core.config import EngineConfig, load_config
from tzindex.core.errors import (
    ConfigurationError,
    DataAcquisitionFailure,
    InvalidBoundingRegion,
    InvalidCoordinate,
    MalformedGeometry,
)
from tzindex.core.logging import add_file_handler, configure_logging
from tzindex.engine import TimeZoneEngine
from tzindex.lookup.l2.index import MAX_LAT, MAX_LON, MIN_LAT, MIN_LON

EXIT_OK = 0
EXIT_DATA_ERROR = 1
EXIT_USAGE_ERROR = 2


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, default=None, help="Optional YAML config file")
    parser.add_argument("--data", type=Path, default=None, help="Boundary dataset (GeoJSON, zip or GeoParquet)")
    parser.add_argument(
        "--bbox",
        type=float,
        nargs=4,
        metavar=("MIN_LAT", "MIN_LON", "MAX_LAT", "MAX_LON"),
        default=None,
        help="Only index polygons intersecting this bounding box",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")


def _load_engine(args: argparse.Namespace, config: EngineConfig) -> TimeZoneEngine:
    bbox = args.bbox or (MIN_LAT, MIN_LON, MAX_LAT, MAX_LON)
    return TimeZoneEngine.initialize(*bbox, config=config, source=args.data)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Offline latitude/longitude to time-zone lookup")
    subparsers = parser.add_subparsers(dest="command", required=True)

    query_parser = subparsers.add_parser("query", help="Resolve the time zone of a single coordinate")
    query_parser.add_argument("--lat", type=float, required=True, help="Latitude in degrees")
    query_parser.add_argument("--lon", type=float, required=True, help="Longitude in degrees")
    query_parser.add_argument("--all", action="store_true", help="List every zone containing the point")
    _add_common(query_parser)

    zones_parser = subparsers.add_parser("zones", help="List the zone ids present in the index")
    _add_common(zones_parser)

    annotate_parser = subparsers.add_parser("annotate", help="Append a tzid column to Parquet coordinate rows")
    annotate_parser.add_argument("--input", type=Path, required=True, help="Parquet file or directory of parts")
    annotate_parser.add_argument("--output", type=Path, required=True, help="Output directory")
    annotate_parser.add_argument("--lat-column", default="lat_deg")
    annotate_parser.add_argument("--lon-column", default="lon_deg")
    annotate_parser.add_argument("--chunk-size", type=int, default=250_000)
    annotate_parser.add_argument("--resume", action="store_true", help="Skip when the output already exists")
    _add_common(annotate_parser)

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else EngineConfig.default()
        level = logging.DEBUG if args.verbose else config.log_level
        configure_logging(level)
        if args.log_file is not None:
            add_file_handler(args.log_file, level)
        engine = _load_engine(args, config)
        if args.command == "query":
            if args.all:
                print(json.dumps(engine.query_all(args.lat, args.lon)))
            else:
                zone_id = engine.query(args.lat, args.lon)
                print(zone_id if zone_id is not None else "")
            return EXIT_OK

        if args.command == "zones":
            for zone_id in engine.known_zone_ids():
                print(zone_id)
            return EXIT_OK

        if args.command == "annotate":
            result = BatchLookupRunner().run(
                engine,
                BatchLookupInputs(
                    input_path=args.input,
                    output_dir=args.output,
                    lat_column=args.lat_column,
                    lon_column=args.lon_column,
                    chunk_size=args.chunk_size,
                    resume=args.resume,
                ),
            )
            print(f"annotated output written to: {result.output_path}")
            print(f"run report: {result.report_path}")
            return EXIT_OK
    except (InvalidCoordinate, InvalidBoundingRegion, ConfigurationError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE_ERROR
    except (DataAcquisitionFailure, MalformedGeometry, BatchLookupError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_DATA_ERROR

    parser.error("Unknown command")
    return EXIT_USAGE_ERROR


if __name__ == "__main__":
    sys.exit(main())
