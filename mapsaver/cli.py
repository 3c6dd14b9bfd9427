#!/usr/bin/env python3
"""
Static Map Saver command line.

Usage:
    static-map-saver airtable --table Places --limit 1000
    static-map-saver save-maps --table Places --dir /var/www/ --flush
"""

import argparse
import sys
from typing import List

from .config.config_module import (
    AIRTABLE_REQUIRED_KEYS,
    REQUIRED_KEYS,
    ConfigError,
    MapSaverSettings,
)
from .config.logger_module import initialize_logger, log_info
from .mapping.mapping_workflow import MapSaver


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--table', '-t', default='Places',
                        help='The Airtable table to read (default: Places)')
    parser.add_argument('--limit', '-l', type=int, default=1000,
                        help='Limit how many records to return (default: 1000)')
    parser.add_argument('--offset', '-o', default=0,
                        help='Offset to start from (default: 0)')
    parser.add_argument('--flush', '-f', action='store_true',
                        help='Ignore cached Airtable pages and replace them')
    parser.add_argument('--dir', '-d', default='.',
                        help='Directory holding your .env file, ex: /var/www/ (default: .)')


def parse_arguments(argv: List[str] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='static-map-saver',
        description='Save MapBox static map images for places stored in Airtable',
    )
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: LOG_LEVEL from .env or INFO)')

    subparsers = parser.add_subparsers(dest='command_name', required=True)

    airtable_parser = subparsers.add_parser(
        'airtable', aliases=['air'], help='Get Airtable data'
    )
    _add_common_options(airtable_parser)
    airtable_parser.set_defaults(command='airtable')

    maps_parser = subparsers.add_parser(
        'save-maps', aliases=['maps'], help='Save wide and detail map images for every place'
    )
    _add_common_options(maps_parser)
    maps_parser.set_defaults(command='save-maps')

    return parser.parse_args(argv)


def build_map_saver(args: argparse.Namespace, settings: MapSaverSettings) -> MapSaver:
    saver = MapSaver(settings).set_limit(args.limit)
    if args.flush:
        saver.set_use_airtable_cache(True).set_flush_cache(True)
    return saver


def main(argv: List[str] = None) -> int:
    """Main entry point for Static Map Saver."""
    args = parse_arguments(argv)

    required_keys = AIRTABLE_REQUIRED_KEYS if args.command == 'airtable' else REQUIRED_KEYS
    try:
        settings = MapSaverSettings.from_env(args.dir, required_keys=required_keys)
    except ConfigError as e:
        print(f"\nConfiguration Error: {e}")
        return 1

    initialize_logger(log_level=args.log_level or settings.log_level, log_file=settings.log_file)
    log_info(f"### ENV directory {args.dir} ###")

    saver = build_map_saver(args, settings)

    if args.command == 'airtable':
        data = saver.get_airtable_list(args.table, args.offset, get_all=True)
        log_info(f"{len(data['records'])} records in '{args.table}'")
        return 0

    report = saver.save_static_map_images(args.table, args.offset)
    log_info(
        f"{report.records_seen} records processed, {len(report.saved)} images saved, "
        f"{len(report.failures)} failures"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
