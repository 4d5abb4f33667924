"""Command-line entry point for the offline map-tile cache."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from domain.models import Region, TileCoordinate
from services.map_cache_service import MapTileCacheService
from shared.config import build_config, load_config
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure application logging to stdout and an optional file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_file), encoding='utf-8'))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='offline-tile-cache',
        description='Offline map-tile cache: fetch, pre-cache and clean up map tiles',
    )
    parser.add_argument('--config', type=Path, help='TOML configuration file')
    parser.add_argument('--cache-dir', type=Path, help='Tile cache directory')
    parser.add_argument(
        '--alternate', action='store_true', help='Use the alternate tile provider'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    parser.add_argument('--log-file', type=Path, help='Also log to this file')

    sub = parser.add_subparsers(dest='command', required=True)

    get = sub.add_parser('get', help='Fetch one tile (cache hit or download)')
    get.add_argument('z', type=int)
    get.add_argument('x', type=int)
    get.add_argument('y', type=int)

    for name, help_text in (
        ('prefetch', 'Pre-cache a region'),
        ('set-region', 'Save the preferred region'),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument('--lat', type=float, required=True)
        p.add_argument('--lon', type=float, required=True)
        p.add_argument('--lat-delta', type=float, default=0.1)
        p.add_argument('--lon-delta', type=float, default=0.1)
        p.add_argument('--name')
        if name == 'prefetch':
            p.add_argument(
                '--zoom', type=int, action='append', help='Zoom level (repeatable)'
            )

    sub.add_parser('prefetch-common', help='Pre-cache preferred and common regions')
    sub.add_parser('cleanup', help='Evict old tiles and enforce the size budget')
    sub.add_parser('stats', help='Show cache statistics')
    return parser


def _region_from_args(args: argparse.Namespace) -> Region:
    return Region(
        latitude=args.lat,
        longitude=args.lon,
        latitude_delta=args.lat_delta,
        longitude_delta=args.lon_delta,
        name=args.name,
    )


async def run_command(args: argparse.Namespace, service: MapTileCacheService) -> int:
    alt = args.alternate
    if args.command == 'get':
        path = await service.get_map_tile(TileCoordinate(x=args.x, y=args.y, z=args.z), alt)
        if path is None:
            return 1
        print(path)
    elif args.command == 'prefetch':
        result = await service.pre_cache_region(_region_from_args(args), args.zoom, alt)
        print(
            f'requested={result.requested} cached={result.cached} '
            f'failed={result.failed} skipped={result.skipped_reason or "-"}'
        )
    elif args.command == 'set-region':
        if not await service.save_preferred_region(_region_from_args(args)):
            return 1
    elif args.command == 'prefetch-common':
        results = await service.pre_cache_common_regions(alt)
        print(f'regions={len(results)} cached={sum(r.cached for r in results)}')
    elif args.command == 'cleanup':
        report = await service.cleanup_map_tile_cache()
        print(
            f'scanned={report.scanned} size_evicted={len(report.evicted_for_size)} '
            f'age_evicted={len(report.evicted_for_age)} freed={report.bytes_freed}'
        )
    elif args.command == 'stats':
        stats = await service.stats()
        print(stats.model_dump_json(indent=2))
    return 0


async def _main_async(args: argparse.Namespace) -> int:
    overrides = {'cache_directory': args.cache_dir}
    config = (
        load_config(args.config, **overrides) if args.config else build_config(**overrides)
    )
    async with MapTileCacheService(config) as service:
        return await run_command(args, service)


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)
    try:
        return asyncio.run(_main_async(args))
    except ConfigurationError as e:
        logger.error('%s', e)
        return 2
    except ValueError as e:
        logger.error('Invalid argument: %s', e)
        return 2


if __name__ == '__main__':
    sys.exit(main())
