"""Command-line entry point: run one enrichment and print its events."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from sitedata.core.config import Settings
from sitedata.enrichment.orchestrator import create_orchestrator
from sitedata.geo.models import Coordinates


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Enrich a property address and print each event as a JSON line."
    )
    parser.add_argument("address", help="Street address to enrich.")
    parser.add_argument("--lat", type=float, default=None, help="Known latitude; skips geocoding.")
    parser.add_argument("--lng", type=float, default=None, help="Known longitude; skips geocoding.")
    args = parser.parse_args(argv)
    if (args.lat is None) != (args.lng is None):
        parser.error("--lat and --lng must be given together")
    return args


async def run(address: str, coordinates: Coordinates | None, settings: Settings) -> None:
    orchestrator = create_orchestrator(settings)
    orchestrator.bus.subscribe(lambda event: print(event.model_dump_json(), flush=True))
    try:
        await orchestrator.enrich(address, coordinates)
    finally:
        await orchestrator.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    coordinates = None
    if args.lat is not None and args.lng is not None:
        coordinates = Coordinates(lat=args.lat, lng=args.lng)

    asyncio.run(run(args.address, coordinates, settings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
