"""
Command-line interface for the storm overpass finder.

This module provides a CLI for correlating satellite passes with
tropical-cyclone best tracks from the command line.
"""

from pathlib import Path
from typing import Optional
import logging
import sys

import click

from .config import CorrelationConfig
from .correlator import StormPassCorrelator
from .elements import ElementStore
from .errors import ParseError
from .formatting import format_event
from .orbit import SatelliteOrbit, make_location
from .track import BestTrack
from .utils import (
    setup_logging, parse_datetime, datetime_to_timestamp,
    timestamp_to_datetime, download_tle_file, get_common_tle_sources
)
from .visibility import PassFinder

logger = logging.getLogger(__name__)


@click.group()
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set logging level')
@click.option('--log-file', type=click.Path(), help='Log file path')
def main(log_level: str, log_file: Optional[str]) -> None:
    """Storm Overpass Finder - satellite passes over tropical cyclones."""
    setup_logging(log_level, log_file)


@main.command()
@click.argument('tle_file', type=click.Path(exists=True))
@click.argument('bdeck_file', type=click.Path(exists=True))
@click.option('-s', '--step-hours', default=6.0, type=float, metavar='HOURS',
              help='Look-ahead from each track fix in hours (default: 6)')
@click.option('-i', '--intensity', 'intensity_threshold', default=100.0, type=float,
              metavar='KT', help='Minimum storm intensity in kt (default: 100)')
@click.option('-d', '--distance', 'distance_threshold', default=1165.0, type=float,
              metavar='KM', help='Maximum storm-to-ground-track distance in km (default: 1165)')
@click.option('--min-elevation', default=0.0, type=float,
              help='Minimum elevation angle in degrees (default: 0)')
@click.option('--cadence-hours', default=6, type=int,
              help='Keep track fixes at this hourly interval (default: 6)')
@click.option('--workers', type=int, help='Worker processes (default: all cores)')
@click.option('--aqua', 'platform', flag_value='aqua',
              help='Append Aqua MODIS granule names')
@click.option('--terra', 'platform', flag_value='terra',
              help='Append Terra MODIS granule names')
@click.option('--satellite', help='Satellite name for reports')
@click.option('--output', type=click.Path(),
              help='Also export events to a .json or .csv file')
def passes(
    tle_file: str,
    bdeck_file: str,
    step_hours: float,
    intensity_threshold: float,
    distance_threshold: float,
    min_elevation: float,
    cadence_hours: int,
    workers: Optional[int],
    platform: Optional[str],
    satellite: Optional[str],
    output: Optional[str]
) -> None:
    """Find satellite overpasses of a storm.

    TLE_FILE holds the satellite's element history, BDECK_FILE the storm's
    ATCF best track.

    Example:
    passes aqua.tle bal092023.dat --aqua -i 64 -d 800
    """
    try:
        config = CorrelationConfig(
            step_hours=step_hours,
            intensity_threshold_kt=intensity_threshold,
            distance_threshold_km=distance_threshold,
            min_elevation_deg=min_elevation,
            cadence_hours=cadence_hours,
            max_workers=workers,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    try:
        elements = ElementStore.from_file(tle_file)
        track = BestTrack.from_file(bdeck_file, cadence_hours=cadence_hours)
    except (ParseError, FileNotFoundError) as e:
        logger.error(f"Failed to load inputs: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    correlator = StormPassCorrelator(elements, track, config, satellite_name=satellite)
    events = correlator.run()

    for event in events:
        click.echo(format_event(event, platform))

    if output:
        correlator.export_events(events, output)
        click.echo(f"\nResults saved to: {output}")


@main.command()
@click.argument('tle_file', type=click.Path(exists=True))
@click.option('--lat', required=True, type=float, help='Observer latitude in degrees')
@click.option('--lon', required=True, type=float, help='Observer longitude in degrees')
@click.option('--start-time', required=True, type=str,
              help='Start time (YYYY-MM-DD HH:MM:SS UTC)')
@click.option('--hours', default=24.0, type=float,
              help='Hours to search ahead (default: 24)')
@click.option('--min-elevation', default=0.0, type=float,
              help='Minimum elevation angle in degrees (default: 0)')
def windows(
    tle_file: str,
    lat: float,
    lon: float,
    start_time: str,
    hours: float,
    min_elevation: float
) -> None:
    """List visibility windows of a satellite over a point."""

    try:
        start = datetime_to_timestamp(parse_datetime(start_time))
        elements = ElementStore.from_file(tle_file)
    except (ParseError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    element_index = elements.select(start)
    if element_index is None:
        click.echo("No element sets in TLE file", err=True)
        sys.exit(1)

    finder = PassFinder(SatelliteOrbit(elements[element_index]), min_elevation)
    location = make_location(lat, lon)
    found = finder.find_windows(location, start, start + hours * 3600.0,
                                include_max_elevation=True)

    if not found:
        click.echo(f"No passes found in the next {hours:g} hours")
        return

    for window in found:
        aos = timestamp_to_datetime(window.aos.time)
        los = timestamp_to_datetime(window.los.time)
        peak = window.max_elevation
        click.echo(
            f"AOS {aos.strftime('%Y-%m-%d %H:%M:%S')}  "
            f"TCA {timestamp_to_datetime(peak.time).strftime('%H:%M:%S')} "
            f"({peak.elevation:.1f}°)  "
            f"LOS {los.strftime('%H:%M:%S')}"
        )


@main.command()
@click.option('--source', default='aqua',
              help='TLE source (use "list-sources" to see available)')
@click.option('--output', required=True, type=click.Path(),
              help='Output TLE file path')
@click.option('--url', type=str,
              help='Custom URL for TLE data')
def download_tle(source: str, output: str, url: Optional[str]) -> None:
    """Download current TLE data from online sources."""

    if url:
        download_url = url
    else:
        sources = get_common_tle_sources()
        if source not in sources:
            click.echo(f"Unknown source: {source}")
            click.echo("Available sources:")
            for name in sources.keys():
                click.echo(f"  {name}")
            return
        download_url = sources[source]

    click.echo(f"Downloading TLE data from {download_url}")

    if download_tle_file(download_url, Path(output)):
        click.echo(f"TLE data saved to: {output}")
    else:
        click.echo("Download failed", err=True)
        sys.exit(1)


@main.command()
def list_sources() -> None:
    """List available TLE data sources."""

    sources = get_common_tle_sources()
    click.echo("Available TLE sources:")
    for name, url in sources.items():
        click.echo(f"  {name:20} {url}")


if __name__ == '__main__':
    main()
