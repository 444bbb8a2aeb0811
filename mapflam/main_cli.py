#!/usr/bin/env python3
"""
MapFlam - Command Line Interface

Search for places, export a live map page as a fixed-size PNG, and manage
the history of saved compositions.

Usage:
    mapflam search QUERY
    mapflam export --url URL [options]
    mapflam save --state STATE.json [--url URL] [--name NAME]
    mapflam saved list|delete ID|rename ID NAME|clear|info

Global options:
    --storage-dir PATH   Directory for saved compositions (default: ./.mapflam)
    --log-level LEVEL    Logging level (default: MAPFLAM_LOG_LEVEL or INFO)
"""

import argparse
import contextlib
import datetime
import sys
from pathlib import Path
from typing import Iterator, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright
from pydantic import ValidationError

from .capture.capture_engine import MapRegion
from .capture.capture_errors import CaptureError
from .capture.capture_export import ExportCompositor
from .capture.capture_thumbnail import PLACEHOLDER_THUMBNAIL, ThumbnailGenerator
from .composition.composition_models import (
    CompositionState,
    SavedComposition,
    next_composition_name,
)
from .composition.composition_styles import EXPORT_SIZES
from .config.config_module import ConfigError, get_config, load_config
from .config.logger_module import initialize_logger, log_info, log_error
from .geocoding.geocoding_gateway import GeocodingGateway, create_gateway_from_config
from .storage.storage_backend import FileKeyValueStorage
from .storage.storage_errors import StorageError
from .storage.storage_store import SavedCompositionStore


DEFAULT_SELECTOR = "#map"
DEFAULT_VIEWPORT = (1280, 800)
PAGE_LOAD_TIMEOUT_MS = 30000


def text_argument(value: str) -> str:
    """
    Replace command-line bytes that were not valid UTF-8.

    Python smuggles such bytes through argv as lone surrogates, which can be
    neither printed nor written as UTF-8.
    """
    return value.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


@contextlib.contextmanager
def open_map_page(url: str,
                  selector: str = DEFAULT_SELECTOR,
                  viewport: tuple = DEFAULT_VIEWPORT,
                  device_scale_factor: float = 1.0) -> Iterator[MapRegion]:
    """
    Open a map page in headless Chromium and yield its map region.

    The browser is closed when the block exits.
    """
    width, height = viewport
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=True)
        try:
            page = browser.new_page(
                viewport={"width": width, "height": height},
                device_scale_factor=device_scale_factor,
            )
            log_info(f"Opening {url}")
            page.goto(url, wait_until="networkidle", timeout=PAGE_LOAD_TIMEOUT_MS)
            page.wait_for_selector(selector, timeout=PAGE_LOAD_TIMEOUT_MS)
            yield MapRegion(page, selector)
        finally:
            browser.close()


class MapFlamApp:
    """
    Wires the geocoding gateway, capture pipeline and saved-composition
    store together behind the command-line actions.
    """

    def __init__(self,
                 store: Optional[SavedCompositionStore] = None,
                 gateway: Optional[GeocodingGateway] = None):
        self.store = store or SavedCompositionStore(FileKeyValueStorage())
        self._gateway = gateway

    @property
    def gateway(self) -> GeocodingGateway:
        # Built on first search so other commands need no geocoder setup
        if self._gateway is None:
            self._gateway = create_gateway_from_config()
        return self._gateway

    def search(self, query: str) -> int:
        results = self.gateway.lookup(query)
        if not results:
            print(f"No places found for '{query}'")
            return 1

        for index, result in enumerate(results, start=1):
            print(f"{index}. {result.display_name}")
            print(f"   {result.lat:.6f}, {result.lng:.6f}  [{result.category or 'place'}] via {result.provider}")
        return 0

    def export(self,
               url: str,
               selector: str,
               map_format: str,
               output_dir: str,
               filename: Optional[str]) -> int:
        try:
            with open_map_page(url, selector) as region:
                path = ExportCompositor().export(region, map_format, filename, output_dir)
        except (CaptureError, PlaywrightError, OSError) as e:
            print(f"\n❌ Export failed: {e}")
            return 1

        width, height = EXPORT_SIZES[map_format]
        print(f"✅ Exported {map_format} ({width}x{height}) to {path}")
        return 0

    def save(self,
             state_path: str,
             name: Optional[str],
             url: Optional[str],
             selector: str) -> int:
        try:
            state = CompositionState.model_validate_json(
                Path(state_path).read_text(encoding="utf-8")
            )
        except OSError as e:
            print(f"\n❌ Cannot read state file: {e}")
            return 1
        except ValidationError as e:
            print(f"\n❌ Invalid composition state in {state_path}:\n{e}")
            return 1

        thumbnail = PLACEHOLDER_THUMBNAIL
        if url:
            try:
                with open_map_page(url, selector) as region:
                    thumbnail = ThumbnailGenerator().thumbnail(region)
            except PlaywrightError as e:
                log_error(f"Could not open {url} for thumbnail: {e}")

        composition = SavedComposition.create(
            name=name or next_composition_name(self.store.load_all()),
            state=state,
            thumbnail=thumbnail,
        )
        self.store.save(composition)

        print(f"✅ Saved '{composition.name}' ({composition.pin_count} pins) as {composition.id}")
        return 0

    def list_saved(self) -> int:
        saved = self.store.load_all()
        if not saved:
            print("No saved compositions")
            return 0

        for composition in saved:
            created = datetime.datetime.fromtimestamp(composition.created_at / 1000)
            print(
                f"{composition.id}  {composition.name:<24} "
                f"{composition.pin_count} pins  {composition.state.format:<6} "
                f"{created:%Y-%m-%d %H:%M}"
            )
        return 0

    def delete_saved(self, composition_id: str) -> int:
        if self.store.get(composition_id) is None:
            print(f"No saved composition {composition_id}")
            return 1
        self.store.delete(composition_id)
        print(f"🗑️  Deleted {composition_id}")
        return 0

    def rename_saved(self, composition_id: str, new_name: str) -> int:
        if self.store.get(composition_id) is None:
            print(f"No saved composition {composition_id}")
            return 1
        self.store.rename(composition_id, new_name)
        print(f"✏️  Renamed {composition_id} to '{new_name}'")
        return 0

    def clear_saved(self) -> int:
        self.store.clear()
        print("🗑️  Cleared all saved compositions")
        return 0

    def storage_info(self) -> int:
        info = self.store.storage_info()
        used_kb = info["used_bytes"] / 1024
        max_mb = info["max_bytes"] / (1024 * 1024)
        print(f"💾 {info['map_count']} saved composition(s), {used_kb:.1f} KB of {max_mb:.0f} MB")
        return 0


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="mapflam",
        description="MapFlam - Compose, export and save styled map images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s search "Lagos, Nigeria"
  %(prog)s search 6.5244,3.3792
  %(prog)s export --url http://localhost:5173 --format 16:9
  %(prog)s save --state lagos.json --url http://localhost:5173 --name "Lagos pins"
  %(prog)s saved list
        """
    )

    parser.add_argument('--storage-dir', type=str,
                       help='Directory for saved compositions (default: ./.mapflam)')

    parser.add_argument('--log-level',
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       help='Logging level (default: MAPFLAM_LOG_LEVEL or INFO)')

    commands = parser.add_subparsers(dest='command', required=True)

    search = commands.add_parser('search', help='Search for a place or parse "lat,lng"')
    search.add_argument('query', type=text_argument, help='Free-text query or coordinates')

    export = commands.add_parser('export', help='Export the map on a page as PNG')
    export.add_argument('--url', required=True, help='Page hosting the map')
    export.add_argument('--selector', default=DEFAULT_SELECTOR,
                       help=f'CSS selector of the map region (default: {DEFAULT_SELECTOR})')
    export.add_argument('--format', dest='map_format', choices=list(EXPORT_SIZES),
                       default='square', help='Export format (default: square)')
    export.add_argument('--output-dir', default='.',
                       help='Directory for the PNG (default: current directory)')
    export.add_argument('--filename', help='File name (default: mapflam_<format>_<date>.png)')

    save = commands.add_parser('save', help='Save a composition with a thumbnail')
    save.add_argument('--state', required=True, help='JSON file with the composition state')
    save.add_argument('--name', type=text_argument, help='Composition name (default: "Map N")')
    save.add_argument('--url', help='Page to capture the thumbnail from')
    save.add_argument('--selector', default=DEFAULT_SELECTOR,
                     help=f'CSS selector of the map region (default: {DEFAULT_SELECTOR})')

    saved = commands.add_parser('saved', help='Manage saved compositions')
    actions = saved.add_subparsers(dest='action', required=True)
    actions.add_parser('list', help='List saved compositions, newest first')
    delete = actions.add_parser('delete', help='Delete a saved composition')
    delete.add_argument('id')
    rename = actions.add_parser('rename', help='Rename a saved composition')
    rename.add_argument('id')
    rename.add_argument('name', type=text_argument)
    actions.add_parser('clear', help='Delete every saved composition')
    actions.add_parser('info', help='Show storage usage')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for MapFlam."""
    args = parse_arguments(argv)

    # Load configuration from environment
    load_config()

    initialize_logger(log_level=args.log_level or get_config("MAPFLAM_LOG_LEVEL", "INFO"))

    try:
        app = MapFlamApp(SavedCompositionStore(FileKeyValueStorage(args.storage_dir)))

        if args.command == 'search':
            return app.search(args.query)
        if args.command == 'export':
            return app.export(args.url, args.selector, args.map_format,
                              args.output_dir, args.filename)
        if args.command == 'save':
            return app.save(args.state, args.name, args.url, args.selector)

        if args.action == 'list':
            return app.list_saved()
        if args.action == 'delete':
            return app.delete_saved(args.id)
        if args.action == 'rename':
            return app.rename_saved(args.id, args.name)
        if args.action == 'clear':
            return app.clear_saved()
        return app.storage_info()
    except (ConfigError, StorageError) as e:
        print(f"\n❌ {type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
