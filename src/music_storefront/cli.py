"""
Music Storefront CLI - entry point.

With no subcommand the full-screen storefront page starts. Subcommands cover
the same flows one at a time for scripting and debugging.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from .core.config import Config, ensure_directories, load_config
from .core.output import log, setup_from_config
from .domain.catalog import Track, find_track, load_catalog
from .domain.errors import StorefrontError
from .domain.preview import MPV_MISSING, check_mpv_available
from .domain.purchase import (
    PurchaseFlow,
    VerificationLoop,
    VerificationState,
    View,
    select_view,
    wait_for_redirect,
)

console = Console()


def run_tracks(tracks: List[Track]) -> int:
    """Print the catalog as a table."""
    table = Table(title="Catalog")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Artist")
    table.add_column("Price", justify="right")
    table.add_column("Preview")
    table.add_column("File key", style="dim")

    for track in tracks:
        table.add_row(
            track.id,
            track.title,
            track.artist,
            track.price_display,
            "yes" if track.has_preview else "-",
            track.file_key,
        )
    console.print(table)
    return 0


async def _play_preview(config: Config, track: Track) -> bool:
    from .ui import build_deck

    deck = build_deck(config, [track])
    session = deck.session(track.id)
    try:
        with Progress(
            TextColumn(f"[bold]{track.title}"),
            BarColumn(complete_style="#f97316", finished_style="#ea580c"),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
        ) as progress:
            bar = progress.add_task("preview", total=1.0)
            session.on_progress = lambda _, value: progress.update(bar, completed=value)

            if not await deck.request_play(track.id):
                return False
            while deck.playing_id == track.id:
                await asyncio.sleep(session.frame_interval)
            progress.update(bar, completed=1.0)
        return True
    finally:
        deck.close()


def run_preview(config: Config, track: Track) -> int:
    if not track.has_preview:
        log(f"'{track.title}' has no preview", level="error")
        return 1
    if not check_mpv_available(config.preview.mpv_path):
        log(MPV_MISSING.format(mpv=config.preview.mpv_path), level="error")
        return 1
    try:
        played = asyncio.run(_play_preview(config, track))
    except KeyboardInterrupt:
        log("Preview stopped", level="info")
        return 0
    if not played:
        log(f"Could not play preview for '{track.title}'", level="error")
        return 1
    return 0


def run_verify(config: Config) -> int:
    """Poll the verification endpoint with the stored charge code."""
    from .ui import build_api_client, get_charge_store

    loop = VerificationLoop(
        build_api_client(config),
        get_charge_store(),
        poll_interval=config.purchase.poll_interval,
        max_attempts=config.purchase.max_attempts,
    )

    async def verify() -> VerificationState:
        try:
            return await loop.wait()
        finally:
            loop.cancel()

    try:
        with console.status("Verifying your purchase..."):
            state = asyncio.run(verify())
    except KeyboardInterrupt:
        log("Verification cancelled", level="warning")
        return 1

    if state is VerificationState.SUCCESS:
        console.print("[bold green]Payment Confirmed![/bold green]")
        console.print(
            f'Thank you for your purchase. You can now download "{loop.track_name}". '
            "The link will expire shortly."
        )
        console.print(loop.download_url, soft_wrap=True)
        return 0

    console.print("[bold red]Verification Failed[/bold red]")
    console.print(loop.error or "")
    return 1


def run_buy(config: Config, track: Track, wait: bool = False) -> int:
    from .ui import build_api_client, get_charge_store

    flow = PurchaseFlow(build_api_client(config), get_charge_store())
    try:
        url = flow.initiate_track(track)
    except StorefrontError as e:
        log(str(e), level="error")
        return 1

    log(f"Checkout opened for '{track.title}' ({track.price_display})", level="info")
    log(url, level="info")
    if not wait:
        log("After paying, run: storefront verify", level="info")
        return 0

    port = config.purchase.callback_port
    log(f"Waiting for the checkout to redirect back (port {port})...", level="info")
    try:
        path = wait_for_redirect(port, timeout=config.purchase.callback_timeout)
    except OSError as e:
        log(f"Could not start redirect listener: {e}", level="warning")
        log("After paying, run: storefront verify", level="info")
        return 1

    if path is None:
        log("No redirect received. After paying, run: storefront verify", level="warning")
        return 1
    if select_view(path) is not View.VERIFICATION:
        log(f"Checkout returned to {path}; nothing to verify", level="warning")
        return 1
    return run_verify(config)


def run_page(config: Config, tracks: List[Track], path: str = "/") -> int:
    from .ui import StorefrontPage

    StorefrontPage(config, tracks, path=path).run()
    return 0


def run_serve(config: Config, host: Optional[str], port: Optional[int]) -> int:
    import uvicorn

    uvicorn.run(
        "web.backend.main:app",
        host=host or config.web.host,
        port=port or config.web.port,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Preview and buy tracks from a single-artist storefront",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    subparsers.add_parser("tracks", help="List the catalog")

    preview_parser = subparsers.add_parser("preview", help="Play a track's preview")
    preview_parser.add_argument("track_id", help="Track ID")

    buy_parser = subparsers.add_parser("buy", help="Open the hosted checkout for a track")
    buy_parser.add_argument("track_id", help="Track ID")
    buy_parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the checkout redirect and verify the purchase",
    )

    subparsers.add_parser("verify", help="Verify the pending purchase")

    open_parser = subparsers.add_parser("open", help="Open the page at a route, e.g. /success")
    open_parser.add_argument("path", help="Route path")

    serve_parser = subparsers.add_parser("serve", help="Run the checkout backend")
    serve_parser.add_argument("--host", help="Bind address (default from config)")
    serve_parser.add_argument("--port", type=int, help="Port (default from config)")

    return parser


def _require_track(tracks: List[Track], track_id: str) -> Optional[Track]:
    track = find_track(tracks, track_id)
    if track is None:
        log(f"Unknown track: {track_id}", level="error")
    return track


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    config = load_config()
    ensure_directories()
    setup_from_config(config.logging)
    tracks = load_catalog(config.tracks)
    logger.debug(f"Loaded {len(tracks)} tracks")

    if args.subcommand == "tracks":
        sys.exit(run_tracks(tracks))

    elif args.subcommand == "preview":
        track = _require_track(tracks, args.track_id)
        sys.exit(run_preview(config, track) if track else 1)

    elif args.subcommand == "buy":
        track = _require_track(tracks, args.track_id)
        sys.exit(run_buy(config, track, wait=args.wait) if track else 1)

    elif args.subcommand == "verify":
        sys.exit(run_verify(config))

    elif args.subcommand == "open":
        sys.exit(run_page(config, tracks, path=args.path))

    elif args.subcommand == "serve":
        sys.exit(run_serve(config, args.host, args.port))

    # No subcommand - start the storefront page
    sys.exit(run_page(config, tracks))


if __name__ == "__main__":
    main()
