"""Thin CLI entry point: builds an AppContext and calls the library and player."""

import argparse
import json
import logging
import sys
from pathlib import Path

from clipmark.config import AppConfig, load_config
from clipmark.context import AppContext
from clipmark.devices import SimulatedDevice
from clipmark.errors import ClipMarkError, ImportFormatError
from clipmark.timecode import format_time


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipmark",
        description="ClipMark: bookmark video clips, build playlists, play them back.",
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to a JSON config file")
    parser.add_argument("--data-dir", type=Path, help="Directory holding the library blob")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    add = sub.add_parser("add", help="Save a new segment")
    add.add_argument("url", help="Video URL (watch, youtu.be or embed form)")
    add.add_argument("name", help="Segment name")
    add.add_argument("start", help="Start time: SS, MM:SS or HH:MM:SS")
    add.add_argument("end", help="End time: SS, MM:SS or HH:MM:SS")

    edit = sub.add_parser("edit", help="Replace a segment's fields")
    edit.add_argument("id", help="Segment id")
    edit.add_argument("url")
    edit.add_argument("name")
    edit.add_argument("start")
    edit.add_argument("end")

    rm = sub.add_parser("rm", help="Delete a segment (and drop it from playlists)")
    rm.add_argument("id", help="Segment id")

    ls = sub.add_parser("list", help="List segments or playlists")
    ls.add_argument("--playlists", action="store_true", help="List playlists instead of segments")
    ls.add_argument("--page", type=int, default=1, help="Show pages 1..N")

    pl = sub.add_parser("playlist", help="Manage playlists")
    pl_sub = pl.add_subparsers(dest="playlist_command")
    pl_create = pl_sub.add_parser("create", help="Create a playlist")
    pl_create.add_argument("name")
    pl_create.add_argument("segment_ids", nargs="*", help="Segment ids in playback order")
    pl_create.add_argument("--description", "-d", default="")
    pl_edit = pl_sub.add_parser("edit", help="Replace a playlist's fields")
    pl_edit.add_argument("id")
    pl_edit.add_argument("name")
    pl_edit.add_argument("segment_ids", nargs="*")
    pl_edit.add_argument("--description", "-d", default="")
    pl_rm = pl_sub.add_parser("rm", help="Delete a playlist")
    pl_rm.add_argument("id")

    export = sub.add_parser("export", help="Write the library as JSON")
    export.add_argument("--full", action="store_true", help="Back up every profile")
    export.add_argument("--output", "-o", type=Path, help="Output file (default: stdout)")

    imp = sub.add_parser("import", help="Merge an exported JSON file into the library")
    imp.add_argument("file", type=Path)

    clear = sub.add_parser("clear", help="Delete all data")
    clear.add_argument("--yes", action="store_true", help="Confirm deletion")

    user = sub.add_parser("user", help="Show or change profile settings")
    user.add_argument("--switch", help="Switch to (or create) another user profile")
    user.add_argument("--name", help="Profile display name")
    theme = user.add_mutually_exclusive_group()
    theme.add_argument("--dark", dest="dark_mode", action="store_true", default=None)
    theme.add_argument("--light", dest="dark_mode", action="store_false")
    user.add_argument("--items-per-page", type=int)

    play = sub.add_parser("play", help="Play a segment or playlist on a simulated player")
    target = play.add_mutually_exclusive_group(required=True)
    target.add_argument("--segment", help="Segment id")
    target.add_argument("--playlist", help="Playlist id")
    play.add_argument("--tick-rate", type=float, help="Boundary checks per second")

    serve = sub.add_parser("serve", help="Launch the HTTP API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    return parser


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _print_segment(seg, index: int | None = None) -> None:
    prefix = f"{index:>3}. " if index is not None else ""
    print(f"{prefix}{seg.id}  {seg.name}  [{format_time(seg.start)} - {format_time(seg.end)}]  {seg.video_id}")


def _list(ctx: AppContext, args: argparse.Namespace) -> None:
    tab = "playlists" if args.playlists else "segments"
    ctx.switch_tab(tab)
    cursor = ctx.cursors[tab]
    for _ in range(1, max(1, args.page)):
        cursor.advance()

    items = ctx.page_items(tab)
    if not items:
        print(f"No {tab} saved yet.")
        return

    for i, item in enumerate(items, 1):
        if tab == "segments":
            _print_segment(item, i)
        else:
            missing = len(item.segment_ids) - len(ctx.store.playlist_segments(item))
            note = f", {missing} missing" if missing else ""
            print(f"{i:>3}. {item.id}  {item.name}  ({len(item.segment_ids)} segments{note})")

    total = len(ctx.store.segments if tab == "segments" else ctx.store.playlists)
    if cursor.has_more(total, len(items)):
        print(f"  ... {total - len(items)} more (use --page {cursor.current_page + 1})")


def _import(ctx: AppContext, path: Path) -> int:
    if path.stat().st_size > ctx.config.max_import_bytes:
        raise ImportFormatError("File is too large for import")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Import file is not valid JSON: {e}") from e
    count = ctx.store.import_merge(payload)
    ctx.reset_cursors()
    return count


def _play(ctx: AppContext, args: argparse.Namespace) -> None:
    controller = ctx.controller
    if args.segment:
        state = ctx.handle_shared_link({"segment": args.segment})
        target = args.segment
    else:
        state = ctx.handle_shared_link({"playlist": args.playlist})
        target = args.playlist
    if state is None:
        _fail(f"Nothing to play for {target}")

    last = None
    while ctx.scheduler.pending:
        label = controller.now_playing()
        if label != last:
            print(f"  > {label}")
            last = label
        ctx.scheduler.run(max_frames=int(ctx.scheduler.tick_rate))
    print(f"Done: {controller.now_playing() or 'stopped'}")


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config) if args.config else AppConfig()
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.command == "play" and args.tick_rate:
        config.tick_rate = args.tick_rate

    if args.command == "serve":
        from clipmark.web import create_app
        app = create_app(config=config)
        print(f"ClipMark API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    device = SimulatedDevice() if args.command == "play" else None
    ctx = AppContext(config, device=device)
    if device is not None:
        device.on_ready = ctx.controller.on_device_ready
    ctx.init()
    if device is not None:
        device.initialize()

    store = ctx.store
    try:
        if args.command == "add":
            seg = store.add_segment(args.url, args.name, args.start, args.end)
            print("Segment saved:")
            _print_segment(seg)
        elif args.command == "edit":
            seg = store.update_segment(args.id, args.url, args.name, args.start, args.end)
            print("Segment updated:")
            _print_segment(seg)
        elif args.command == "rm":
            store.delete_segment(args.id)
            print(f"Segment deleted: {args.id}")
        elif args.command == "list":
            _list(ctx, args)
        elif args.command == "playlist":
            if args.playlist_command == "create":
                pl = store.add_playlist(args.name, args.segment_ids, args.description)
                print(f"Playlist created: {pl.id}  {pl.name}")
            elif args.playlist_command == "edit":
                pl = store.update_playlist(args.id, args.name, args.segment_ids, args.description)
                print(f"Playlist updated: {pl.id}  {pl.name}")
            elif args.playlist_command == "rm":
                store.delete_playlist(args.id)
                print(f"Playlist deleted: {args.id}")
            else:
                _fail("choose a playlist command: create, edit or rm")
        elif args.command == "export":
            text = json.dumps(store.export_snapshot(full=args.full), indent=2)
            if args.output:
                args.output.write_text(text, encoding="utf-8")
                print(f"Exported to {args.output}")
            else:
                print(text)
        elif args.command == "import":
            count = _import(ctx, args.file)
            print(f"Successfully imported {count} items")
        elif args.command == "clear":
            if not args.yes:
                _fail("refusing to clear all data without --yes")
            store.clear_all()
            print("All data cleared")
        elif args.command == "user":
            if args.switch:
                store.switch_user(args.switch)
            if args.name is not None:
                store.rename_user(args.name)
            if args.dark_mode is not None:
                store.set_dark_mode(args.dark_mode)
            if args.items_per_page is not None:
                store.set_items_per_page(args.items_per_page)
            prefs = store.preferences
            print(f"User: {store.current_user} ({store.profile.name})")
            print(f"  Theme: {'dark' if prefs.dark_mode else 'light'}")
            print(f"  Items per page: {prefs.items_per_page}")
        elif args.command == "play":
            _play(ctx, args)
    except ClipMarkError as e:
        _fail(str(e))
    except OSError as e:
        _fail(str(e))
