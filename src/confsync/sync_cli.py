#!/usr/bin/env python3
"""
CLI entry point for the conference sync engine.

Operator tool for inspecting and driving the local cache.

Usage:
    confsync --config config/confsync.yaml status
    confsync refresh
    confsync sessions --day 0
    confsync favorites toggle s-keynote
    confsync flags set sessionFeedbackEnabled true
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import SyncConfig
from .core.logging import setup_logging
from .services import SyncServices, build_services


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"Expected true/false, got: {value}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="confsync",
        description="Conference content sync CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration YAML file",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Show cached metadata and loaded content")
    commands.add_parser("refresh", help="Refresh content from the remote")

    sessions = commands.add_parser("sessions", help="List sessions")
    sessions.add_argument("--day", type=int, help="Only sessions on this day index")

    favorites = commands.add_parser("favorites", help="Manage favorite sessions")
    favorite_actions = favorites.add_subparsers(dest="action", required=True)
    favorite_actions.add_parser("list", help="List favorite sessions")
    toggle = favorite_actions.add_parser("toggle", help="Toggle a favorite")
    toggle.add_argument("session_id")
    favorite_actions.add_parser("clear", help="Remove all favorites")

    flags = commands.add_parser("flags", help="Inspect and change feature flags")
    flag_actions = flags.add_subparsers(dest="action", required=True)
    flag_actions.add_parser("show", help="Show current flags")
    flag_actions.add_parser("refresh", help="Refresh flags from the remote")
    set_flag = flag_actions.add_parser("set", help="Set a flag locally")
    set_flag.add_argument("name")
    set_flag.add_argument("value", type=_parse_bool)

    return parser.parse_args(argv)


def _format_session(session) -> str:
    start = session.start_utc.strftime("%Y-%m-%d %H:%M") if session.start_utc else "--"
    star = "*" if session.is_favorite else " "
    room = session.room.name if session.room else "-"
    speakers = ", ".join(s.full_name for s in session.speakers) or "-"
    return f"{star} {start}  {session.id:<16} {session.title}  [{room}] ({speakers})"


def run_status(services: SyncServices) -> int:
    metadata = services.content_store.metadata()
    graph = services.content.get_snapshot()
    print(f"Content state:   {services.content.state.value}")
    print(f"Cached version:  {metadata.version or '-'}")
    print(f"Cached ETag:     {metadata.validator or '-'}")
    if graph is None:
        print("No content available")
        return 0
    snapshot = graph.snapshot
    print(f"Active version:  {snapshot.content_version}")
    print(f"Conference:      {snapshot.conference.name or '-'}")
    print(
        f"Entities:        {len(snapshot.sessions)} sessions, {len(snapshot.speakers)} speakers, "
        f"{len(snapshot.tracks)} tracks, {len(snapshot.rooms)} rooms, {len(snapshot.days)} days"
    )
    print(f"Favorites:       {len(services.favorites.ids())}")
    return 0


def run_favorites(services: SyncServices, args: argparse.Namespace) -> int:
    if args.action == "toggle":
        state = services.content.toggle_favorite(args.session_id)
        print(f"{args.session_id}: {'favorite' if state else 'not favorite'}")
    elif args.action == "clear":
        services.favorites.clear()
        print("Favorites cleared")
    else:
        for session in services.content.get_favorite_sessions():
            print(_format_session(session))
    return 0


def run_flags(services: SyncServices, args: argparse.Namespace) -> int:
    flag_sync = services.flags
    if args.action == "refresh":
        flag_sync.initialize(background=False)
    else:
        flag_sync.load_local()
        if args.action == "set":
            flag_sync.update_flag(args.name, args.value)
    print(json.dumps(flag_sync.current_flags.to_dict(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = parse_args(argv)

    setup_logging(verbose=args.verbose, json_logs=args.json_logs)
    logger = logging.getLogger(__name__)

    try:
        config = SyncConfig(config_path=args.config)
        services = build_services(config)
    except Exception as e:
        logger.error(f"Failed to start: {e}")
        return 1

    try:
        if args.command == "status":
            return run_status(services)

        if args.command == "refresh":
            services.content.get_snapshot()
            report = services.content.refresh()
            print(report.summary())
            return 0

        if args.command == "sessions":
            if args.day is not None:
                sessions = services.content.get_sessions_by_day(args.day)
            else:
                sessions = services.content.get_sessions()
            for session in sessions:
                print(_format_session(session))
            return 0

        if args.command == "favorites":
            return run_favorites(services, args)

        if args.command == "flags":
            return run_flags(services, args)

        logger.error(f"Unknown command: {args.command}")
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    finally:
        services.close()


if __name__ == "__main__":
    sys.exit(main())
