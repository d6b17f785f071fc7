"""
Tharsis CLI - Command-line interface for the server and its database.

Usage:
    tharsis serve                      Run the HTTP server
    tharsis games                      List stored game ids
    tharsis history <game_id>          List stored save_ids of a game
    tharsis stats                      Print database statistics
    tharsis undo <game_id> [--count N] Drop the N most recent saves
    tharsis finalize <game_id>         Keep only the seed and final version
    tharsis purge --days N             Purge unfinished games older than N days

Database commands use THARSIS_DATABASE_PATH unless --db is given.
"""

import argparse
import json
import sys

import anyio

from .database import SQLiteDatabase
from .errors import TharsisError
from .logging_config import configure_logging
from .settings import get_settings


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Tharsis - Turn resolution and snapshot persistence engine",
        prog="tharsis",
    )
    parser.add_argument("--db", help="SQLite database path")
    parser.add_argument("--log-level", help="Logging level (default from settings)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Bind port")

    subparsers.add_parser("games", help="List stored game ids")

    history_parser = subparsers.add_parser("history", help="List save_ids of a game")
    history_parser.add_argument("game_id")

    subparsers.add_parser("stats", help="Print database statistics")

    undo_parser = subparsers.add_parser("undo", help="Drop the most recent saves of a game")
    undo_parser.add_argument("game_id")
    undo_parser.add_argument("--count", "-n", type=int, default=1, help="Number of saves to drop")

    finalize_parser = subparsers.add_parser("finalize", help="Keep only the seed and final version")
    finalize_parser.add_argument("game_id")

    purge_parser = subparsers.add_parser("purge", help="Purge stale unfinished games")
    purge_parser.add_argument("--days", type=int, required=True, help="Minimum age in days")

    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    commands = {
        "serve": cmd_serve,
        "games": cmd_games,
        "history": cmd_history,
        "stats": cmd_stats,
        "undo": cmd_undo,
        "finalize": cmd_finalize,
        "purge": cmd_purge,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    try:
        command(args)
    except TharsisError as e:
        print(f"Error: {e}")
        sys.exit(1)


def open_database(args) -> SQLiteDatabase:
    settings = get_settings()
    return SQLiteDatabase(args.db or settings.database_path, max_game_days=settings.max_game_days)


def run_with_database(args, operation):
    """Initialize the database and run ``operation(database)`` to completion."""
    async def runner():
        database = open_database(args)
        await database.initialize()
        try:
            return await operation(database)
        finally:
            await database.close()

    return anyio.run(runner)


def cmd_serve(args):
    """Run the HTTP server."""
    import uvicorn
    from .api.app import create_app

    settings = get_settings()
    if args.db:
        settings = settings.model_copy(update={"database_path": args.db})

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )


def cmd_games(args):
    game_ids = run_with_database(args, lambda db: db.get_game_ids())
    for game_id in game_ids:
        print(game_id)
    print(f"\n{len(game_ids)} game(s)")


def cmd_history(args):
    save_ids = run_with_database(args, lambda db: db.get_save_ids(args.game_id))
    if not save_ids:
        print(f"Error: Game {args.game_id} not found")
        sys.exit(1)
    print(f"Game: {args.game_id}")
    print(f"Saves: {', '.join(str(s) for s in save_ids)}")


def cmd_stats(args):
    stats = run_with_database(args, lambda db: db.stats())
    print(json.dumps(stats, indent=2, default=str))


def cmd_undo(args):
    """Drop the most recent saves of a game."""
    if args.count < 1:
        print("Error: --count must be at least 1")
        sys.exit(1)

    async def undo(db):
        deleted = await db.delete_recent_saves(args.game_id, args.count)
        return deleted, await db.get_save_ids(args.game_id)

    deleted, remaining = run_with_database(args, undo)
    print(f"Deleted saves: {deleted or 'none'}")
    print(f"Remaining: {remaining}")


def cmd_finalize(args):
    """Keep only the seed and the final version, and mark the game finished."""
    async def finalize(db):
        await db.finalize(args.game_id)
        return await db.get_save_ids(args.game_id)

    remaining = run_with_database(args, finalize)
    print(f"Finalized {args.game_id}: saves {remaining}")


def cmd_purge(args):
    purged = run_with_database(args, lambda db: db.purge_stale(args.days))
    for game_id in purged:
        print(f"  - {game_id}")
    print(f"Purged {len(purged)} game(s)")


if __name__ == "__main__":
    main()
