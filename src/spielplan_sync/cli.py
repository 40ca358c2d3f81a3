#!/usr/bin/env python3
"""
Command-line interface for fixture sync and calendar export.

Usage:
    spielplan init                                   # Initialize database
    spielplan status
    spielplan token register --email office@example.com
    spielplan token set <TOKEN>
    spielplan subjects add --name "Max Muster" --url https://www.fussball.de/.../team-id/ABC123
    spielplan sync                                   # Sync all players
    spielplan sync --subject <ID>                    # Refresh one player
    spielplan list --search hoffenheim --responsibility Matti
    spielplan select <KEY> [<KEY> ...]
    spielplan export --output spielplan.ics
    spielplan cleanup                                # Delete past fixtures
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sqlite3
import sys
import uuid
from datetime import date, datetime
from pathlib import Path

from dotenv import load_dotenv

from .core.types import API_TOKEN_SETTINGS_KEY, LAST_SYNC_META_KEY

logger = logging.getLogger("spielplan.cli")


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging once for the CLI process."""
    from .core.config import get_settings

    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_db():
    """Open the configured database, initializing the schema if needed."""
    from .connection import FixtureDB
    from .core.config import get_settings
    from .schema import init_database

    db = FixtureDB(get_settings().database_path)
    if not db.is_initialized():
        logger.info("No schema in %s yet, creating it", db.db_path)
        init_database(db)
    return db


def _mask(token: str) -> str:
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}{'*' * (len(token) - 8)}{token[-4:]}"


def cmd_init(args: argparse.Namespace) -> int:
    """Create or migrate the fixture database."""
    from .connection import FixtureDB
    from .core.config import get_settings
    from .schema import init_database

    db = FixtureDB(get_settings().database_path)

    try:
        init_database(db)
        return 0
    except (sqlite3.Error, OSError) as e:
        logger.error("Could not set up %s: %s", db.db_path, e)
        return 1
    finally:
        db.close()


def cmd_status(args: argparse.Namespace) -> int:
    """Print schema version, last sync, token state and row counts."""
    from .connection import FixtureDB
    from .core.config import get_settings
    from .repositories import get_repositories
    from .schema import get_schema_version, get_table_counts

    db = FixtureDB(get_settings().database_path)

    try:
        if not db.exists():
            logger.info("No database at %s; run `spielplan init`", db.db_path)
            return 1

        if not db.is_initialized():
            logger.info("%s has no schema; run `spielplan init`", db.db_path)
            return 1

        _, _, settings_repo = get_repositories(db)
        counts = get_table_counts(db)

        print("\nSpielplan Database Status")
        print("=" * 50)
        print(f"Location: {db.db_path}")
        print(f"Schema Version: {get_schema_version(db)}")
        print(f"Last Full Sync: {db.get_meta(LAST_SYNC_META_KEY) or 'Never'}")
        print(f"API Token: {'configured' if settings_repo.get(API_TOKEN_SETTINGS_KEY) else 'missing'}")
        print("\nTable Counts:")
        for table, count in counts.items():
            print(f"  {table}: {count:,}")
        return 0
    finally:
        db.close()


# =============================================================================
# Token
# =============================================================================


async def cmd_token_register_async(args: argparse.Namespace) -> int:
    from .core.config import get_settings
    from .providers import FixtureProvider, TokenRegistrationError
    from .repositories import get_repositories

    db = get_db()
    _, _, settings_repo = get_repositories(db)

    try:
        async with FixtureProvider.from_settings(get_settings()) as provider:
            token = await provider.register_token(args.email)
        settings_repo.set(API_TOKEN_SETTINGS_KEY, token)
    except TokenRegistrationError as e:
        logger.error("%s", e.message)
        return 1
    finally:
        db.close()

    print(f"Token registered for {args.email}: {_mask(token)}")
    return 0


def cmd_token(args: argparse.Namespace) -> int:
    """Manage the api-fussball.de access token."""
    from .repositories import get_repositories

    if args.token_command == "register":
        return asyncio.run(cmd_token_register_async(args))

    db = get_db()
    _, _, settings_repo = get_repositories(db)

    try:
        if args.token_command == "set":
            settings_repo.set(API_TOKEN_SETTINGS_KEY, args.value.strip())
            print("Token stored.")
            return 0

        token = settings_repo.get(API_TOKEN_SETTINGS_KEY)
        if not token:
            print("No token configured. Run 'spielplan token register --email ...'.")
            return 1
        print(token if args.reveal else _mask(token))
        return 0
    finally:
        db.close()


# =============================================================================
# Subjects
# =============================================================================


def cmd_subjects(args: argparse.Namespace) -> int:
    """Add or list represented players."""
    from .core.models import Subject
    from .repositories import get_repositories

    db = get_db()
    subjects, _, _ = get_repositories(db)

    try:
        if args.subjects_command == "add":
            subject = Subject(
                id=args.id or uuid.uuid4().hex,
                name=args.name,
                profile_url=args.url,
                league=args.league,
                club=args.club,
                responsibility=args.responsibility,
            )
            subjects.upsert(subject)
            print(f"Saved {subject.name} ({subject.id})")
            return 0

        rows = subjects.find_all()
        if not rows:
            print("No players stored.")
            return 0
        print(f"\n{'ID':<34} {'Name':<28} {'League':<20} Profile")
        print("-" * 100)
        for subject in rows:
            print(
                f"{subject.id:<34} {subject.name:<28} {(subject.league or '-'):<20} "
                f"{subject.profile_url or '-'}"
            )
        return 0
    finally:
        db.close()


# =============================================================================
# Sync
# =============================================================================


async def cmd_sync_async(args: argparse.Namespace) -> int:
    """Sync fixtures from the provider."""
    from .core.config import get_settings
    from .fixtures import SyncOrchestrator
    from .providers import FixtureProvider
    from .repositories import get_repositories

    settings = get_settings()
    db = get_db()
    subjects, fixtures, settings_repo = get_repositories(db)

    def on_progress(current: int, total: int, name: str) -> None:
        logger.info("[%d/%d] %s", current, total, name)

    try:
        async with FixtureProvider.from_settings(settings) as provider:
            route = "via relay" if provider.uses_relay else "directly from api-fussball.de"
            logger.info("Fetching fixtures %s", route)
            orchestrator = SyncOrchestrator(
                provider,
                subjects,
                fixtures,
                settings_repo,
                pacing=settings.pacing,
                window_days=settings.fixture_window_days,
            )
            if args.subject:
                result = await orchestrator.sync_subject(args.subject, on_progress=on_progress)
            else:
                result = await orchestrator.run(on_progress=on_progress)

        if result.configuration_missing:
            print(result.warnings[0])
            return 2

        if not args.subject:
            db.set_meta(LAST_SYNC_META_KEY, datetime.now().isoformat(timespec="seconds"))
    finally:
        db.close()

    print("\nSync Summary")
    print("=" * 50)
    print(f"Players: {result.subjects_processed}/{result.subjects_total} synced")
    print(f"Added: {result.added}")
    print(f"Updated: {result.updated}")
    if result.failed:
        print(f"Failed upserts: {result.failed}")
    if result.warnings:
        print(f"\nWarnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  - {warning}")
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    """Wrapper to run async sync command."""
    return asyncio.run(cmd_sync_async(args))


# =============================================================================
# Listing, selection, export
# =============================================================================


def _aggregator(db):
    from .core.config import get_settings
    from .fixtures import FixtureAggregator
    from .repositories import get_repositories

    subjects, fixtures, _ = get_repositories(db)
    return FixtureAggregator.from_settings(get_settings(), fixtures, subjects)


def cmd_list(args: argparse.Namespace) -> int:
    """List upcoming matches, deduplicated across players."""
    from .fixtures import FixtureFilter

    db = get_db()

    try:
        fixture_filter = FixtureFilter(
            search=args.search,
            subject_ids=set(args.subject or []),
            responsibilities=set(args.responsibility or []),
        )
        matches = _aggregator(db).load(fixture_filter)

        if not matches:
            print("No upcoming fixtures.")
            return 0

        for match in matches:
            marker = "x" if match.selected else " "
            kickoff = match.time or "--:--"
            category = "Senior" if match.is_senior else match.age_category
            print(
                f"[{marker}] {match.key}  {match.date} {kickoff}  {category:<6} "
                f"{match.home_team} - {match.away_team}  ({', '.join(match.subject_names)})"
            )
        print(f"\n{len(matches)} matches")
        return 0
    finally:
        db.close()


def cmd_select(args: argparse.Namespace) -> int:
    """Mark matches for export."""
    from .repositories import get_repositories

    db = get_db()

    try:
        if args.clear:
            _, fixtures, _ = get_repositories(db)
            cleared = fixtures.clear_selection()
            print(f"Cleared selection on {cleared} fixture rows")
            if not args.keys:
                return 0

        changed = _aggregator(db).select(args.keys, selected=not args.unselect)
        print(f"Updated {changed} fixture rows")
        return 0
    finally:
        db.close()


def cmd_export(args: argparse.Namespace) -> int:
    """Export selected matches as an iCalendar file."""
    from .core.config import get_settings
    from .fixtures import CalendarExporter, NothingSelectedError

    db = get_db()

    try:
        exporter = CalendarExporter.from_settings(get_settings())
        matches = _aggregator(db).selected()
        try:
            written = exporter.write(matches, Path(args.output))
        except NothingSelectedError as e:
            print(e.message)
            return 1
        print(f"Exported {written} matches to {args.output}")
        return 0
    finally:
        db.close()


def cmd_cleanup(args: argparse.Namespace) -> int:
    """Delete fixtures whose date has passed."""
    from .repositories import get_repositories

    db = get_db()

    try:
        _, fixtures, _ = get_repositories(db)
        deleted = fixtures.delete_before(date.today())
        print(f"Deleted {deleted} past fixtures")
        return 0
    finally:
        db.close()


def main() -> int:
    """Main entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Fixture sync and calendar export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init / status
    subparsers.add_parser("init", help="Initialize the database")
    subparsers.add_parser("status", help="Show database status")

    # token command
    token_parser = subparsers.add_parser("token", help="Manage the api-fussball.de token")
    token_sub = token_parser.add_subparsers(dest="token_command", required=True)
    token_set = token_sub.add_parser("set", help="Store an existing token")
    token_set.add_argument("value", help="Access token")
    token_show = token_sub.add_parser("show", help="Show the stored token")
    token_show.add_argument("--reveal", action="store_true", help="Print the token unmasked")
    token_register = token_sub.add_parser("register", help="Register an e-mail address for a new token")
    token_register.add_argument("--email", required=True, help="E-mail address to register")

    # subjects command
    subjects_parser = subparsers.add_parser("subjects", help="Manage represented players")
    subjects_sub = subjects_parser.add_subparsers(dest="subjects_command", required=True)
    subjects_add = subjects_sub.add_parser("add", help="Add or update a player")
    subjects_add.add_argument("--id", help="Player ID (default: generated)")
    subjects_add.add_argument("--name", required=True, help="Display name")
    subjects_add.add_argument("--url", help="fussball.de team profile URL")
    subjects_add.add_argument("--league", help="League / age category label, e.g. 'U17 Bundesliga'")
    subjects_add.add_argument("--club", help="Club name")
    subjects_add.add_argument("--responsibility", help="Responsible agents, e.g. 'Matti, Langer'")
    subjects_sub.add_parser("list", help="List players")

    # sync command
    sync_parser = subparsers.add_parser("sync", help="Sync fixtures from api-fussball.de")
    sync_parser.add_argument("--subject", help="Only sync this player ID")

    # list command
    list_parser = subparsers.add_parser("list", help="List upcoming matches")
    list_parser.add_argument("--search", help="Search team, location and player names")
    list_parser.add_argument("--subject", action="append", help="Only matches of this player ID (repeatable)")
    list_parser.add_argument(
        "--responsibility", action="append", help="Only players of this agent (repeatable)"
    )

    # select command
    select_parser = subparsers.add_parser("select", help="Mark matches for export")
    select_parser.add_argument("keys", nargs="*", help="Match keys as shown by 'list'")
    select_parser.add_argument("--clear", action="store_true", help="Clear the current selection first")
    select_parser.add_argument("--unselect", action="store_true", help="Remove the given matches instead")

    # export command
    export_parser = subparsers.add_parser("export", help="Export selected matches as .ics")
    export_parser.add_argument("--output", default="spielplan.ics", help="Output file")

    # cleanup command
    subparsers.add_parser("cleanup", help="Delete fixtures whose date has passed")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(args.verbose)

    commands = {
        "init": cmd_init,
        "status": cmd_status,
        "token": cmd_token,
        "subjects": cmd_subjects,
        "sync": cmd_sync,
        "list": cmd_list,
        "select": cmd_select,
        "export": cmd_export,
        "cleanup": cmd_cleanup,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
