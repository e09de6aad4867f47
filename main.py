"""CLI entry point for the referral ranking engine."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from referral_ranking.core.config import Settings
from referral_ranking.core.db import init_db
from referral_ranking.core.errors import RankingError
from referral_ranking.core.schemas import RankedPage, ResponseStatus
from referral_ranking.ranking.ranker import rank
from referral_ranking.ranking.sqlite_store import SqliteResponseStore
from referral_ranking.responses.workflow import ResponseWorkflow

_STATUS_CHOICES = [s.value for s in ResponseStatus] + ["all"]


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Referral ranking engine - rank referrer responses to a requirement",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- init-db subcommand ---
    init_parser = subparsers.add_parser("init-db", help="Create the database schema")
    _add_common(init_parser)

    # --- rank subcommand ---
    rank_parser = subparsers.add_parser("rank", help="Rank responses to a requirement")
    rank_parser.add_argument("--requirement", required=True, help="Requirement ID")
    rank_parser.add_argument(
        "--viewer",
        required=True,
        help="ID of the referrer who owns the requirement",
    )
    rank_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    rank_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Items per page (default: pagination.default_limit)",
    )
    rank_parser.add_argument(
        "--status",
        default=ResponseStatus.PENDING.value,
        choices=_STATUS_CHOICES,
        help="Filter by response status (default: pending)",
    )
    rank_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export the ranked page to format (json)",
    )
    _add_common(rank_parser)

    # --- approve / reject subcommands ---
    for name in ("approve", "reject"):
        p = subparsers.add_parser(name, help=f"{name.capitalize()} a pending response")
        p.add_argument("--requirement", required=True, help="Requirement ID")
        p.add_argument("--response", required=True, help="Response ID")
        p.add_argument("--owner", required=True, help="ID of the requirement's owner")
        _add_common(p)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str) -> Settings:
    """Load settings, falling back to defaults when the file is absent."""
    try:
        return Settings.from_yaml(path)
    except FileNotFoundError:
        logging.getLogger(__name__).info("No config at %s - using defaults", path)
        return Settings()


def export_page_json(ranked: RankedPage) -> str:
    """Export a ranked page as a JSON string."""
    data = {
        "page": ranked.page,
        "limit": ranked.limit,
        "total": ranked.total,
        "items": [item.to_dict() for item in ranked.items],
    }
    return json.dumps(data, indent=2)


def print_page(ranked: RankedPage) -> None:
    print(f"\nPage {ranked.page} ({len(ranked.items)} of {ranked.total} responses)")
    for pos, item in enumerate(ranked.items, start=(ranked.page - 1) * ranked.limit + 1):
        d = item.score_details
        print(
            f"  {pos:>3}. {item.score:6.2f}  {item.candidate.first_name} {item.candidate.last_name}"
            f"  via {item.referrer.first_name} {item.referrer.last_name}"
            f"  [success {d.success_rate.rate:.4f}, circle {d.circle.relation.value},"
            f" active {d.candidate_active.is_recent}, interest {d.recent_interest.has_recent_accepted},"
            f" premium {d.premium.is_premium}]",
        )


async def cmd_rank(args: argparse.Namespace, settings: Settings) -> None:
    """Handle rank subcommand."""
    store = SqliteResponseStore(settings.database.path)
    status = None if args.status == "all" else ResponseStatus(args.status)
    ranked = await rank(
        store,
        args.requirement,
        args.viewer,
        page=args.page,
        limit=args.limit,
        status=status,
        scoring=settings.scoring,
        pagination=settings.pagination,
    )
    if args.export == "json":
        print(export_page_json(ranked))
    else:
        print_page(ranked)


def cmd_transition(args: argparse.Namespace, settings: Settings) -> None:
    """Handle approve / reject subcommands."""
    conn = init_db(settings.database.path)
    try:
        workflow = ResponseWorkflow(conn)
        if args.command == "approve":
            response = workflow.approve(args.requirement, args.response, args.owner)
        else:
            response = workflow.reject(args.requirement, args.response, args.owner)
    finally:
        conn.close()
    print(f"Response {response.id} is now {response.status.value}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command != "init-db" and not Path(settings.database.path).exists():
        print(f"Error: database not found at {settings.database.path}, run init-db", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "init-db":
            init_db(settings.database.path).close()
            print(f"Database ready at {settings.database.path}")
        elif args.command == "rank":
            asyncio.run(cmd_rank(args, settings))
        else:
            cmd_transition(args, settings)
    except (RankingError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
