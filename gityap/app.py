import argparse
import json
import os
import sys
from pathlib import Path

from . import __version__
from .config import load_settings
from .env import load_env
from .errors import GityapError
from .logger import get_logger
from .orchestrator import Reconciler
from .sources.channels import FileChannelProvider
from .sources.github import UpstreamClient
from .storage import open_repository


def build_reconciler(args: argparse.Namespace) -> Reconciler:
    settings = load_settings().override(
        store=args.store,
        database_path=Path(args.db) if args.db else None,
        channels_path=Path(args.channels) if args.channels else None,
        timeout=args.timeout,
    )
    logger = get_logger(level=settings.log_level, log_dir=settings.log_dir)
    client = UpstreamClient(
        token=settings.github_token,
        base_url=settings.api_url,
        timeout=settings.http_timeout,
        logger=logger,
    )
    return Reconciler(
        client=client,
        channels=FileChannelProvider(settings.channels_path),
        repository=open_repository(settings),
        timeout=settings.timeout,
        logger=logger,
    )


def _session(args: argparse.Namespace):
    return args.session or os.getenv("GITYAP_SESSION")


def _emit(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_compare(args: argparse.Namespace, rec: Reconciler) -> None:
    result = rec.compare_entities(args.github, args.channel, session=_session(args), credential=args.token)
    _emit(result.to_dict())


def cmd_compare_channels(args: argparse.Namespace, rec: Reconciler) -> None:
    result = rec.compare_channels(
        args.channel1,
        args.channel2,
        session=_session(args),
        code_hint_a=args.github1,
        code_hint_b=args.github2,
        credential=args.token,
    )
    _emit(result.to_dict())


def cmd_match(args: argparse.Namespace, rec: Reconciler) -> None:
    match = rec.find_cofounder_match(args.channel, args.github, args.exclude, credential=args.token)
    _emit(match.to_dict())


def cmd_user(args: argparse.Namespace, rec: Reconciler) -> None:
    _emit(rec.fetch_code_profile(args.username, credential=args.token).to_dict())


def cmd_search(args: argparse.Namespace, rec: Reconciler) -> None:
    _emit([p.to_dict() for p in rec.search_code_profiles(args.query, credential=args.token)])


def cmd_leaderboard(args: argparse.Namespace, rec: Reconciler) -> None:
    _emit(rec.leaderboard())


def cmd_recent(args: argparse.Namespace, rec: Reconciler) -> None:
    _emit(rec.recent_comparisons(limit=args.limit))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gityap", description="Gityap: builders vs talkers")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--store", choices=["sql", "memory"], help="Repository backend (default: GITYAP_STORE or sql)")
    parser.add_argument("--db", help="SQLite database path (default: GITYAP_DATABASE or data/gityap.db)")
    parser.add_argument("--channels", help="Channel snapshot JSON (default: GITYAP_CHANNELS or data/channels.json)")
    parser.add_argument("--timeout", type=float, help="Overall timeout in seconds (default: GITYAP_TIMEOUT or 60)")
    parser.add_argument("--token", help="GitHub bearer token for this call (default: GITHUB_TOKEN)")
    parser.add_argument("--metrics", action="store_true", help="Log a metrics summary on exit")

    subparsers = parser.add_subparsers(dest="command")

    cmp_ = subparsers.add_parser("compare", help="Compare a GitHub user against a channel")
    cmp_.add_argument("--github", required=True, help="GitHub username")
    cmp_.add_argument("--channel", required=True, help="Channel username")
    cmp_.add_argument("--session", help="Messaging session (or set GITYAP_SESSION)")
    cmp_.set_defaults(func=cmd_compare)

    cc = subparsers.add_parser("compare-channels", help="Compare two channels")
    cc.add_argument("--channel1", required=True, help="First channel username")
    cc.add_argument("--channel2", required=True, help="Second channel username")
    cc.add_argument("--github1", help="GitHub username behind the first channel")
    cc.add_argument("--github2", help="GitHub username behind the second channel")
    cc.add_argument("--session", help="Messaging session (or set GITYAP_SESSION)")
    cc.set_defaults(func=cmd_compare_channels)

    mt = subparsers.add_parser("match", help="Find the best co-founder match for a channel")
    mt.add_argument("--channel", required=True, help="Source channel username")
    mt.add_argument("--github", help="GitHub username of the source")
    mt.add_argument("--exclude", help="Channel username to leave out")
    mt.set_defaults(func=cmd_match)

    usr = subparsers.add_parser("user", help="Show a GitHub user with resolved commit count")
    usr.add_argument("--username", required=True, help="GitHub username")
    usr.set_defaults(func=cmd_user)

    src = subparsers.add_parser("search", help="Search GitHub users")
    src.add_argument("--query", required=True, help="Search text")
    src.set_defaults(func=cmd_search)

    lb = subparsers.add_parser("leaderboard", help="Show the leaderboard")
    lb.set_defaults(func=cmd_leaderboard)

    rc = subparsers.add_parser("recent", help="Show recent comparisons")
    rc.add_argument("--limit", type=int, default=10, help="Number of comparisons (default 10)")
    rc.set_defaults(func=cmd_recent)

    return parser


def main(argv=None):
    # Load .env if present (GITHUB_TOKEN, GITYAP_DATABASE, etc.)
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        rec = build_reconciler(args)
        args.func(args, rec)
    except GityapError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        raise SystemExit(1)
    finally:
        if args.metrics:
            get_logger().log_metrics_summary()


if __name__ == "__main__":
    main()
