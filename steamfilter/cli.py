"""Command-line interface for steamfilter."""

from __future__ import annotations

import argparse
import json
import logging
import os
import shlex
import sys
from datetime import datetime
from pathlib import Path

from .errors import InvalidInput, SteamFilterError
from .models import BatchPolicy
from .pipelines.context import ServiceContext
from .pipelines.formatting import add_profile_to_json, format_records
from .utils.utilities import ProjectPaths


def setup_logging(log_file: Path) -> None:
    """Configure logging to both console (stderr) and file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    # stdout carries the JSON output; logs go to stderr.
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Silence verbose HTTP debug logs by default
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    logging.info(f"Logging to file: {log_file}")


def _project_paths() -> ProjectPaths:
    project_root = Path(__file__).resolve().parent.parent
    paths = ProjectPaths.from_root(project_root)
    paths.ensure()
    return paths


def _default_log_file(*, command_name: str, logs_dir: Path) -> Path:
    logs_dir.mkdir(parents=True, exist_ok=True)

    now = datetime.now()
    stamp = now.strftime("%Y%m%d-%H%M%S") + f".{now.microsecond // 1000:03d}"
    candidate = logs_dir / f"log-{stamp}-{command_name}.log"
    if not candidate.exists():
        return candidate
    return logs_dir / f"log-{stamp}-{command_name}-{os.getpid()}.log"


def _setup_logging_from_args(args: argparse.Namespace, paths: ProjectPaths) -> None:
    setup_logging(
        args.log_file or _default_log_file(command_name=args.command, logs_dir=paths.logs_dir)
    )
    if args.debug:
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        for handler in root_logger.handlers:
            handler.setLevel(logging.DEBUG)
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    argv = " ".join(shlex.quote(a) for a in sys.argv)
    logging.info(f"Invocation: {argv}")


def _context(args: argparse.Namespace, paths: ProjectPaths) -> ServiceContext:
    return ServiceContext(
        cache_path=getattr(args, "cache", None) or paths.game_cache,
        credentials_path=getattr(args, "credentials", None) or paths.credentials,
        policy=getattr(args, "policy", None) or BatchPolicy.SKIP,
        max_workers=getattr(args, "workers", None) or 1,
    )


def _command_details(args: argparse.Namespace, ctx: ServiceContext) -> str:
    app_ids = str(args.app_ids or "").split(",")
    retriever = ctx.retriever(skip_cache=args.skip_cache)
    records = retriever.retrieve_batch(app_ids)
    logging.info(f"[STORE] Cache stats: {retriever.format_cache_stats()}")
    logging.info(f"[CACHE] Metadata cache: {ctx.format_cache_stats()}")
    logging.info(f"[HTTP] {ctx.format_http_stats()}")
    return format_records(records)


def _command_profile(args: argparse.Namespace, ctx: ServiceContext) -> str:
    profile = ctx.profiles.fetch_profile(args.user)
    return json.dumps(profile.to_dict(), ensure_ascii=False)


def _command_games(args: argparse.Namespace, ctx: ServiceContext) -> str:
    profile = ctx.profiles.fetch_profile(args.user)
    owned = ctx.owned_games().fetch_owned_games(profile.steam_id64)
    return add_profile_to_json(owned, profile)


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = argparse.ArgumentParser(description="Steam store metadata with a persistent cache")
    sub = parser.add_subparsers(dest="command", required=True)

    p_common = argparse.ArgumentParser(add_help=False)
    p_common.add_argument(
        "--log-file",
        type=Path,
        help="Log file path (default: data/logs/log-<timestamp>-<command>.log)",
    )
    p_common.add_argument(
        "--debug", action="store_true", help="Enable DEBUG logging (default: INFO)"
    )

    p_details = sub.add_parser(
        "details", help="Fetch store metadata for app ids", parents=[p_common]
    )
    p_details.add_argument("app_ids", help="Comma-separated app ids (e.g. 220,440,570)")
    p_details.add_argument(
        "--cache",
        type=Path,
        help="Metadata cache file (default: data/cache/steamfilter-gamecache.json)",
    )
    p_details.add_argument(
        "--skip-cache", action="store_true", help="Bypass the metadata cache entirely"
    )
    p_details.add_argument(
        "--policy",
        choices=[p.value for p in BatchPolicy],
        default=BatchPolicy.SKIP.value,
        help="Per-id failure policy (default: skip)",
    )
    p_details.add_argument(
        "--workers", type=int, default=1, help="Fetch this many ids concurrently (default: 1)"
    )
    p_details.set_defaults(_fn=_command_details)

    p_profile = sub.add_parser(
        "profile", help="Resolve a profile name, id or URL", parents=[p_common]
    )
    p_profile.add_argument("user", help="Vanity name, SteamID64 or community profile URL")
    p_profile.set_defaults(_fn=_command_profile)

    p_games = sub.add_parser(
        "games", help="List a profile's owned games (needs a Web API key)", parents=[p_common]
    )
    p_games.add_argument("user", help="Vanity name, SteamID64 or community profile URL")
    p_games.add_argument(
        "--credentials", type=Path, help="Credentials YAML (default: data/credentials.yaml)"
    )
    p_games.set_defaults(_fn=_command_games)

    args = parser.parse_args(argv)
    paths = _project_paths()
    _setup_logging_from_args(args, paths)

    ctx = _context(args, paths)
    try:
        out = args._fn(args, ctx)
    except InvalidInput as e:
        raise SystemExit(f"Invalid input: {e}") from e
    except SteamFilterError as e:
        logging.error(f"{args.command} failed: {e}")
        raise SystemExit(1) from e
    print(out)


if __name__ == "__main__":
    main()
