import argparse
import asyncio
import logging
import sys
from typing import Any

from pagepeeker.core.config import settings
from pagepeeker.core.logging_config import configure_logging
from pagepeeker.schemas.thumbnail import ThumbnailSize
from pagepeeker.services.thumbnails import InvalidConfiguration, ThumbnailClientError, fetch_thumbnail

logger = logging.getLogger(__name__)


def _options_from_args(args: argparse.Namespace) -> dict[str, Any]:
    options: dict[str, Any] = {
        "sourceUrl": args.url,
        "thumbnailSize": args.size,
        "pollInterval": args.poll_interval,
        "retryTransportErrorsDuringPoll": bool(args.retry_poll_errors),
    }
    if args.output:
        options["targetFileName"] = args.output
    if args.max_wait is not None:
        options["maxWaitSeconds"] = args.max_wait if args.max_wait > 0 else None
    if args.max_polls is not None:
        options["maxPolls"] = args.max_polls
    return options


def _add_fetch_command(subparsers) -> None:
    fetch = subparsers.add_parser("fetch", help="Render a thumbnail for a web page and download it")
    fetch.add_argument("url", help="Web page address to thumbnail")
    fetch.add_argument(
        "--size",
        default=ThumbnailSize.large.value,
        choices=[size.value for size in ThumbnailSize],
        help="Thumbnail size code (default: l)",
    )
    fetch.add_argument("--output", help="Target file (default: derived from the URL)")
    fetch.add_argument("--poll-interval", type=int, default=5, help="Seconds between status checks (minimum 5)")
    fetch.add_argument(
        "--max-wait",
        type=float,
        default=None,
        help=f"Give up after this many seconds (default: {settings.default_max_wait_seconds:g}, 0 disables)",
    )
    fetch.add_argument("--max-polls", type=int, default=None, help="Give up after this many status checks")
    fetch.add_argument(
        "--retry-poll-errors",
        action="store_true",
        help="Keep polling when a status check fails instead of aborting",
    )
    fetch.add_argument("--base-url", default=None, help=f"Service address (default: {settings.base_url})")
    fetch.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pagepeeker", description="PagePeeker thumbnail client")
    subparsers = parser.add_subparsers(dest="command")
    _add_fetch_command(subparsers)
    return parser


def _run_fetch(args: argparse.Namespace) -> int:
    configure_logging(json_logs=bool(args.json_logs or settings.json_logs), level=settings.log_level)
    try:
        path = asyncio.run(fetch_thumbnail(_options_from_args(args), base_url=args.base_url))
    except InvalidConfiguration as exc:
        raise SystemExit(f"Invalid options: {exc}")
    except ThumbnailClientError as exc:
        logger.error("thumbnail_fetch_failed", extra={"error": str(exc)})
        print(f"Thumbnail fetch failed: {exc}", file=sys.stderr)
        return 1

    if path is None:
        print("Thumbnail unavailable", file=sys.stderr)
        return 1
    print(path)
    return 0


def _run_cli_command(args: argparse.Namespace) -> int | None:
    if args.command == "fetch":
        return _run_fetch(args)
    return None


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    exit_code = _run_cli_command(args)
    if exit_code is None:
        parser.print_help()
        return 0
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
