"""Main entry point for the mention watcher."""

import argparse
import asyncio
import logging
import os
import signal
import sys

from pydantic import ValidationError

from .config import Config, WatchConfig, load_config, parse_reasons, validate_repo
from .errors import ErrorCode, WatchError
from .services.ack_service import AckService
from .services.github_service import GitHubService
from .services.state_service import journal_path_for
from .watcher import Watcher


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Logs go to stderr; stdout is reserved for the event stream.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_github_service(args, config: Config) -> GitHubService:
    """Create the GitHub service, resolving the token from CLI, env, then config."""
    token = args.github_token or os.getenv("GITHUB_TOKEN")
    if not token and config.github.token:
        token = config.github.token.get_secret_value()

    return GitHubService(
        token=token,
        api_base=config.github.api_base,
        timeout=config.github.timeout,
    )


def apply_watch_overrides(args, config: Config) -> Config:
    """Merge CLI flags over the config file's watch section."""
    updates = {}
    if args.repo is not None:
        updates["repo"] = args.repo
    if args.interval is not None:
        updates["poll_interval"] = args.interval
    if args.state_file is not None:
        updates["state_file"] = args.state_file
    if args.reasons is not None:
        updates["reasons"] = parse_reasons(args.reasons)
    if args.once:
        updates["once"] = True

    try:
        watch = WatchConfig.model_validate({**config.watch.model_dump(), **updates})
    except ValidationError as e:
        raise WatchError(f"Invalid watch options: {e}", ErrorCode.INVALID_CONFIG, 1) from e
    return config.model_copy(update={"watch": watch})


async def resolve_agent(github_service: GitHubService) -> str:
    """Return the authenticated login; any failure here is fatal."""
    try:
        return await github_service.get_current_user()
    except Exception as e:
        if isinstance(e, WatchError) and e.code is ErrorCode.GH_NOT_AUTHENTICATED:
            raise
        raise WatchError(
            "Could not determine GitHub user. Ensure token is valid.",
            ErrorCode.GH_NOT_AUTHENTICATED,
            2,
        ) from e


async def run_watch(args, logger, config: Config) -> int:
    """Run the watch command (single cycle or continuous)."""
    config = apply_watch_overrides(args, config)
    repo = validate_repo(config.watch.repo)

    github_service = build_github_service(args, config)
    agent = await resolve_agent(github_service)

    watcher = Watcher(
        github_service=github_service,
        repo=repo,
        agent=agent,
        state_file=config.watch.state_file,
        reasons=config.watch.reasons,
        poll_interval=config.watch.poll_interval,
    )

    if config.watch.once:
        await watcher.run_once()
        return 0

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_shutdown() -> None:
        if not stop_event.is_set():
            logger.info("Shutdown signal received")
            stop_event.set()

    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        loop.add_signal_handler(sig, request_shutdown)

    try:
        await watcher.run(stop_event)
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)

    return 0


async def run_ack(args, logger, config: Config) -> int:
    """Run the ack command."""
    github_service = build_github_service(args, config)
    ack_service = AckService(github_service, journal_path_for(args.state_file))

    result = await ack_service.ack(args.key)
    if not result.marked_read:
        logger.debug("Ack recorded for %s; thread left unread upstream", result.key)
    return 0


async def async_main(args, logger) -> int:
    """Async main function."""
    try:
        config = load_config(args.config)
        if args.command == "watch":
            return await run_watch(args, logger, config)
        return await run_ack(args, logger, config)

    except WatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hivemoot-watch",
        description="Watch GitHub notifications for @mentions and emit acknowledgeable events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s watch --repo owner/repo                  # Poll every 300s, events on stdout
  %(prog)s watch --repo owner/repo --once           # Check once and exit
  %(prog)s watch --repo owner/repo --reasons mention,comment
  %(prog)s ack 1001:2026-02-01T11:30:00.000Z --state-file .hivemoot-watch.json
        """,
    )

    parser.add_argument(
        "--github-token",
        default=None,
        help="GitHub personal access token (or set GITHUB_TOKEN env var)",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to optional YAML configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    watch = subparsers.add_parser("watch", help="Watch for @mentions and output events (long-running)")
    watch.add_argument("--repo", default=None, help="Target repository (owner/repo)")
    watch.add_argument("--interval", type=int, default=None, help="Poll interval in seconds (default: 300)")
    watch.add_argument("--once", action="store_true", help="Check once and exit")
    watch.add_argument("--state-file", default=None, help="State file path (default: .hivemoot-watch.json)")
    watch.add_argument("--reasons", default=None, help="Comma-separated notification reasons (default: mention)")

    ack = subparsers.add_parser("ack", help="Acknowledge a processed mention event")
    ack.add_argument("key", help="Composite key: threadId:updatedAt")
    ack.add_argument("--state-file", required=True, help="Path to the watch state file")

    return parser


def main() -> int:
    """Main entry point."""
    args = build_parser().parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        return asyncio.run(async_main(args, logger))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
