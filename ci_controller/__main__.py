"""
Entrypoint for running the CI service.

Starts the HTTP server (GitHub webhook, build logs) with the scheduler
running inside the same process.

Usage:
    python -m ci_controller [OPTIONS]
    ci-controller [OPTIONS]  (after pip install)

Environment Variables:
    See ci_common.config. Command-line arguments override them.
"""

import argparse
import logging
import sys

import uvicorn

from ci_common.config import Config
from ci_common.exceptions import ConfigError
from ci_common.models import Job
from ci_common.repository import BuildRepository
from ci_persistence.log_store import LogStore
from ci_persistence.sqlite_repository import SQLiteBuildRepository
from ci_server.app import create_app

from .builder import BuildExecutor
from .dispatcher import CommitDispatcher
from .repo_cache import RepositoryCache
from .runner import CommandRunner
from .scheduler import Scheduler
from .status import StatusReporter
from .work_queue import QueuedItem, WorkQueue

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="CI Controller - builds ci.nix jobs of GitHub pull requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  CI_REPO_ROOT          Directory for repository working copies (default: repos)
  CI_LOG_ROOT           Directory for build logs (default: logs)
  CI_HTTP_ROOT          Public URL of this server (default: http://localhost:8080)
  CI_OAUTH_TOKEN        GitHub token for commit statuses (required)
  CI_WEBHOOK_SECRET     GitHub webhook secret (required)
  CI_DB_PATH            Build history database (default: ci_builds.db)
  CI_GITHUB_API_URL     GitHub API base URL (default: https://api.github.com)
  CI_BUILD_FILE         Nix file declaring the jobs (default: ci.nix)
  CI_COMMAND_TIMEOUT    Seconds before git/nix commands are killed, 0 disables
  CI_HOST, CI_PORT      Address to listen on (default: 0.0.0.0:8080)

Note: Command-line arguments override environment variables.

Examples:
  # Run with settings from the environment
  ci-controller

  # Keep working copies and logs under /var/lib/ci
  ci-controller --repo-root /var/lib/ci/repos --log-root /var/lib/ci/logs

  # Enable debug logging
  ci-controller --log-level DEBUG
        """,
    )

    parser.add_argument(
        "--repo-root",
        type=str,
        default=None,
        help="Directory for repository working copies (default: CI_REPO_ROOT env or repos)",
    )
    parser.add_argument(
        "--log-root",
        type=str,
        default=None,
        help="Directory for build logs (default: CI_LOG_ROOT env or logs)",
    )
    parser.add_argument(
        "--http-root",
        type=str,
        default=None,
        help="Public URL of this server, used in commit status links",
    )
    parser.add_argument(
        "--oauth-token",
        type=str,
        default=None,
        help="GitHub token for commit statuses (default: CI_OAUTH_TOKEN env)",
    )
    parser.add_argument(
        "--webhook-secret",
        type=str,
        default=None,
        help="GitHub webhook secret (default: CI_WEBHOOK_SECRET env)",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="Build history database (default: CI_DB_PATH env or ci_builds.db)",
    )
    parser.add_argument(
        "--command-timeout",
        type=float,
        default=None,
        help="Seconds before git/nix commands are killed, 0 disables",
    )
    parser.add_argument("--host", type=str, default=None, help="Address to listen on")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on")

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """
    Build the configuration from CLI args and the environment.

    Raises:
        ConfigError: If required settings are missing or invalid
    """
    return Config.from_env(
        repo_root=args.repo_root,
        log_root=args.log_root,
        http_root=args.http_root,
        oauth_token=args.oauth_token,
        webhook_secret=args.webhook_secret,
        db_path=args.db_path,
        command_timeout=args.command_timeout,
        host=args.host,
        port=args.port,
    )


def create_scheduler(
    config: Config,
    log_store: LogStore,
    build_repository: BuildRepository | None = None,
) -> Scheduler:
    """
    Wire the pipeline components together.

    Args:
        config: Process configuration
        log_store: Where build logs are written
        build_repository: Optional build history store

    Returns:
        A scheduler that has not been started yet
    """
    runner = CommandRunner(timeout=config.command_timeout)
    repo_cache = RepositoryCache(config.repo_root, runner)
    queue = WorkQueue()

    async def enqueue_job(job: Job) -> QueuedItem:
        return await scheduler.enqueue_job(job)

    dispatcher = CommitDispatcher(
        repo_cache, runner, enqueue_job=enqueue_job, build_file=config.build_file
    )
    executor = BuildExecutor(
        repo_cache, runner, log_store, build_file=config.build_file
    )
    reporter = StatusReporter(
        oauth_token=config.oauth_token,
        http_root=config.http_root,
        api_url=config.github_api_url,
    )

    scheduler = Scheduler(
        queue=queue,
        dispatcher=dispatcher,
        executor=executor,
        reporter=reporter,
        build_repository=build_repository,
    )
    return scheduler


def main(argv: list[str] | None = None) -> int:
    """
    Main entrypoint for the CI service.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(args)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info("Starting CI Controller")
    logger.info(f"  Repository root: {config.repo_root}")
    logger.info(f"  Log root: {config.log_root}")
    logger.info(f"  HTTP root: {config.http_root}")
    logger.info(f"  Database: {config.db_path}")
    logger.info(f"  Command timeout: {config.command_timeout or '(none)'}")

    log_store = LogStore(config.log_root)
    build_repository = SQLiteBuildRepository(config.db_path)
    scheduler = create_scheduler(config, log_store, build_repository)
    app = create_app(config, scheduler, log_store, build_repository)

    try:
        uvicorn.run(
            app,
            host=config.host,
            port=config.port,
            log_level=args.log_level.lower(),
        )
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
