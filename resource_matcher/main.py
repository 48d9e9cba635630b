"""Main entry point for the Resource Matcher service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

from resource_matcher.config.environment import EnvironmentConfig
from resource_matcher.config.exceptions import ConfigurationError
from resource_matcher.config.loader import load_config
from resource_matcher.config.models import AppConfig
from resource_matcher.domain.exceptions import InvalidProfileError
from resource_matcher.domain.profile import parse_profile
from resource_matcher.gateway.exceptions import CatalogUnavailableError
from resource_matcher.gateway.sql import SqlListingGateway
from resource_matcher.logging import get_logger
from resource_matcher.logging.config import configure_logging
from resource_matcher.matching.assembler import ResponseAssembler
from resource_matcher.matching.engine import ResourceMatcher
from resource_matcher.matching.exceptions import MatchCancelledError
from resource_matcher.matching.utils import format_matches_for_prompt
from resource_matcher.narration.anthropic import build_narrator
from resource_matcher.persistence.catalog import load_catalog_file
from resource_matcher.persistence.database import close_database, get_session, init_database
from resource_matcher.persistence.exceptions import PersistenceError
from resource_matcher.persistence.repositories import ListingRepository

logger = get_logger(__name__, component="cli")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > Environment > Config > INFO.

    Args:
        config_path: Path to configuration file (None = default lookup)
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with env_config.log_level set

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        env_config.log_level = env_config.log_level.upper()
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resource Matcher - rank business-support resources for a founder profile"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=LOG_LEVELS,
        help="Log level (overrides config and environment)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: API_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: API_PORT)")

    match = subparsers.add_parser("match", help="Match a profile from a JSON file and print the result")
    match.add_argument(
        "--profile",
        type=Path,
        required=True,
        help="Profile JSON file ('-' reads from stdin)",
    )
    match.add_argument(
        "--categories", default=None, help="Comma-separated categories (default: from config)"
    )
    match.add_argument(
        "--prompt",
        action="store_true",
        help="Print the markdown block used in AI prompts instead of JSON",
    )
    match.add_argument(
        "--narrate", action="store_true", help="Attach relevance notes (needs ANTHROPIC_API_KEY)"
    )

    seed = subparsers.add_parser("seed", help="Load listings from a YAML catalog into the store")
    seed.add_argument("--catalog", type=Path, required=True, help="YAML catalog file")

    return parser


def _read_profile(path: Path) -> object:
    if str(path) == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def run_match(args: argparse.Namespace, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    """Execute a single match and print it. Returns an exit code."""
    try:
        profile = parse_profile(_read_profile(args.profile))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Could not read profile: {e}", file=sys.stderr)
        return 2
    except InvalidProfileError as e:
        print(f"Invalid profile: {e}", file=sys.stderr)
        return 2

    categories = args.categories.split(",") if args.categories else None
    matcher = ResourceMatcher.from_config(app_config, SqlListingGateway())

    try:
        result = matcher.match(profile, categories=categories)
    except (CatalogUnavailableError, MatchCancelledError) as e:
        print(json.dumps(ResponseAssembler.error(str(e)), indent=2))
        return 1

    if args.prompt:
        print(format_matches_for_prompt(result.matches))
    else:
        narrator = build_narrator(app_config.narration, env_config) if args.narrate else None
        assembler = ResponseAssembler(narrator=narrator)
        body = assembler.assemble(result, profile, narrate=args.narrate)
        print(json.dumps(body, indent=2))

    logger.info(
        f"Matched {result.total_returned} listings in {len(result.matches)} categories",
        extra={
            "event": "cli.match.completed",
            "run_id": result.run_id,
            "duration_seconds": result.total_duration_seconds,
            "had_errors": result.had_errors,
        },
    )
    return 0


def run_seed(args: argparse.Namespace) -> int:
    """Upsert every listing of a YAML catalog. Returns an exit code."""
    listings = load_catalog_file(args.catalog)

    with get_session() as session:
        repo = ListingRepository(session)
        for listing in listings:
            repo.upsert(listing)

    logger.info(
        f"Seeded {len(listings)} listings from {args.catalog}",
        extra={"event": "cli.seed.completed", "count": len(listings), "catalog": str(args.catalog)},
    )
    return 0


def run_serve(args: argparse.Namespace, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    """Serve the HTTP API with uvicorn until interrupted."""
    import uvicorn

    from resource_matcher.api.app import create_app

    app = create_app(app_config, env_config, gateway=SqlListingGateway())
    host = args.host or env_config.api_host
    port = args.port or env_config.api_port

    logger.info(
        f"Serving API on {host}:{port}",
        extra={"event": "service.api.started", "host": host, "port": port},
    )
    # log_config=None keeps the logging configured by configure_logging()
    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


def main(argv=None) -> int:
    """
    Main entry point for the Resource Matcher CLI.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        # Load configuration before logging so the format is known
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Resource Matcher starting",
            extra={
                "event": "service.starting",
                "command": args.command,
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
            },
        )

        init_database(env_config.database_url)

        if args.command == "seed":
            exit_code = run_seed(args)
        elif args.command == "match":
            exit_code = run_match(args, app_config, env_config)
        else:
            exit_code = run_serve(args, app_config, env_config)

        logger.info(
            "Resource Matcher stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return exit_code

    except ConfigurationError as e:
        # Configuration errors are already formatted nicely
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except (PersistenceError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(
            f"Command failed: {e}",
            extra={"event": "service.command.failed", "error_type": type(e).__name__},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1
    finally:
        close_database()


if __name__ == "__main__":
    sys.exit(main())
