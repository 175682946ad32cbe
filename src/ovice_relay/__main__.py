"""Entry point for running the oVice relay.

- Configuration loading
- Logging setup with secret sanitization
- Application construction and serving under uvicorn
"""

import argparse
import sys
from pathlib import Path

import structlog

from ovice_relay._version import __version__

log = structlog.get_logger()


def setup_logging(debug: bool = False, log_format: str = "console") -> None:
    """Configure structured logging with secret sanitization.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
    """
    from ovice_relay.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.INFO
    configure_logging(level=level, log_format=LogFormat(log_format.lower()))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="ovice-relay",
        description="oVice relay - forward webhook messages into Mattermost as a bot",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse config and validate without starting the relay",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="console",
        help="Log output format (default: console)",
    )

    return parser.parse_args(argv)


def run_relay(config_path: Path, dry_run: bool = False, debug: bool = False) -> int:
    """Load configuration and serve the relay until shutdown.

    Args:
        config_path: Path to configuration file
        dry_run: If True, only validate config without starting
        debug: Keep debug logging regardless of the configured level

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    from pydantic import ValidationError

    from ovice_relay.config.loader import load_config
    from ovice_relay.core.state import apply_logging
    from ovice_relay.utils.security import mask_token

    log.info("loading_configuration", path=str(config_path))
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except (ValueError, ValidationError) as e:
        log.error("configuration_invalid", error=str(e))
        return 1

    apply_logging(config, debug=debug)
    log.info(
        "configuration_loaded",
        mattermost_url=config.mattermost.url,
        token=mask_token(config.mattermost.token),
        bot_token=mask_token(config.mattermost.bot_token),
        bot_username=config.bot.username,
    )

    if dry_run:
        log.info("dry_run_mode_config_valid")
        return 0

    import uvicorn

    from ovice_relay.app import create_app

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(config, config_path=config_path),
            host=config.server.host,
            port=config.server.port,
            log_config=None,
            lifespan="on",
        )
    )
    try:
        server.run()
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1

    # A failed activation stops the server before it ever starts
    if not server.started:
        log.error("relay_startup_failed")
        return 1

    return 0


def main() -> int:
    """Main entry point."""
    args = parse_args()

    setup_logging(debug=args.debug, log_format=args.format)

    try:
        return run_relay(args.config, dry_run=args.dry_run, debug=args.debug)
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
