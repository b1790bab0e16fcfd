"""Entry point for tempodisk: python -m tempodisk."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .app import TempoDiskApp

DEFAULT_CONFIG = Path("config.yaml")


def setup_logging(verbose: bool, quiet: bool = False) -> None:
    """Configure logging."""
    if quiet:
        logging.basicConfig(level=logging.WARNING)
        return

    level = logging.DEBUG if verbose else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from libraries
    logging.getLogger("bleak").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="tempodisk",
        description="BlueMaestro Tempo Disk BLE adapter",
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG} if present)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log warnings and errors",
    )

    parser.add_argument(
        "-o", "--console",
        nargs="?",
        const=0,
        type=int,
        default=None,
        metavar="INTERVAL",
        help=(
            "Console report interval in seconds (default: poll_interval from config). "
            "--console alone = keypress mode (Enter to print)"
        ),
    )

    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        metavar="PORT",
        help="Start the JSON API server on this port",
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use a fake radio with generated Tempo Disk broadcasts (no Bluetooth needed)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def resolve_config_path(config: Optional[Path]) -> Optional[Path]:
    """Pick the config file to load, None to run on defaults.

    An explicitly given path must exist; the default one is optional.
    """
    if config is not None:
        config_path = config.resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        return config_path

    if DEFAULT_CONFIG.exists():
        return DEFAULT_CONFIG.resolve()
    return None


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose, quiet=args.quiet)

    logger = logging.getLogger(__name__)

    try:
        config_path = resolve_config_path(args.config)
    except FileNotFoundError as e:
        logger.error("%s", e)
        logger.error("Copy config.example.yaml to config.yaml and edit it")
        return 1

    try:
        app = TempoDiskApp(
            config_path,
            console_interval=args.console,
            api_port=args.api_port,
            demo=args.demo,
        )
        asyncio.run(app.run())
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
