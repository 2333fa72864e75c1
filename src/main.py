# src/main.py — v2
"""CLI entry point: request and models commands.

Usage:
    anthropic-proxy request <file|-> [--init <file>]
    anthropic-proxy models
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from anthropic_proxy.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        _setup_logging(args.verbose)
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="anthropic-proxy",
        description=f"anthropic-proxy v{__version__}: Anthropic Messages API proxy",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- request ---
    p_request = subparsers.add_parser(
        "request", help="Handle one request envelope and print the response",
    )
    p_request.add_argument(
        "file", help="Path to the request envelope JSON ('-' reads stdin)",
    )
    p_request.add_argument(
        "--init", dest="init_file", type=Path, default=None,
        help="Initialization JSON (default: API key from the environment)",
    )
    p_request.set_defaults(func=_cmd_request)

    # --- models ---
    p_models = subparsers.add_parser("models", help="Print the model catalog")
    p_models.set_defaults(func=_cmd_models)

    return parser


async def _cmd_request(args: argparse.Namespace) -> int:
    """Initialize a router, handle one envelope, print the response."""
    from anthropic_proxy.config.settings import ConfigurationError
    from anthropic_proxy.core.models import ErrorResponseEnvelope
    from anthropic_proxy.proxy.router import RequestRouter

    if args.file == "-":
        payload = sys.stdin.read()
    else:
        path = Path(args.file)
        if not path.exists():
            logger.error("File not found: %s", path)
            return 1
        payload = path.read_text(encoding="utf-8")

    init_data = None
    if args.init_file is not None:
        if not args.init_file.exists():
            logger.error("Init file not found: %s", args.init_file)
            return 1
        init_data = args.init_file.read_text(encoding="utf-8")

    router = RequestRouter()
    try:
        router.initialize(init_data)
    except ConfigurationError as exc:
        # A request is still answered while Uninitialized (NotInitialized).
        logger.error("Initialization failed: %s", exc)

    try:
        response = await router.handle(payload)
    finally:
        await router.aclose()

    print(response.model_dump_json(indent=2))
    return 1 if isinstance(response, ErrorResponseEnvelope) else 0


async def _cmd_models(args: argparse.Namespace) -> int:
    """Print the static model catalog."""
    from anthropic_proxy.llm.catalog import DEFAULT_CATALOG

    models = [m.model_dump(mode="json") for m in DEFAULT_CATALOG.list()]
    print(json.dumps(models, indent=2))
    return 0


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage (stderr, so stdout stays JSON)."""
    from anthropic_proxy.config.settings import load_settings
    from anthropic_proxy.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        stream=sys.stderr,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
