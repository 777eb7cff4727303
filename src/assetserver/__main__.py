"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m assetserver ROOT [options]
    assetserver ROOT [options]          # console script

1. argparse reads CLI arguments
2. Environment defaults (ASSET_*, HTTP_*) fill in what the flags omit
3. ServeOptions + ServerConfig are built and validated
4. AssetServer runs until Ctrl+C

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from . import __version__
from .config import ServeOptions, ServerConfig
from .errors import ConfigurationError
from .server import AssetServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetserver",
        description="Serve a directory of static assets over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m assetserver ./public                        # Serve ./public on :8080
  python -m assetserver ./dist --port 3000 --gzip       # Pre-compressed .gz files
  python -m assetserver ./site --ext html --max-age 600 # /about → about.html
  python -m assetserver ./build --prefix /static --no-fallthrough
        """,
    )

    parser.add_argument("root", help="Directory to serve")

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--prefix", default=None, help="URL prefix to serve under, e.g. /static")
    parser.add_argument("--index", default=None, help="Directory index file (default: index.html)")
    parser.add_argument("--max-age", type=int, default=None, help="Cache-Control max-age in seconds")
    parser.add_argument("--immutable", action="store_true", default=None, help="Add 'immutable' to Cache-Control")
    parser.add_argument("--gzip", action="store_true", default=None, help="Serve pre-compressed .gz files")
    parser.add_argument("--brotli", action="store_true", default=None, help="Serve pre-compressed .br files")
    parser.add_argument(
        "--ext",
        action="append",
        default=None,
        metavar="EXT",
        help="Fallback extension, repeatable (--ext html --ext htm)",
    )
    parser.add_argument("--dotfiles", action="store_true", default=None, help="Serve files starting with '.'")
    parser.add_argument("--no-etag", dest="etag", action="store_false", default=None, help="Disable ETags")
    parser.add_argument(
        "--no-fallthrough",
        dest="fallthrough",
        action="store_false",
        default=None,
        help="Answer misses with 404 and other methods with 405",
    )
    parser.add_argument("--error-file", default=None, help="Document served with 404 on a miss")

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)",
    )

    parser.add_argument("--version", "-v", action="version", version=f"assetserver {__version__}")

    return parser


OPTION_FLAGS = {
    "prefix": "prefix",
    "index": "index",
    "max_age": "max_age",
    "immutable": "immutable",
    "gzip": "gzip",
    "brotli": "brotli",
    "ext": "extensions",
    "dotfiles": "dotfiles",
    "etag": "etag",
    "fallthrough": "fallthrough",
    "error_file": "error_file",
}

CONFIG_FLAGS = {
    "host": "host",
    "port": "port",
    "log_level": "log_level",
    "log_format": "log_format",
}


def _overrides(args: argparse.Namespace, flags: dict) -> dict:
    """Flags the user actually gave (argparse defaults are None)."""
    values = {}
    for flag, field_name in flags.items():
        value = getattr(args, flag)
        if value is not None:
            values[field_name] = tuple(value) if isinstance(value, list) else value
    return values


def load_settings(argv: Optional[List[str]] = None):
    """Parse ``argv`` into (root, ServeOptions, ServerConfig)."""
    args = build_parser().parse_args(argv)

    options = replace(ServeOptions.from_env(), **_overrides(args, OPTION_FLAGS))
    config = replace(ServerConfig.from_env(), **_overrides(args, CONFIG_FLAGS))
    return args.root, options, config


def main(argv: Optional[List[str]] = None) -> int:
    try:
        root, options, config = load_settings(argv)
        server = AssetServer(root, options, config)
    except ConfigurationError as e:
        print(f"assetserver: {e}", file=sys.stderr)
        return 2

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
