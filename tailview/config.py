"""Viewer configuration, from command-line arguments and the environment"""

import argparse
import dataclasses
import os
import sys
from typing import Any, Mapping

from tailview.api import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

VERSION = "0.1.0"

ENV_BASE_URL = "TAILSTREAM_BASE_URL"
ENV_TOKEN = "TAILSTREAM_TOKEN"
ENV_STREAM_ID = "TAILSTREAM_STREAM_ID"
ENV_INSECURE_TLS = "TAILSTREAM_INSECURE_TLS"


class ConfigError(ValueError):
    """Raised when a required setting is missing or invalid"""


# Options whose values may start with a dash, like "-1h"
TIME_OPTIONS = ("--from", "--to")


def attach_time_values(argv: list[str]) -> list[str]:
    """Join "--from -1h" into "--from=-1h" so the value is not read as an option"""
    result: list[str] = []
    args = iter(argv)
    for arg in args:
        if arg == "--":
            result.append(arg)
            result.extend(args)
            break
        if arg in TIME_OPTIONS:
            value = next(args, None)
            if value is None:
                result.append(arg)
            elif value.startswith("-") and not value.startswith("--"):
                result.append(f"{arg}={value}")
            else:
                result.extend([arg, value])
            continue
        result.append(arg)
    return result


class ViewerArgumentParser(argparse.ArgumentParser):
    """Argument parser that accepts relative times as option values"""

    def parse_known_args(self, args=None, namespace=None):
        if args is None:
            args = sys.argv[1:]
        return super().parse_known_args(attach_time_values(list(args)), namespace)


@dataclasses.dataclass(frozen=True)
class ViewerConfig:  # pylint: disable=too-many-instance-attributes
    """Everything needed to connect to a stream and start the viewer"""

    token: str
    stream_id: str
    base_url: str = DEFAULT_BASE_URL
    start: str = ""
    end: str = ""
    per_page: int = 200
    sort: str = "desc"
    timeout: float = DEFAULT_TIMEOUT
    levels: tuple[str, ...] = ()
    methods: tuple[str, ...] = ()
    color: bool = True
    insecure: bool = False
    verbose: bool = False

    @classmethod
    def from_args(
        cls, args: argparse.Namespace, environ: Mapping[str, str] | None = None
    ) -> "ViewerConfig":
        """Build the configuration; flags take precedence over the environment"""
        if environ is None:
            environ = os.environ

        token = (args.token or environ.get(ENV_TOKEN, "")).strip()
        if not token:
            raise ConfigError(f"No API token given. Use --token or set {ENV_TOKEN}")
        stream_id = (args.stream_id or environ.get(ENV_STREAM_ID, "")).strip()
        if not stream_id:
            raise ConfigError(
                f"No stream ID given. Use --stream-id or set {ENV_STREAM_ID}"
            )
        if args.per_page < 0:
            raise ConfigError("--per-page must not be negative")
        if args.timeout <= 0:
            raise ConfigError("--timeout must be positive")

        return cls(
            token=token,
            stream_id=stream_id,
            base_url=args.base_url or environ.get(ENV_BASE_URL) or DEFAULT_BASE_URL,
            start=args.start or "",
            end=args.end or "",
            per_page=args.per_page,
            sort=args.sort,
            timeout=args.timeout,
            levels=tuple(args.level or ()),
            methods=tuple(args.method or ()),
            color=not args.no_color,
            insecure=args.insecure or environ.get(ENV_INSECURE_TLS) == "true",
            verbose=args.verbose,
        )

    @property
    def filters(self) -> list[dict[str, Any]]:
        """Server-side filters for the level and method options"""
        return [
            {"field": field, "operator": "=", "value": value}
            for field, values in (("level", self.levels), ("method", self.methods))
            for value in values
        ]


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser"""
    parser = ViewerArgumentParser(
        prog="tailview",
        description="Tailstream log viewer - browse, search and filter logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
    Examples:
      %(prog)s --stream-id my-stream
      %(prog)s --stream-id my-stream --from -1h
      %(prog)s --stream-id my-stream --from "2025-01-01 08:00" --to now --level ERROR

    Environment:
      {ENV_BASE_URL}, {ENV_TOKEN}, {ENV_STREAM_ID}, {ENV_INSECURE_TLS}

    Keys:
      j/k or arrows: navigate, Space/Enter: expand, /: search, f: date filter,
      Esc: clear search, d/u: page down/up, g/G: first/last, q: quit
    """,
    )
    parser.add_argument("--base-url", help=f"API host (default {DEFAULT_BASE_URL})")
    parser.add_argument("--token", help="API token for the Authorization header")
    parser.add_argument("--stream-id", help="ID of the stream to view")
    parser.add_argument(
        "--from",
        dest="start",
        help="Start date/time (RFC3339, YYYY-MM-DD, or relative like -1h)",
    )
    parser.add_argument(
        "--to",
        dest="end",
        help="End date/time (RFC3339, YYYY-MM-DD, or relative like -5m)",
    )
    parser.add_argument(
        "--per-page", type=int, default=200, help="Number of results per page"
    )
    parser.add_argument(
        "--sort", choices=["asc", "desc"], default="desc", help="Sort direction"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="HTTP request timeout in seconds",
    )
    parser.add_argument(
        "--level",
        action="append",
        help="Log level filter (repeatable, e.g. ERROR, WARN, INFO)",
    )
    parser.add_argument(
        "--method",
        action="append",
        help="HTTP method filter (repeatable, e.g. GET, POST)",
    )
    parser.add_argument(
        "--no-color", action="store_true", help="Disable ANSI color output"
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification (for local testing)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug messages"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser
