#!/usr/bin/env python3
"""
Tailstream log viewer - an interactive terminal viewer for remote log streams
"""
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn

from tailview.api import ApiError, LogsClient
from tailview.config import ConfigError, ViewerConfig, build_parser
from tailview.terminal import TtyTerminal
from tailview.timespec import TimeSpecError
from tailview.views.app import App

LOG_FILE = Path(
    os.environ.get("TAILVIEW_LOG_FILE", Path(__file__).parent / "tailview.log")
)

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s[%(process)d]: %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.FileHandler(LOG_FILE, mode="a", encoding="utf-8"),
        ],
    )


def _fatal(message: str) -> NoReturn:
    logger.error("Fatal: %s", message)
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def main() -> None:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args()
    _configure_logging(args.verbose)

    try:
        config = ViewerConfig.from_args(args)
    except ConfigError as e:
        parser.error(str(e))

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        _fatal("the viewer needs an interactive terminal")

    try:
        client = LogsClient(
            config.base_url,
            config.token,
            config.stream_id,
            per_page=config.per_page,
            direction=config.sort,
            start=config.start,
            end=config.end,
            filters=config.filters,
            timeout=config.timeout,
            verify=not config.insecure,
        )
        print("Fetching logs...", file=sys.stderr)
        page = client.first_page()
    except (ApiError, TimeSpecError) as e:
        _fatal(str(e))

    if not page.entries:
        print("No logs matched your filters.")
        return

    terminal = TtyTerminal()
    with terminal.acquire():
        logger.info("Starting viewer")
        viewer = App(terminal, page, client.fetch, client.reload, config.color)
        try:
            viewer.run()
        except KeyboardInterrupt:
            logger.info("KeyboardInterrupt")
        except BaseException as e:
            logger.exception("An error occurred")
            raise e
        finally:
            logger.info("Exiting viewer")


if __name__ == "__main__":
    main()
