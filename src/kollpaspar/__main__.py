"""Command line entry point: ``python -m kollpaspar``."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from aiohttp import web

from kollpaspar.config import TrackerConfig
from kollpaspar.exceptions import ConfigError
from kollpaspar.lines import LineCatalog
from kollpaspar.web import create_app

_logger = logging.getLogger("kollpaspar")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kollpaspar",
        description="Track Västtrafik vehicles and stream their movements as server-sent events.",
    )
    parser.add_argument("--address", help="address to listen on (default: $KOLLPASPAR_ADDRESS or :8080)")
    parser.add_argument("--static-dir", help="directory served at / (default: $KOLLPASPAR_STATIC_DIR)")
    parser.add_argument(
        "--lines-file",
        help="JSON line catalog; its designations replace the tracked line list and it is served at /lines",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging level (default: INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, str] = {}
    if args.address:
        overrides["address"] = args.address
    if args.static_dir:
        overrides["static_dir"] = args.static_dir

    try:
        config = TrackerConfig.from_env(**overrides)
        catalog = None
        if args.lines_file:
            catalog = LineCatalog.from_file(args.lines_file)
            config = dataclasses.replace(config, lines=catalog.designations)
        config.validate()
    except ConfigError as exc:
        _logger.critical("%s", exc)
        return 1

    app = create_app(config, catalog=catalog)
    _logger.info("Starting server address=%s", config.address)
    web.run_app(app, host=config.listen_host, port=config.listen_port, print=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
