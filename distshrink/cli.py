"""Shrink a finished static web build in place.

Renames CSS custom properties, classes, ids and component scope ids to
short names consistently across every HTML, CSS and JS file under ROOT,
folds static ``calc()`` and ``oklch()`` expressions, minifies stylesheets and
embedded GLSL shaders. A file is only rewritten when it gets smaller.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from distshrink.engine import optimize
from distshrink.errors import ConfigError
from distshrink.settings import Settings

logger = logging.getLogger("distshrink")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="distshrink", description=__doc__)
    parser.add_argument("root", help="Build output directory to optimize")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report savings without writing any file",
    )
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details")
    return parser


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.log_file)
    try:
        settings = Settings.load(args.config, dry_run=args.dry_run or None)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2
    try:
        result = optimize(args.root, settings)
    except NotADirectoryError as exc:
        logger.error("%s", exc)
        return 2
    for failure in result.failures:
        logger.error("%s: %s failed: %s", failure.path, failure.operation, failure.message)
    if settings.dry_run:
        logger.info("dry run: nothing was written")
    return 1 if result.failures else 0


if __name__ == "__main__":
    sys.exit(main())
