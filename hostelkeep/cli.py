"""Command line entrypoint for HostelKeep."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable

from hostelkeep.commands import audit, ingest, merge, scan, serve, similar
from hostelkeep.commands.common import normalize_command
from hostelkeep.commands.parser import build_parser
from hostelkeep.errors import HostelKeepError
from hostelkeep.logging_utils import configure_logging
from hostelkeep.services.command_runtime import CommandRuntime

logger = logging.getLogger(__name__)

CommandHandler = Callable[..., int]

COMMAND_HANDLERS: dict[str, CommandHandler] = {
    "ingest": ingest.run,
    "scan": scan.run,
    "similar": similar.run,
    "merge": merge.run_merge,
    "unmerge": merge.run_unmerge,
    "audit": audit.run,
    "serve": serve.run,
}


def _dispatch(args: argparse.Namespace, runtime: CommandRuntime) -> int:
    handler = COMMAND_HANDLERS.get(normalize_command(args.command))
    if handler is None:
        return 1
    return handler(args, runtime=runtime)


def main(argv: list[str] | None = None, runtime: CommandRuntime | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return _dispatch(args, runtime or CommandRuntime())
    except HostelKeepError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc.message}", file=sys.stderr)
        return 2
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
