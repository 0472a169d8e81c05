"""CLI parser construction."""

from __future__ import annotations

import argparse

from hostelkeep.commands.common import add_actor_flags, add_common_config_flags


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HostelKeep duplicate detection and merge tooling")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ERROR)")

    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", aliases=["import"], help="Load a JSON array of issues into the configured store")
    ingest.add_argument("--input", required=True, help="Path to input JSON array of issues")
    ingest.add_argument(
        "--skip-existing",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Skip issues whose id is already stored instead of failing",
    )
    add_common_config_flags(ingest)

    scan = sub.add_parser("scan", aliases=["duplicates"], help="Find possible duplicates across stored issues")
    scan.add_argument("--output-dir", default="./hostelkeep-out", help="Output directory")
    add_common_config_flags(scan)

    similar = sub.add_parser("similar", help="Show issues similar to one stored issue")
    similar.add_argument("--issue", required=True, help="Issue id")
    similar.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    add_common_config_flags(similar)
    add_actor_flags(similar)

    merge = sub.add_parser("merge", help="Merge duplicate issues into a primary issue")
    merge.add_argument("--primary", required=True, help="Primary issue id")
    merge.add_argument("--duplicate", required=True, action="append", help="Duplicate issue id (repeatable)")
    add_common_config_flags(merge)
    add_actor_flags(merge)

    unmerge = sub.add_parser("unmerge", help="Detach a duplicate issue from its primary")
    unmerge.add_argument("--issue", required=True, help="Duplicate issue id")
    add_common_config_flags(unmerge)
    add_actor_flags(unmerge)

    audit = sub.add_parser("audit", help="Check primary/duplicate links for drift")
    audit.add_argument("--repair", action="store_true", help="Rebuild merge links from the duplicate side")
    audit.add_argument("--json", action="store_true", help="Emit machine-readable JSON summary")
    add_common_config_flags(audit)

    serve = sub.add_parser("serve", aliases=["serve-api"], help="Run the issue HTTP API")
    serve.add_argument("--host", default="127.0.0.1", help="Bind host")
    serve.add_argument("--port", type=int, default=8765, help="Bind port")
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Enable uvicorn auto-reload (development only)",
    )
    add_common_config_flags(serve)

    return parser
