"""Issue import command."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from hostelkeep.commands.common import CommandRuntime, build_service, load_config, load_json_issues
from hostelkeep.errors import ValidationError

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    issues = load_json_issues(Path(args.input))
    config = load_config(args)
    store = build_service(config, runtime=runtime).store

    # Every id is checked before the first insert so a rejected import writes nothing.
    pending = []
    seen: set[str] = set()
    skipped = 0
    for issue in issues:
        if issue.id in seen or store.get_issue(issue.id) is not None:
            if not args.skip_existing:
                raise ValidationError(f"Issue {issue.id} already exists")
            skipped += 1
            continue
        seen.add(issue.id)
        pending.append(issue)

    for issue in pending:
        store.insert_issue(issue)

    logger.info("Ingest complete: inserted=%s skipped=%s", len(pending), skipped)
    print(f"Inserted {len(pending)} issue(s), skipped {skipped}")
    return 0
