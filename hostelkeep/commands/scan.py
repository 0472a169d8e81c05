"""Duplicate scan command."""

from __future__ import annotations

import argparse
import logging

from hostelkeep.commands.common import CommandRuntime, build_service, load_config
from hostelkeep.reporting import write_report_bundle
from hostelkeep.storage.base import IssueFilter

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    service = build_service(config, runtime=runtime)
    report = service.duplicate_report()
    issues = service.store.find_issues(IssueFilter())
    write_report_bundle(report, args.output_dir, issues=issues)
    logger.info(
        "Scan complete: scanned=%s active=%s groups=%s",
        report.scanned_issues,
        report.active_issues,
        len(report.groups),
    )
    return 0
