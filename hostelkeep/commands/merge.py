"""Manual merge and unmerge commands."""

from __future__ import annotations

import argparse

from hostelkeep.commands.common import CommandRuntime, actor_from_args, build_service, load_config


def run_merge(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    service = build_service(config, runtime=runtime)
    primary = service.merge(args.primary, args.duplicate, actor_from_args(args))
    print(f"Merged into {primary.id}: {', '.join(primary.merged_issues)}")
    return 0


def run_unmerge(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    service = build_service(config, runtime=runtime)
    issue = service.unmerge(args.issue, actor_from_args(args))
    print(f"Unmerged {issue.id}")
    return 0
