"""Similar-issue lookup command."""

from __future__ import annotations

import argparse

from hostelkeep.commands.common import CommandRuntime, actor_from_args, build_service, load_config, print_json


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    service = build_service(config, runtime=runtime)
    results = service.find_similar(args.issue, actor_from_args(args))

    if args.json:
        print_json([result.model_dump(mode="json") for result in results])
        return 0

    if not results:
        print(f"No similar issues for {args.issue}")
        return 0
    for result in results:
        reasons = "; ".join(result.match_reasons) or "no strong signal"
        print(f"{result.issue.id}\t{result.score:.3f}\t{result.issue.title}\t({reasons})")
    return 0
