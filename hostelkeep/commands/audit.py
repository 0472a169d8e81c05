"""Merge-link audit command."""

from __future__ import annotations

import argparse

from hostelkeep.commands.common import CommandRuntime, build_service, load_config, print_json
from hostelkeep.repair import audit_merge_links, repair_merge_links


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    store = build_service(config, runtime=runtime).store

    if args.repair:
        summary = repair_merge_links(store)
        warnings = summary.warnings
        payload = summary.model_dump(mode="json")
    else:
        warnings = audit_merge_links(store)
        payload = {"warnings": [warning.model_dump(mode="json") for warning in warnings]}

    stats = getattr(store, "stats", None)
    if callable(stats):
        payload["stats"] = stats()

    if args.json:
        print_json(payload)
        return 0

    if "stats" in payload:
        print("Issues: total={total} duplicates={duplicates} closed={closed} primaries={primaries} merge_links={merge_links}".format(**payload["stats"]))
    if not warnings:
        print("Merge links: consistent")
        return 0

    print(f"Merge links: {len(warnings)} problem(s)")
    for warning in warnings:
        related = f" -> {warning.related_id}" if warning.related_id else ""
        print(f"- {warning.kind}: {warning.issue_id}{related} ({warning.detail})")
    if args.repair:
        print(f"Cleared merged_into on: {', '.join(payload['cleared_merged_into']) or 'none'}")
        print(f"Rebuilt merged_issues on: {', '.join(payload['rebuilt_primaries']) or 'none'}")
    return 0
