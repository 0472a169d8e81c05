"""Audit and repair of primary/duplicate merge links.

The duplicate side (``merged_into``) is treated as the source of truth. A
primary's ``merged_issues`` list is re-derivable from it, so repair clears
unusable ``merged_into`` pointers first and then rebuilds every primary list.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from hostelkeep.models import ConsistencyWarning, Issue, RepairSummary
from hostelkeep.storage.base import IssueFilter, IssueStore

logger = logging.getLogger(__name__)


def _index(store: IssueStore) -> dict[str, Issue]:
    return {issue.id: issue for issue in store.find_issues(IssueFilter())}


def audit_merge_links(store: IssueStore) -> list[ConsistencyWarning]:
    issues = _index(store)
    warnings: list[ConsistencyWarning] = []
    listed_by: dict[str, list[str]] = defaultdict(list)

    for issue in issues.values():
        if issue.merged_into:
            primary = issues.get(issue.merged_into)
            if issue.merged_into == issue.id:
                warnings.append(ConsistencyWarning(kind="self_reference", issue_id=issue.id, related_id=issue.id, detail="issue is merged into itself"))
            elif primary is None:
                warnings.append(ConsistencyWarning(kind="missing_primary", issue_id=issue.id, related_id=issue.merged_into, detail="merged_into points at a missing issue"))
            else:
                if primary.merged_into:
                    warnings.append(ConsistencyWarning(kind="chained_merge", issue_id=issue.id, related_id=primary.id, detail="primary is itself merged into another issue"))
                if issue.id not in primary.merged_issues:
                    warnings.append(ConsistencyWarning(kind="missing_backlink", issue_id=issue.id, related_id=primary.id, detail="primary does not list this duplicate"))
            if issue.merged_issues:
                warnings.append(ConsistencyWarning(kind="duplicate_is_primary", issue_id=issue.id, detail="duplicate also has merged issues"))

        for duplicate_id in issue.merged_issues:
            listed_by[duplicate_id].append(issue.id)
            if duplicate_id == issue.id:
                warnings.append(ConsistencyWarning(kind="self_reference", issue_id=issue.id, related_id=issue.id, detail="issue lists itself as merged"))
                continue
            duplicate = issues.get(duplicate_id)
            if duplicate is None:
                warnings.append(ConsistencyWarning(kind="dangling_merged_issue", issue_id=issue.id, related_id=duplicate_id, detail="merged_issues lists a missing issue"))
            elif duplicate.merged_into != issue.id:
                warnings.append(ConsistencyWarning(kind="stale_merged_issue", issue_id=issue.id, related_id=duplicate_id, detail="listed duplicate points elsewhere"))

    for duplicate_id, primaries in sorted(listed_by.items()):
        if len(primaries) > 1:
            warnings.append(
                ConsistencyWarning(
                    kind="listed_by_multiple_primaries",
                    issue_id=duplicate_id,
                    detail="listed by " + ", ".join(sorted(primaries)),
                )
            )

    if warnings:
        logger.warning("Merge link audit found %s problem(s)", len(warnings))
    return warnings


def repair_merge_links(store: IssueStore) -> RepairSummary:
    summary = RepairSummary(warnings=audit_merge_links(store))
    if not summary.warnings:
        return summary

    issues = _index(store)
    for issue in issues.values():
        target_id = issue.merged_into
        if not target_id:
            continue
        target = issues.get(target_id)
        if target_id == issue.id or target is None or target.merged_into:
            issue.merged_into = None
            store.save_issue(issue)
            summary.cleared_merged_into.append(issue.id)
            logger.info("Cleared merged_into=%s on %s", target_id, issue.id)

    issues = _index(store)
    expected: dict[str, list[str]] = defaultdict(list)
    for issue in issues.values():
        if issue.merged_into:
            expected[issue.merged_into].append(issue.id)

    for issue in issues.values():
        wanted = expected.get(issue.id, [])
        kept = [item for item in issue.merged_issues if item in wanted]
        rebuilt = list(dict.fromkeys([*kept, *wanted]))
        if rebuilt != issue.merged_issues:
            store.replace_merged_issues(issue.id, rebuilt)
            summary.rebuilt_primaries.append(issue.id)
            logger.info("Rebuilt merged_issues on %s: %s -> %s", issue.id, issue.merged_issues, rebuilt)

    return summary
