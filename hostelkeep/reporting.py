"""Report generation utilities for duplicate scans."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path

from hostelkeep.models import DuplicateReport, Issue


def _display_issue(issue: Issue) -> str:
    title = issue.title.strip()
    if not title:
        return issue.id
    return f'{issue.id} "{title}"'


def _location_label(issue: Issue) -> str:
    loc = issue.location
    return f"{loc.hostel}/{loc.block}/{loc.room}"


def render_markdown_report(report: DuplicateReport, issues: list[Issue] | None = None) -> str:
    by_id = {issue.id: issue for issue in issues or []}
    category_counts: Counter[str] = Counter()
    for group in report.groups:
        issue = by_id.get(group.issue_id)
        if issue is not None:
            category_counts[issue.category.value] += 1

    lines: list[str] = []
    lines.append("# HostelKeep Duplicate Report")
    lines.append("")
    lines.append(f"- Generated: {report.generated_at.isoformat()}")
    lines.append(f"- Scanned issues: {report.scanned_issues}")
    lines.append(f"- Active issues: {report.active_issues}")
    lines.append(f"- Issues with possible duplicates: {len(report.groups)}")
    if category_counts:
        summary = ", ".join(f"{category}={count}" for category, count in sorted(category_counts.items(), key=lambda item: (-item[1], item[0])))
        lines.append(f"- By category: {summary}")
    lines.append("")

    groups = sorted(report.groups, key=lambda group: (-max(match.score for match in group.matches), group.issue_id))
    for group in groups:
        issue = by_id.get(group.issue_id)
        heading = _display_issue(issue) if issue else group.issue_id
        lines.append(f"## {heading}")
        if issue is not None:
            lines.append(f"- Category: {issue.category.value} | Location: {_location_label(issue)} | Status: {issue.status.value}")
        for match in group.matches:
            reasons = "; ".join(match.match_reasons) if match.match_reasons else "no strong signal"
            lines.append(f"- {_display_issue(match.issue)}: score={match.score:.3f} ({reasons})")
        lines.append("")

    if not groups:
        lines.append("_No possible duplicates found._")

    return "\n".join(lines)


def write_report_bundle(report: DuplicateReport, output_dir: str | Path, issues: list[Issue] | None = None) -> None:
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    (out / "duplicates.json").write_text(report.model_dump_json(indent=2))

    pairs = {
        group.issue_id: [{"issue_id": match.issue.id, "score": round(match.score, 4)} for match in group.matches]
        for group in report.groups
    }
    (out / "duplicate_pairs.json").write_text(json.dumps(pairs, indent=2))
    (out / "duplicates.md").write_text(render_markdown_report(report, issues=issues))
