import json
from datetime import UTC, datetime
from pathlib import Path

from hostelkeep.models import DuplicateGroup, DuplicateReport, Issue, IssueCategory, Location, SimilarityResult
from hostelkeep.reporting import render_markdown_report, write_report_bundle


def _issue(issue_id: str, title: str) -> Issue:
    return Issue(
        id=issue_id,
        title=title,
        category=IssueCategory.PLUMBING,
        location=Location(hostel="Boys Hostel A", block="B", room="204"),
    )


def _report() -> tuple[DuplicateReport, list[Issue]]:
    a = _issue("a", "Leaking tap in room 204")
    b = _issue("b", "Tap leaking in room 204")
    report = DuplicateReport(
        generated_at=datetime(2026, 3, 1, tzinfo=UTC),
        scanned_issues=3,
        active_issues=2,
        groups=[
            DuplicateGroup(issue_id="a", matches=[SimilarityResult(issue=b, score=0.91234, match_reasons=["Same category: plumbing"])]),
        ],
    )
    return report, [a, b]


def test_markdown_report_lists_groups_and_reasons() -> None:
    report, issues = _report()

    text = render_markdown_report(report, issues=issues)

    assert text.startswith("# HostelKeep Duplicate Report")
    assert "- Scanned issues: 3" in text
    assert "- By category: plumbing=1" in text
    assert '## a "Leaking tap in room 204"' in text
    assert '- b "Tap leaking in room 204": score=0.912 (Same category: plumbing)' in text


def test_markdown_report_handles_empty_scan() -> None:
    report = DuplicateReport(scanned_issues=0, active_issues=0, groups=[])
    assert "_No possible duplicates found._" in render_markdown_report(report)


def test_write_report_bundle(tmp_path: Path) -> None:
    report, issues = _report()
    out = tmp_path / "out"

    write_report_bundle(report, out, issues=issues)

    assert (out / "duplicates.md").exists()
    payload = json.loads((out / "duplicates.json").read_text())
    assert payload["groups"][0]["issue_id"] == "a"
    pairs = json.loads((out / "duplicate_pairs.json").read_text())
    assert pairs == {"a": [{"issue_id": "b", "score": 0.9123}]}
