import json
from pathlib import Path

from hostelkeep import cli
from hostelkeep.config import HostelKeepConfig
from hostelkeep.services.command_runtime import CommandRuntime, build_store
from hostelkeep.storage import InMemoryIssueStore, SQLiteIssueStore


def _project(tmp_path: Path) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    db_path = tmp_path / "data" / "hostelkeep.db"
    (project / ".hostelkeep.yaml").write_text(f"storage:\n  sqlite_path: {db_path}\n")
    return project


def _issue_payload(issue_id: str, title: str, created_at: str, category: str = "plumbing") -> dict:
    return {
        "id": issue_id,
        "title": title,
        "description": "Water keeps dripping from the tap all night",
        "category": category,
        "status": "reported",
        "location": {"hostel": "Boys Hostel A", "block": "B", "room": "204"},
        "created_at": created_at,
        "updated_at": created_at,
    }


def _ingest(tmp_path: Path, project: Path) -> None:
    input_path = tmp_path / "issues.json"
    input_path.write_text(
        json.dumps(
            [
                _issue_payload("a", "Leaking tap in room 204", "2026-03-01T09:00:00Z"),
                _issue_payload("b", "Tap leaking in room 204", "2026-03-01T11:00:00Z"),
                _issue_payload("c", "Router offline", "2026-03-02T09:00:00Z", category="internet"),
            ]
        )
    )
    assert cli.main(["ingest", "--input", str(input_path), "--project-path", str(project)]) == 0


def test_cli_parser_supports_command_aliases() -> None:
    parser = cli.build_parser()

    assert parser.parse_args(["import", "--input", "x.json"]).command == "import"
    assert parser.parse_args(["merge", "--primary", "a", "--duplicate", "b", "--duplicate", "c"]).duplicate == ["b", "c"]
    assert parser.parse_args(["serve", "--project-path", "."]).command == "serve"


def test_ingest_skips_existing_issues(tmp_path: Path, capsys) -> None:
    project = _project(tmp_path)
    _ingest(tmp_path, project)
    _ingest(tmp_path, project)

    out = capsys.readouterr().out
    assert "Inserted 3 issue(s), skipped 0" in out
    assert "Inserted 0 issue(s), skipped 3" in out



def test_strict_ingest_rejects_conflicts_before_writing(tmp_path: Path, capsys) -> None:
    project = _project(tmp_path)
    _ingest(tmp_path, project)
    input_path = tmp_path / "more.json"
    input_path.write_text(
        json.dumps(
            [
                _issue_payload("e", "Door lock jammed", "2026-03-03T09:00:00Z", category="furniture"),
                _issue_payload("a", "Leaking tap in room 204", "2026-03-01T09:00:00Z"),
            ]
        )
    )
    capsys.readouterr()

    exit_code = cli.main(["ingest", "--input", str(input_path), "--no-skip-existing", "--project-path", str(project)])

    assert exit_code == 2
    assert "error: Issue a already exists" in capsys.readouterr().err
    store = SQLiteIssueStore(tmp_path / "data" / "hostelkeep.db")
    assert store.get_issue("e") is None


def test_scan_command_writes_reports(tmp_path: Path) -> None:
    project = _project(tmp_path)
    out_dir = tmp_path / "out"
    _ingest(tmp_path, project)

    exit_code = cli.main(["scan", "--output-dir", str(out_dir), "--project-path", str(project)])

    assert exit_code == 0
    report = json.loads((out_dir / "duplicates.json").read_text())
    assert report["scanned_issues"] == 3
    assert {group["issue_id"] for group in report["groups"]} == {"a", "b"}
    assert "# HostelKeep Duplicate Report" in (out_dir / "duplicates.md").read_text()


def test_similar_merge_unmerge_and_audit(tmp_path: Path, capsys) -> None:
    project = _project(tmp_path)
    _ingest(tmp_path, project)
    capsys.readouterr()

    assert cli.main(["similar", "--issue", "a", "--json", "--project-path", str(project)]) == 0
    similar = json.loads(capsys.readouterr().out)
    assert [item["issue"]["id"] for item in similar] == ["b"]

    assert cli.main(["merge", "--primary", "a", "--duplicate", "b", "--project-path", str(project)]) == 0
    assert "Merged into a: b" in capsys.readouterr().out

    assert cli.main(["audit", "--json", "--project-path", str(project)]) == 0
    audit = json.loads(capsys.readouterr().out)
    assert audit["warnings"] == []
    assert audit["stats"]["merge_links"] == 1

    assert cli.main(["unmerge", "--issue", "b", "--project-path", str(project)]) == 0
    assert "Unmerged b" in capsys.readouterr().out


def test_audit_repair_fixes_orphans(tmp_path: Path, capsys) -> None:
    project = _project(tmp_path)
    input_path = tmp_path / "issues.json"
    orphan = _issue_payload("d", "Leaking tap", "2026-03-01T09:00:00Z")
    orphan["merged_into"] = "ghost"
    input_path.write_text(json.dumps([orphan]))
    assert cli.main(["ingest", "--input", str(input_path), "--project-path", str(project)]) == 0
    capsys.readouterr()

    assert cli.main(["audit", "--repair", "--json", "--project-path", str(project)]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["cleared_merged_into"] == ["d"]
    assert summary["warnings"][0]["kind"] == "missing_primary"


def test_errors_exit_nonzero_with_message(tmp_path: Path, capsys) -> None:
    project = _project(tmp_path)
    _ingest(tmp_path, project)
    capsys.readouterr()

    exit_code = cli.main(
        ["merge", "--primary", "a", "--duplicate", "b", "--actor-role", "student", "--project-path", str(project)]
    )

    assert exit_code == 2
    assert "error: Only staff can merge issues" in capsys.readouterr().err
    assert cli.main(["unmerge", "--issue", "a", "--project-path", str(project)]) == 2


def test_runtime_store_factory_is_used(tmp_path: Path, capsys) -> None:
    store = InMemoryIssueStore()
    runtime = CommandRuntime(store_factory=lambda config: store)
    input_path = tmp_path / "issues.json"
    input_path.write_text(json.dumps([_issue_payload("a", "Leaking tap", "2026-03-01T09:00:00Z")]))

    assert cli.main(["ingest", "--input", str(input_path), "--project-path", str(tmp_path)], runtime=runtime) == 0
    assert store.get_issue("a") is not None


def test_build_store_selects_backend(tmp_path: Path) -> None:
    sqlite_config = HostelKeepConfig.model_validate({"storage": {"sqlite_path": str(tmp_path / "x.db")}})
    memory_config = HostelKeepConfig.model_validate({"storage": {"backend": "memory"}})

    assert isinstance(build_store(sqlite_config), SQLiteIssueStore)
    assert isinstance(build_store(memory_config), InMemoryIssueStore)
