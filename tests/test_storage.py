from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from hostelkeep.models import Issue, IssueCategory, IssueStatus, Location
from hostelkeep.storage import InMemoryIssueStore, IssueFilter, SQLiteIssueStore

BASE = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _issue(issue_id: str, *, offset_hours: int = 0, status: IssueStatus = IssueStatus.REPORTED, merged_into: str | None = None) -> Issue:
    return Issue(
        id=issue_id,
        title=f"Issue {issue_id}",
        description="Broken light in the corridor",
        category=IssueCategory.ELECTRICAL,
        status=status,
        location=Location(hostel="Girls Hostel C", block="D", room="12"),
        created_at=BASE + timedelta(hours=offset_hours),
        merged_into=merged_into,
    )


def _make_store(backend: str, tmp_path: Path):
    if backend == "sqlite":
        return SQLiteIssueStore(tmp_path / "store" / "hostelkeep.db")
    return InMemoryIssueStore()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path: Path):
    return _make_store(request.param, tmp_path)


def test_insert_and_get_round_trip(store) -> None:
    store.insert_issue(_issue("a"))

    loaded = store.get_issue("a")

    assert loaded.title == "Issue a"
    assert loaded.created_at == BASE
    assert loaded.location.room == "12"
    assert store.get_issue("missing") is None


def test_find_issues_filters_and_orders_oldest_first(store) -> None:
    store.insert_issue(_issue("late", offset_hours=5))
    store.insert_issue(_issue("early", offset_hours=1))
    store.insert_issue(_issue("done", offset_hours=2, status=IssueStatus.CLOSED))
    store.insert_issue(_issue("dup", offset_hours=3, merged_into="early"))

    everything = store.find_issues(IssueFilter())
    open_unmerged = store.find_issues(
        IssueFilter(exclude_merged=True, statuses=frozenset({IssueStatus.REPORTED}), exclude_ids=frozenset({"late"}))
    )

    assert [issue.id for issue in everything] == ["early", "done", "dup", "late"]
    assert [issue.id for issue in open_unmerged] == ["early"]
    assert store.find_issues(IssueFilter(statuses=frozenset())) == []


def test_list_issues_is_newest_first_and_hides_duplicates(store) -> None:
    store.insert_issue(_issue("a", offset_hours=1))
    store.insert_issue(_issue("b", offset_hours=2))
    store.insert_issue(_issue("c", offset_hours=3, merged_into="a"))

    assert [issue.id for issue in store.list_issues()] == ["b", "a"]
    assert [issue.id for issue in store.list_issues(include_merged=True)] == ["c", "b", "a"]


def test_add_merged_issues_is_a_set_union(store) -> None:
    store.insert_issue(_issue("p"))

    store.add_merged_issues("p", ["a", "b"])
    updated = store.add_merged_issues("p", ["b", "c"])

    assert updated.merged_issues == ["a", "b", "c"]
    assert store.find_issues(IssueFilter(lists_merged_issue="b"))[0].id == "p"
    assert store.add_merged_issues("missing", ["a"]) is None


def test_save_issue_never_rewrites_merged_issues(store) -> None:
    store.insert_issue(_issue("p"))
    stale = store.get_issue("p")
    store.add_merged_issues("p", ["a"])

    stale.title = "Renamed"
    saved = store.save_issue(stale)

    assert saved.title == "Renamed"
    assert saved.merged_issues == ["a"]
    assert saved.updated_at >= stale.updated_at


def test_remove_and_replace_merged_issues(store) -> None:
    store.insert_issue(_issue("p"))
    store.add_merged_issues("p", ["a", "b", "c"])

    assert store.remove_merged_issue("p", "b").merged_issues == ["a", "c"]
    assert store.replace_merged_issues("p", ["c", "d", "c"]).merged_issues == ["c", "d"]
    assert store.remove_merged_issue("missing", "a") is None
    assert store.replace_merged_issues("missing", []) is None


def test_delete_issue_clears_references(store) -> None:
    store.insert_issue(_issue("p"))
    store.insert_issue(_issue("a", merged_into="p"))
    store.insert_issue(_issue("q"))
    store.add_merged_issues("p", ["a"])
    store.add_merged_issues("q", ["p"])

    assert store.delete_issue("p") is True

    assert store.get_issue("p") is None
    assert store.get_issue("a").merged_into is None
    assert store.get_issue("q").merged_issues == []
    assert store.delete_issue("p") is False


def test_reads_are_isolated_copies(store) -> None:
    store.insert_issue(_issue("a"))

    first = store.get_issue("a")
    first.title = "Changed locally"

    assert store.get_issue("a").title == "Issue a"


def test_sqlite_store_persists_across_instances(tmp_path: Path) -> None:
    db_path = tmp_path / "hostelkeep.db"
    SQLiteIssueStore(db_path).insert_issue(_issue("p"))
    SQLiteIssueStore(db_path).add_merged_issues("p", ["a"])

    reopened = SQLiteIssueStore(db_path)

    assert reopened.get_issue("p").merged_issues == ["a"]
    assert reopened.stats() == {"total": 1, "duplicates": 0, "closed": 0, "merge_links": 1, "primaries": 1}


def test_memory_store_rejects_duplicate_ids() -> None:
    store = InMemoryIssueStore([_issue("a")])
    with pytest.raises(ValueError, match="already exists"):
        store.insert_issue(_issue("a"))


def test_find_issues_orders_by_instant_across_utc_offsets(store) -> None:
    india = timezone(timedelta(hours=5, minutes=30))
    older = Issue.model_validate({**_issue("older").model_dump(), "created_at": datetime(2026, 3, 1, 10, 0, tzinfo=india)})
    newer = Issue.model_validate({**_issue("newer").model_dump(), "created_at": datetime(2026, 3, 1, 5, 0, tzinfo=UTC)})
    store.insert_issue(newer)
    store.insert_issue(older)

    assert [issue.id for issue in store.find_issues(IssueFilter())] == ["older", "newer"]
    assert store.get_issue("older").created_at == datetime(2026, 3, 1, 4, 30, tzinfo=UTC)


def test_issue_timestamps_are_normalized_to_utc() -> None:
    india = timezone(timedelta(hours=5, minutes=30))
    issue = Issue.model_validate(
        {
            "title": "Fan noise",
            "category": "electrical",
            "location": {"hostel": "A", "block": "B", "room": "1"},
            "created_at": datetime(2026, 3, 1, 10, 0, tzinfo=india),
            "resolved_at": "2026-03-02T08:00:00",
        }
    )

    assert issue.created_at == datetime(2026, 3, 1, 4, 30, tzinfo=UTC)
    assert issue.created_at.utcoffset() == timedelta(0)
    assert issue.resolved_at == datetime(2026, 3, 2, 8, 0, tzinfo=UTC)


def test_sqlite_concurrent_appends_keep_every_duplicate(tmp_path: Path) -> None:
    store = SQLiteIssueStore(tmp_path / "hostelkeep.db")
    store.insert_issue(_issue("p"))
    duplicate_ids = [f"d{index}" for index in range(20)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda duplicate_id: store.add_merged_issues("p", [duplicate_id]), duplicate_ids))

    assert sorted(store.get_issue("p").merged_issues) == sorted(duplicate_ids)
    assert store.stats()["merge_links"] == 20
