"""Primary/duplicate merge coordination across the issue store."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from hostelkeep.config import HostelKeepConfig
from hostelkeep.errors import NotFoundError, PermissionDeniedError, ValidationError
from hostelkeep.models import Actor, AutoMergeOutcome, ConsistencyWarning, Issue
from hostelkeep.notifier import EventName, EventNotifier
from hostelkeep.similarity import find_similar
from hostelkeep.storage.base import IssueFilter, IssueStore

logger = logging.getLogger(__name__)


class MergeCoordinator:
    """Validates and applies merges so that primary and duplicate links stay symmetric.

    Every check runs before the first write. The duplicate side
    (``merged_into``) is written first and is authoritative; the primary side
    is an atomic set-union append on the store.
    """

    def __init__(
        self,
        store: IssueStore,
        notifier: EventNotifier | None = None,
        config: HostelKeepConfig | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier or EventNotifier()
        self.config = config or HostelKeepConfig()

    def _require_staff(self, actor: Actor, message: str) -> None:
        if actor.role not in self.config.merge.staff_roles:
            raise PermissionDeniedError(message)

    def _open_pool(self, exclude_id: str) -> list[Issue]:
        return self.store.find_issues(
            IssueFilter(
                exclude_merged=True,
                statuses=frozenset(self.config.merge.open_statuses),
                exclude_ids=frozenset({exclude_id}),
            )
        )

    def _validate_merge(self, primary_id: str, duplicate_ids: list[str]) -> tuple[Issue, list[Issue]]:
        primary = self.store.get_issue(primary_id)
        if primary is None:
            raise NotFoundError("Primary issue not found")
        if primary.merged_into:
            raise ValidationError(f"Issue {primary.id} is merged into another issue and cannot be a primary")

        duplicates: list[Issue] = []
        for duplicate_id in duplicate_ids:
            duplicate = self.store.get_issue(duplicate_id)
            if duplicate is None:
                raise ValidationError("One or more duplicate issues not found")
            duplicates.append(duplicate)

        for duplicate in duplicates:
            if duplicate.merged_into or self.store.find_issues(IssueFilter(lists_merged_issue=duplicate.id)):
                raise ValidationError(f"Issue {duplicate.id} is already merged into another issue")
            if duplicate.id == primary.id:
                raise ValidationError("Cannot merge an issue into itself")
            if duplicate.merged_issues:
                raise ValidationError(f"Issue {duplicate.id} has merged issues and cannot be merged into another issue")

        return primary, duplicates

    def _apply_merge(self, primary: Issue, duplicates: list[Issue]) -> tuple[Issue, list[Issue]]:
        saved: list[Issue] = []
        for duplicate in duplicates:
            duplicate.merged_into = primary.id
            saved.append(self.store.save_issue(duplicate))

        updated = self.store.add_merged_issues(primary.id, [duplicate.id for duplicate in duplicates])
        if updated is None:
            # Primary vanished between validation and write; undo the duplicate side.
            for duplicate in saved:
                duplicate.merged_into = None
                self.store.save_issue(duplicate)
            raise NotFoundError("Primary issue not found")
        return updated, saved

    def merge(self, primary_id: str, duplicate_ids: Iterable[str], *, actor: Actor) -> Issue:
        requested = list(dict.fromkeys(duplicate_ids))
        if not requested:
            raise ValidationError("At least one duplicate issue id is required")
        self._require_staff(actor, "Only staff can merge issues")

        primary, duplicates = self._validate_merge(primary_id, requested)
        updated, _ = self._apply_merge(primary, duplicates)

        logger.info(
            "Merged %s issue(s) into %s by %s: %s",
            len(requested),
            primary_id,
            actor.id,
            ", ".join(requested),
        )
        self.notifier.publish(
            EventName.ISSUE_MERGED,
            {
                "primary_issue": updated.model_dump(mode="json"),
                "merged_issue_ids": requested,
                "actor_id": actor.id,
            },
        )
        return updated

    def unmerge(self, issue_id: str, *, actor: Actor) -> Issue:
        self._require_staff(actor, "Only staff can unmerge issues")
        issue = self.store.get_issue(issue_id)
        if issue is None:
            raise NotFoundError("Issue not found")
        if not issue.merged_into:
            raise ValidationError("Issue is not merged")

        previous_primary_id = issue.merged_into
        if self.store.remove_merged_issue(previous_primary_id, issue.id) is None:
            warning = ConsistencyWarning(
                kind="missing_primary",
                issue_id=issue.id,
                related_id=previous_primary_id,
                detail="primary no longer exists; skipped primary-side cleanup",
            )
            logger.warning("Consistency warning during unmerge: %s", warning.model_dump_json())

        issue.merged_into = None
        saved = self.store.save_issue(issue)

        logger.info("Unmerged %s from %s by %s", issue.id, previous_primary_id, actor.id)
        self.notifier.publish(
            EventName.ISSUE_UNMERGED,
            {
                "issue": saved.model_dump(mode="json"),
                "previous_primary_id": previous_primary_id,
                "actor_id": actor.id,
            },
        )
        return saved

    def try_auto_merge(
        self,
        new_issue: Issue,
        pool: Iterable[Issue] | None = None,
        *,
        actor: Actor,
    ) -> AutoMergeOutcome:
        if not self.config.merge.auto_merge_enabled:
            return AutoMergeOutcome(merged=False, new_issue=new_issue)

        candidates = list(pool) if pool is not None else self._open_pool(new_issue.id)
        matches = find_similar(new_issue, candidates, self.config.similarity)
        if not matches:
            return AutoMergeOutcome(merged=False, new_issue=new_issue)

        best = matches[0]
        if best.score < self.config.merge.auto_merge_threshold:
            logger.debug(
                "Best match %s for %s scored %.3f, below auto-merge threshold %.2f",
                best.issue.id,
                new_issue.id,
                best.score,
                self.config.merge.auto_merge_threshold,
            )
            return AutoMergeOutcome(merged=False, new_issue=new_issue)

        try:
            primary, duplicates = self._validate_merge(best.issue.id, [new_issue.id])
            updated, saved = self._apply_merge(primary, duplicates)
        except (NotFoundError, ValidationError) as exc:
            logger.warning("Skipped auto-merge of %s into %s: %s", new_issue.id, best.issue.id, exc.message)
            return AutoMergeOutcome(merged=False, new_issue=new_issue)

        merged_new = saved[0]
        logger.info(
            "Auto-merged %s into %s (score=%.3f, reported by %s)",
            merged_new.id,
            updated.id,
            best.score,
            actor.id,
        )
        self.notifier.publish(
            EventName.ISSUE_AUTO_MERGED,
            {
                "new_issue": merged_new.model_dump(mode="json"),
                "primary_issue": updated.model_dump(mode="json"),
                "score": best.score,
                "reasons": list(best.match_reasons),
            },
        )
        return AutoMergeOutcome(
            merged=True,
            new_issue=merged_new,
            primary=updated,
            score=best.score,
            reasons=list(best.match_reasons),
        )
