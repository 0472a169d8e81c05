"""Issue reporting workflow: CRUD plus the duplicate engine wired into creation."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from hostelkeep.config import HostelKeepConfig
from hostelkeep.errors import NotFoundError, PermissionDeniedError, ValidationError
from hostelkeep.merging import MergeCoordinator
from hostelkeep.models import (
    Actor,
    AdminRemark,
    Assignee,
    Attachment,
    CreateIssueResult,
    DuplicateGroup,
    DuplicateReport,
    Issue,
    IssueDraft,
    IssueStatus,
    PersonRef,
    SimilarityResult,
)
from hostelkeep.notifier import EventName, EventNotifier
from hostelkeep.similarity import find_duplicate_groups, find_similar
from hostelkeep.storage.base import IssueFilter, IssueStore

logger = logging.getLogger(__name__)


def _person(actor: Actor) -> PersonRef:
    return PersonRef(id=actor.id, name=actor.name, email=actor.email)


class IssueService:
    def __init__(
        self,
        store: IssueStore,
        notifier: EventNotifier | None = None,
        config: HostelKeepConfig | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier or EventNotifier()
        self.config = config or HostelKeepConfig()
        self.coordinator = MergeCoordinator(store, self.notifier, self.config)

    def require_staff(self, actor: Actor) -> None:
        if actor.role not in self.config.merge.staff_roles:
            raise PermissionDeniedError("Forbidden")

    def _load(self, issue_id: str) -> Issue:
        issue = self.store.get_issue(issue_id)
        if issue is None:
            raise NotFoundError("Issue not found")
        return issue

    def _publish(self, name: EventName, issue: Issue) -> None:
        self.notifier.publish(name, {"issue": issue.model_dump(mode="json")})

    def create_issue(self, draft: IssueDraft, actor: Actor) -> CreateIssueResult:
        location = draft.location or actor.location or self.config.issues.default_location
        issue = self.store.insert_issue(
            Issue(
                title=draft.title,
                description=draft.description,
                category=draft.category,
                priority=draft.priority,
                status=IssueStatus.REPORTED,
                location=location,
                reported_by=_person(actor),
                attachments=draft.attachments,
            )
        )
        logger.info("Issue %s reported by %s (%s)", issue.id, actor.id, issue.category.value)

        outcome = self.coordinator.try_auto_merge(issue, actor=actor)
        if outcome.merged and outcome.primary is not None:
            return CreateIssueResult(
                issue=outcome.primary,
                auto_merged=True,
                merged_new_issue=outcome.new_issue,
                similarity_score=outcome.score,
                match_reasons=outcome.reasons,
            )

        self._publish(EventName.ISSUE_CREATED, issue)
        return CreateIssueResult(issue=issue)

    def get_issue(self, issue_id: str) -> Issue:
        return self._load(issue_id)

    def list_issues(self, include_merged: bool = False) -> list[Issue]:
        return self.store.list_issues(include_merged=include_merged)

    def update_status(self, issue_id: str, status: IssueStatus, actor: Actor) -> Issue:
        issue = self._load(issue_id)
        if status == IssueStatus.RESOLVED:
            if not issue.resolution_proofs:
                raise ValidationError("Cannot mark issue as resolved without uploading at least one proof file")
            issue.resolved_at = datetime.now(UTC)
            if issue.resolved_by is None:
                issue.resolved_by = _person(actor)
        else:
            issue.resolved_at = None
            issue.resolved_by = None
        issue.status = status

        saved = self.store.save_issue(issue)
        self._publish(EventName.ISSUE_UPDATED, saved)
        return saved

    def assign_issue(self, issue_id: str, assignee: Assignee, actor: Actor) -> Issue:
        self.require_staff(actor)
        issue = self._load(issue_id)
        issue.assigned_to = assignee
        issue.status = IssueStatus.ASSIGNED

        saved = self.store.save_issue(issue)
        logger.info("Issue %s assigned to %s by %s", issue_id, assignee.id, actor.id)
        self._publish(EventName.ISSUE_UPDATED, saved)
        return saved

    def add_admin_remark(self, issue_id: str, remark: str, actor: Actor) -> Issue:
        self.require_staff(actor)
        content = remark.strip()
        if not content:
            raise ValidationError("Remark cannot be empty")
        issue = self._load(issue_id)
        issue.admin_remark = AdminRemark(content=content, added_by=_person(actor))
        return self.store.save_issue(issue)

    def set_resolution_proof(
        self,
        issue_id: str,
        proofs: list[Attachment],
        actor: Actor,
        remark: str | None = None,
    ) -> Issue:
        self.require_staff(actor)
        if not proofs:
            raise ValidationError("At least one proof file is required")
        issue = self._load(issue_id)
        uploaded_at = datetime.now(UTC)
        issue.resolution_proofs = [proof.model_copy(update={"uploaded_at": uploaded_at}) for proof in proofs]
        if remark and remark.strip():
            issue.resolution_remark = remark.strip()
        return self.store.save_issue(issue)

    def reopen_issue(self, issue_id: str, actor: Actor) -> Issue:
        issue = self._load(issue_id)
        if issue.status != IssueStatus.RESOLVED:
            raise ValidationError("Only resolved issues can be reopened")
        if issue.reported_by is None or issue.reported_by.id != actor.id:
            raise PermissionDeniedError("Only the student who reported this issue can reopen it")

        issue.status = IssueStatus.REPORTED
        issue.resolved_at = None
        issue.resolved_by = None
        saved = self.store.save_issue(issue)
        self._publish(EventName.ISSUE_REOPENED, saved)
        return saved

    def delete_issue(self, issue_id: str, actor: Actor) -> None:
        self.require_staff(actor)
        if not self.store.delete_issue(issue_id):
            raise NotFoundError("Issue not found")
        logger.info("Issue %s deleted by %s", issue_id, actor.id)
        self.notifier.publish(EventName.ISSUE_DELETED, {"issue_id": issue_id})

    def find_similar(self, issue_id: str, actor: Actor) -> list[SimilarityResult]:
        self.require_staff(actor)
        target = self._load(issue_id)
        pool = self.store.find_issues(IssueFilter())
        return find_similar(target, pool, self.config.similarity)

    def merge(self, primary_id: str, duplicate_ids: list[str], actor: Actor) -> Issue:
        return self.coordinator.merge(primary_id, duplicate_ids, actor=actor)

    def unmerge(self, issue_id: str, actor: Actor) -> Issue:
        return self.coordinator.unmerge(issue_id, actor=actor)

    def duplicate_report(self) -> DuplicateReport:
        issues = self.store.find_issues(IssueFilter())
        groups = find_duplicate_groups(issues, self.config.similarity)
        active = sum(1 for issue in issues if not issue.merged_into and issue.is_open)
        return DuplicateReport(
            scanned_issues=len(issues),
            active_issues=active,
            groups=[DuplicateGroup(issue_id=issue_id, matches=matches) for issue_id, matches in groups.items()],
        )
