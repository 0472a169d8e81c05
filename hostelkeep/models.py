"""Core Pydantic domain models for HostelKeep."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IssueCategory(str, Enum):
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    INTERNET = "internet"
    CLEANLINESS = "cleanliness"
    FURNITURE = "furniture"
    SECURITY = "security"
    OTHER = "other"


class IssuePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class IssueStatus(str, Enum):
    REPORTED = "reported"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


CLOSED_STATUSES = frozenset({IssueStatus.RESOLVED, IssueStatus.CLOSED})


class UserRole(str, Enum):
    STUDENT = "student"
    MAINTENANCE = "maintenance"
    MANAGEMENT = "management"
    WARDEN = "warden"


class AttachmentType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    PDF = "pdf"


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(UTC)


class Location(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hostel: str
    block: str
    room: str


class Actor(BaseModel):
    """The user performing an operation, passed explicitly to every write."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = ""
    email: str = ""
    role: UserRole = UserRole.STUDENT
    location: Location | None = None


class PersonRef(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    email: str = ""


class Assignee(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    phone: str | None = None


class Attachment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    type: AttachmentType
    url: str
    thumbnail: str | None = None
    uploaded_at: datetime | None = None


class AdminRemark(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str
    added_by: PersonRef
    added_at: datetime = Field(default_factory=_now)


class Issue(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=_new_id)
    title: str
    description: str = ""
    category: IssueCategory
    priority: IssuePriority = IssuePriority.MEDIUM
    status: IssueStatus = IssueStatus.REPORTED
    location: Location
    reported_by: PersonRef | None = None
    assigned_to: Assignee | None = None
    admin_remark: AdminRemark | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    resolution_proofs: list[Attachment] = Field(default_factory=list)
    resolution_remark: str | None = None
    resolved_by: PersonRef | None = None
    resolved_at: datetime | None = None
    merged_into: str | None = None
    merged_issues: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @field_validator("created_at", "updated_at", "resolved_at")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @property
    def is_duplicate(self) -> bool:
        return self.merged_into is not None

    @property
    def is_primary(self) -> bool:
        return len(self.merged_issues) > 0

    @property
    def is_open(self) -> bool:
        return self.status not in CLOSED_STATUSES


class IssueDraft(BaseModel):
    """Payload accepted by the reporting workflow."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: IssueCategory
    priority: IssuePriority
    location: Location | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class SimilarityBreakdown(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: float
    description: float
    category: float
    location: float
    time: float
    total: float


class SimilarityScore(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: float = Field(ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)
    breakdown: SimilarityBreakdown


class SimilarityResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    issue: Issue
    score: float
    match_reasons: list[str] = Field(default_factory=list)


class AutoMergeOutcome(BaseModel):
    model_config = ConfigDict(extra="forbid")

    merged: bool
    new_issue: Issue
    primary: Issue | None = None
    score: float | None = None
    reasons: list[str] = Field(default_factory=list)


class CreateIssueResult(BaseModel):
    """What the creation call hands back: the primary when auto-merged, else the new issue."""

    model_config = ConfigDict(extra="forbid")

    issue: Issue
    auto_merged: bool = False
    merged_new_issue: Issue | None = None
    similarity_score: float | None = None
    match_reasons: list[str] = Field(default_factory=list)


class ConsistencyWarning(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: str
    issue_id: str
    related_id: str | None = None
    detail: str = ""


class RepairSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    warnings: list[ConsistencyWarning] = Field(default_factory=list)
    cleared_merged_into: list[str] = Field(default_factory=list)
    rebuilt_primaries: list[str] = Field(default_factory=list)


class DuplicateGroup(BaseModel):
    model_config = ConfigDict(extra="forbid")

    issue_id: str
    matches: list[SimilarityResult]


class DuplicateReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    generated_at: datetime = Field(default_factory=_now)
    scanned_issues: int
    active_issues: int
    groups: list[DuplicateGroup]
