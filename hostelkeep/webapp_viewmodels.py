"""Request bodies and response shaping for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hostelkeep.models import Attachment, CreateIssueResult, DuplicateReport, IssueStatus, SimilarityResult


class StatusUpdateBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: IssueStatus


class AssignBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    staff_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    phone: str | None = None


class AdminRemarkBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    remark: str


class ResolutionProofBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proofs: list[Attachment]
    remark: str | None = None


class MergeBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    duplicate_ids: list[str]


def create_issue_payload(result: CreateIssueResult) -> dict[str, Any]:
    """Flatten a creation result: the returned issue plus auto-merge annotations."""
    payload = result.issue.model_dump(mode="json")
    if result.auto_merged:
        payload["auto_merged"] = True
        payload["merged_new_issue"] = result.merged_new_issue.model_dump(mode="json") if result.merged_new_issue else None
        payload["similarity_score"] = result.similarity_score
        payload["match_reasons"] = result.match_reasons
    return payload


def similar_payload(results: list[SimilarityResult]) -> list[dict[str, Any]]:
    return [
        {
            "issue": result.issue.model_dump(mode="json"),
            "similarity_score": result.score,
            "match_reasons": result.match_reasons,
        }
        for result in results
    ]


def duplicate_report_payload(report: DuplicateReport) -> dict[str, Any]:
    return {
        "generated_at": report.generated_at.isoformat(),
        "scanned_issues": report.scanned_issues,
        "active_issues": report.active_issues,
        "groups": [
            {
                "issue_id": group.issue_id,
                "matches": [
                    {"issue_id": match.issue.id, "title": match.issue.title, "score": round(match.score, 4), "reasons": match.match_reasons}
                    for match in group.matches
                ],
            }
            for group in report.groups
        ],
    }
