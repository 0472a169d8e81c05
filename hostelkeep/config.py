"""Configuration models and loading for HostelKeep."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from hostelkeep.models import IssueStatus, Location, UserRole


class TimeTier(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_days: float
    score: float = Field(ge=0.0, le=1.0)


class SimilarityConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    report_threshold: float = Field(default=0.70, ge=0.0, le=1.0)
    weight_title: float = 0.30
    weight_description: float = 0.25
    weight_category: float = 0.15
    weight_location: float = 0.20
    weight_time: float = 0.10
    location_hostel: float = 0.4
    location_block: float = 0.3
    location_room: float = 0.3
    time_tiers: list[TimeTier] = Field(
        default_factory=lambda: [
            TimeTier(max_days=1, score=1.0),
            TimeTier(max_days=3, score=0.7),
            TimeTier(max_days=7, score=0.4),
        ]
    )
    time_floor: float = 0.1
    reason_title_min: float = 0.7
    reason_description_min: float = 0.6
    reason_location_min: float = 0.5
    reason_time_min: float = 0.5

    @model_validator(mode="after")
    def _check_weights(self) -> SimilarityConfig:
        total = self.weight_title + self.weight_description + self.weight_category + self.weight_location + self.weight_time
        if total > 1.0 + 1e-9:
            raise ValueError(f"similarity weights must sum to at most 1.0 (got {total:.3f})")
        location_total = self.location_hostel + self.location_block + self.location_room
        if location_total > 1.0 + 1e-9:
            raise ValueError(f"location sub-weights must sum to at most 1.0 (got {location_total:.3f})")
        return self


class MergeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    auto_merge_enabled: bool = True
    auto_merge_threshold: float = Field(default=0.80, ge=0.0, le=1.0)
    staff_roles: list[UserRole] = Field(default_factory=lambda: [UserRole.MANAGEMENT, UserRole.WARDEN])
    open_statuses: list[IssueStatus] = Field(
        default_factory=lambda: [IssueStatus.REPORTED, IssueStatus.ASSIGNED, IssueStatus.IN_PROGRESS]
    )


class IssueDefaultsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_location: Location = Field(default_factory=lambda: Location(hostel="Boys Hostel A", block="B", room="Unknown"))


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    backend: str = "sqlite"
    sqlite_path: str = ".hostelkeep/hostelkeep.db"


class HostelKeepConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    issues: IssueDefaultsConfig = Field(default_factory=IssueDefaultsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @model_validator(mode="after")
    def _check_thresholds(self) -> HostelKeepConfig:
        if self.merge.auto_merge_threshold < self.similarity.report_threshold:
            raise ValueError(
                "merge.auto_merge_threshold must be >= similarity.report_threshold "
                f"({self.merge.auto_merge_threshold} < {self.similarity.report_threshold})"
            )
        return self


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text())
    return data or {}


def load_effective_config(
    project_path: str | Path,
    org_defaults: dict[str, Any] | None = None,
    system_defaults: dict[str, Any] | None = None,
    runtime_override: dict[str, Any] | None = None,
) -> HostelKeepConfig:
    """Load config with precedence runtime > project .hostelkeep.yaml > org > system."""
    project = Path(project_path)
    project_config = _load_yaml(project / ".hostelkeep.yaml")

    merged: dict[str, Any] = {}
    if system_defaults:
        merged = _deep_merge(merged, system_defaults)
    if org_defaults:
        merged = _deep_merge(merged, org_defaults)
    if project_config:
        merged = _deep_merge(merged, project_config)
    if runtime_override:
        merged = _deep_merge(merged, runtime_override)

    return HostelKeepConfig.model_validate(merged)
