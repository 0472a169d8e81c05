"""Shared helpers for CLI command modules."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from hostelkeep.config import HostelKeepConfig, load_effective_config
from hostelkeep.models import Actor, Issue, UserRole
from hostelkeep.service import IssueService
from hostelkeep.services.command_runtime import CommandRuntime

logger = logging.getLogger(__name__)

ALIAS_TO_CANONICAL = {
    "import": "ingest",
    "duplicates": "scan",
    "serve-api": "serve",
}


def normalize_command(name: str) -> str:
    return ALIAS_TO_CANONICAL.get(name, name)


def load_json_issues(path: Path) -> list[Issue]:
    raw = json.loads(path.read_text())
    if not isinstance(raw, list):
        raise ValueError("Input must be a JSON array of issues")
    return [Issue.model_validate(item) for item in raw]


def load_yaml_dict(path: str | None) -> dict | None:
    if not path:
        return None
    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"YAML at {path} must decode to a mapping")
    return data


def load_config(args: argparse.Namespace) -> HostelKeepConfig:
    return load_effective_config(
        project_path=args.project_path,
        org_defaults=load_yaml_dict(args.org_config),
        system_defaults=load_yaml_dict(args.system_config),
        runtime_override=load_yaml_dict(args.runtime_override),
    )


def build_service(config: HostelKeepConfig, *, runtime: CommandRuntime) -> IssueService:
    store = runtime.store_factory(config)
    if config.storage.backend == "memory":
        logger.warning("storage.backend=memory does not persist between CLI invocations")
    return IssueService(store, notifier=runtime.notifier_factory(), config=config)


def actor_from_args(args: argparse.Namespace) -> Actor:
    return Actor(id=args.actor_id, name=args.actor_name, role=UserRole(args.actor_role))


def print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def add_common_config_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--project-path", default=".", help="Project root holding .hostelkeep.yaml")
    cmd.add_argument("--org-config", help="Optional org defaults YAML")
    cmd.add_argument("--system-config", help="Optional system defaults YAML")
    cmd.add_argument("--runtime-override", help="Optional runtime override YAML")


def add_actor_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--actor-id", default="cli", help="Id recorded as the acting user")
    cmd.add_argument("--actor-name", default="", help="Display name of the acting user")
    cmd.add_argument(
        "--actor-role",
        choices=[role.value for role in UserRole],
        default=UserRole.MANAGEMENT.value,
        help="Role of the acting user; merge and unmerge need a staff role",
    )
