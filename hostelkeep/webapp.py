"""HTTP API over the issue workflow and duplicate engine."""

from __future__ import annotations

import logging
import os

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from hostelkeep.config import HostelKeepConfig, load_effective_config
from hostelkeep.errors import AuthenticationError, HostelKeepError, ValidationError
from hostelkeep.models import Actor, Assignee, IssueDraft, UserRole
from hostelkeep.notifier import EventNotifier
from hostelkeep.service import IssueService
from hostelkeep.services.command_runtime import build_store
from hostelkeep.storage.base import IssueStore
from hostelkeep.webapp_viewmodels import (
    AdminRemarkBody,
    AssignBody,
    MergeBody,
    ResolutionProofBody,
    StatusUpdateBody,
    create_issue_payload,
    duplicate_report_payload,
    similar_payload,
)

logger = logging.getLogger(__name__)

_REQUEST_SOURCES = {"body", "query", "path", "header"}


def _error_path(loc: tuple) -> str:
    parts = list(loc)
    if parts and parts[0] in _REQUEST_SOURCES:
        parts = parts[1:]
    return ".".join(str(part) for part in parts)


def _actor_from_headers(
    x_actor_id: str | None = Header(default=None),
    x_actor_name: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    if not x_actor_id:
        raise AuthenticationError("Unauthorized")
    try:
        role = UserRole(x_actor_role) if x_actor_role else UserRole.STUDENT
    except ValueError as exc:
        raise ValidationError(f"Unknown role: {x_actor_role}") from exc
    return Actor(id=x_actor_id, name=x_actor_name or "", role=role)


def create_app(
    config: HostelKeepConfig,
    store: IssueStore | None = None,
    notifier: EventNotifier | None = None,
) -> FastAPI:
    service = IssueService(store or build_store(config), notifier=notifier, config=config)
    app = FastAPI(title="HostelKeep API")
    app.state.service = service

    @app.exception_handler(HostelKeepError)
    async def handle_hostelkeep_error(request: Request, exc: HostelKeepError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request %s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse({"message": exc.message, "code": exc.code}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected body for %s %s: %s", request.method, request.url.path, exc.errors())
        details = [{"path": _error_path(error.get("loc", ())), "message": error.get("msg", "")} for error in exc.errors()]
        return JSONResponse(
            {"message": "Validation error", "code": "validation_error", "details": details},
            status_code=400,
        )

    @app.get("/api/issues", response_class=JSONResponse)
    def api_list_issues(include_merged: bool = False, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        issues = service.list_issues(include_merged=include_merged)
        return JSONResponse([issue.model_dump(mode="json") for issue in issues])

    @app.get("/api/issues/{issue_id}", response_class=JSONResponse)
    def api_get_issue(issue_id: str, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        return JSONResponse(service.get_issue(issue_id).model_dump(mode="json"))

    @app.post("/api/issues", response_class=JSONResponse)
    def api_create_issue(draft: IssueDraft, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        result = service.create_issue(draft, actor)
        return JSONResponse(create_issue_payload(result), status_code=201)

    @app.patch("/api/issues/{issue_id}/status", response_class=JSONResponse)
    def api_update_status(issue_id: str, body: StatusUpdateBody, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        return JSONResponse(service.update_status(issue_id, body.status, actor).model_dump(mode="json"))

    @app.patch("/api/issues/{issue_id}/assign", response_class=JSONResponse)
    def api_assign_issue(issue_id: str, body: AssignBody, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        assignee = Assignee(id=body.staff_id, name=body.name, phone=body.phone)
        return JSONResponse(service.assign_issue(issue_id, assignee, actor).model_dump(mode="json"))

    @app.patch("/api/issues/{issue_id}/admin-remark", response_class=JSONResponse)
    def api_admin_remark(issue_id: str, body: AdminRemarkBody, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        return JSONResponse(service.add_admin_remark(issue_id, body.remark, actor).model_dump(mode="json"))

    @app.patch("/api/issues/{issue_id}/resolution-proof", response_class=JSONResponse)
    def api_resolution_proof(issue_id: str, body: ResolutionProofBody, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        issue = service.set_resolution_proof(issue_id, body.proofs, actor, remark=body.remark)
        return JSONResponse(issue.model_dump(mode="json"))

    @app.delete("/api/issues/{issue_id}")
    def api_delete_issue(issue_id: str, actor: Actor = Depends(_actor_from_headers)) -> Response:
        service.delete_issue(issue_id, actor)
        return Response(status_code=204)

    @app.get("/api/issues/{issue_id}/similar", response_class=JSONResponse)
    def api_similar(issue_id: str, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        return JSONResponse(similar_payload(service.find_similar(issue_id, actor)))

    @app.post("/api/issues/{issue_id}/merge", response_class=JSONResponse)
    def api_merge(issue_id: str, body: MergeBody, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        return JSONResponse(service.merge(issue_id, body.duplicate_ids, actor).model_dump(mode="json"))

    @app.post("/api/issues/{issue_id}/unmerge", response_class=JSONResponse)
    def api_unmerge(issue_id: str, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        return JSONResponse(service.unmerge(issue_id, actor).model_dump(mode="json"))

    @app.post("/api/issues/{issue_id}/reopen", response_class=JSONResponse)
    def api_reopen(issue_id: str, actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        return JSONResponse(service.reopen_issue(issue_id, actor).model_dump(mode="json"))

    @app.get("/api/duplicates", response_class=JSONResponse)
    def api_duplicates(actor: Actor = Depends(_actor_from_headers)) -> JSONResponse:
        service.require_staff(actor)
        return JSONResponse(duplicate_report_payload(service.duplicate_report()))

    return app


def create_app_from_env() -> FastAPI:
    """Uvicorn factory entrypoint for --reload mode."""
    project_path = os.environ.get("HOSTELKEEP_PROJECT_PATH", ".")
    config = load_effective_config(project_path=project_path)
    return create_app(config)
