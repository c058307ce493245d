"""Buyer lead endpoints under /api/leads.

Handlers are plain functions so FastAPI runs the blocking database work in
its threadpool.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, File, Query, Request, UploadFile
from starlette.responses import Response

from api.base import success_response
from api.middleware import get_request_id
from core.csv_io import import_template
from core.validation import canonical_field_name

# Query parameters that are not listing filters.
_EXPORT_ONLY_PARAMS = {"fields"}


def _csv_download(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _pop_version(body: dict[str, Any]) -> Any:
    version = None
    for key in list(body):
        if canonical_field_name(key) == "updated_at":
            version = body.pop(key)
    return version


def create_leads_router(services: dict) -> APIRouter:
    router = APIRouter()

    lead_svc = services["lead"]
    importer = services["importer"]
    exporter = services["exporter"]

    def respond(request: Request, data: Any) -> dict:
        return success_response(data, request_id=get_request_id(request)).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Collection routes (registered before /leads/{lead_id})
    # -------------------------------------------------------------------------

    @router.get("/leads")
    def list_leads(request: Request):
        page = lead_svc.list_page(dict(request.query_params))
        data = page.model_dump(mode="json")
        data["total_pages"] = page.total_pages
        return respond(request, data)

    @router.post("/leads", status_code=201)
    def create_lead(request: Request, body: dict[str, Any] = Body(...)):
        lead = lead_svc.create(body)
        return respond(request, lead.model_dump(mode="json"))

    @router.get("/leads/stats")
    def lead_stats(request: Request, owner_id: UUID | None = Query(None)):
        return respond(request, lead_svc.stats(owner_id).model_dump(mode="json"))

    @router.get("/leads/export")
    def export_leads(request: Request, fields: str | None = Query(None)):
        criteria = {
            k: v for k, v in request.query_params.items() if k not in _EXPORT_ONLY_PARAMS
        }
        result = exporter.export(criteria, fields.split(",") if fields else None)
        return _csv_download(result.content, result.filename)

    @router.get("/leads/import/template")
    def download_template():
        return _csv_download(import_template(), "buyers_import_template.csv")

    @router.post("/leads/import")
    def import_leads(request: Request, file: UploadFile = File(...)):
        content = file.file.read()
        result = importer.import_csv(content, file.filename, file.content_type)
        return respond(request, result.model_dump(mode="json"))

    # -------------------------------------------------------------------------
    # Single lead routes
    # -------------------------------------------------------------------------

    @router.get("/leads/{lead_id}")
    def get_lead(request: Request, lead_id: UUID):
        return respond(request, lead_svc.get(lead_id).model_dump(mode="json"))

    @router.put("/leads/{lead_id}")
    def update_lead(request: Request, lead_id: UUID, body: dict[str, Any] = Body(...)):
        patch = dict(body)
        version = _pop_version(patch)
        lead = lead_svc.update(lead_id, patch, version)
        return respond(request, lead.model_dump(mode="json"))

    @router.delete("/leads/{lead_id}")
    def delete_lead(request: Request, lead_id: UUID, updated_at: str | None = Query(None)):
        lead_svc.delete(lead_id, updated_at)
        return respond(request, {"id": str(lead_id), "deleted": True})

    @router.get("/leads/{lead_id}/history")
    def lead_history(request: Request, lead_id: UUID, limit: int | None = Query(None, ge=1, le=50)):
        entries = lead_svc.history(lead_id, limit)
        return respond(request, [e.model_dump(mode="json") for e in entries])

    return router
