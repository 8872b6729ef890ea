"""GDPR HTTP endpoints — consent status, consent changes, export, account deletion.

The caller's user id arrives in the X-User-Id header, set by the
authentication layer in front of this router.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse, Response

from gdpr_engine.schemas.consent import ConsentRecordOut, ConsentUpdateRequest
from gdpr_engine.security.errors import GDPRError
from gdpr_engine.security.service import ConsentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gdpr", tags=["gdpr"])


def get_consent_service(request: Request) -> ConsentService:
    """FastAPI dependency — the service built during lifespan startup."""
    return request.app.state.consent_service


async def get_current_user_id(x_user_id: str = Header(alias="X-User-Id")) -> str:
    return x_user_id


@router.get("/status")
async def consent_status(
    user_id: str = Depends(get_current_user_id),
    service: ConsentService = Depends(get_consent_service),
) -> dict[str, bool]:
    """Current grant for every consent type."""
    status = await service.get_consent_status(user_id)
    return {consent_type.value: granted for consent_type, granted in status.items()}


@router.get("/history")
async def consent_history(
    user_id: str = Depends(get_current_user_id),
    service: ConsentService = Depends(get_consent_service),
) -> list[ConsentRecordOut]:
    return await service.get_consent_history(user_id)


@router.post("/consent")
async def update_consent(
    body: ConsentUpdateRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: ConsentService = Depends(get_consent_service),
) -> dict[str, str]:
    await service.record_consent(
        user_id,
        body.consent_type,
        body.is_granted,
        source_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return {"message": "Consent updated successfully"}


@router.post("/export")
async def export_data(
    user_id: str = Depends(get_current_user_id),
    service: ConsentService = Depends(get_consent_service),
) -> Response:
    """Download everything held about the caller as one JSON document."""
    bundle = await service.export_user_data(user_id)
    return Response(
        content=bundle.model_dump_json(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="sapphire_user_data.json"'},
    )


@router.delete("/account")
async def delete_account(
    user_id: str = Depends(get_current_user_id),
    service: ConsentService = Depends(get_consent_service),
) -> dict[str, str]:
    """Hard delete. The soft-delete path is internal only."""
    await service.delete_user_data(user_id, soft_delete=False)
    return {"message": "User account and all associated data have been permanently deleted."}


async def _gdpr_error_handler(request: Request, exc: GDPRError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    """Map the GDPR error taxonomy to HTTP responses."""
    app.add_exception_handler(GDPRError, _gdpr_error_handler)  # type: ignore[arg-type]
