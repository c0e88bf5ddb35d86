from fastapi import APIRouter, Depends, Query

from app.cuadre.core.config import settings
from app.cuadre.core.deps import require_roles
from app.cuadre.core.security import ROLE_ADMIN
from app.cuadre.db.session import get_db
from app.cuadre.schemas.audit import AuditActionsResponse, AuditEntryItem, AuditEntryListResponse
from app.cuadre.schemas.errors import error_responses
from app.cuadre.services.audit import distinct_actions, list_audit_entries

router = APIRouter()


@router.get(
    "/cuadre/audit",
    response_model=AuditEntryListResponse,
    responses=error_responses(401, 403, 422),
)
def list_audit(
    actor_id: int | None = Query(None),
    resource_type: str | None = Query(None),
    action: str | None = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    _token=Depends(require_roles(ROLE_ADMIN)),
    db=Depends(get_db),
):
    page = max(1, page)
    limit = min(max(1, limit), settings.AUDIT_LIST_MAX_PAGE_SIZE)
    result = list_audit_entries(
        db,
        actor_id=actor_id,
        resource_type=resource_type,
        action=action,
        page=page,
        limit=limit,
    )
    rows = [
        AuditEntryItem(
            id=entry.id,
            actor_id=entry.actor_id,
            actor_name=actor_name,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            detail=entry.detail,
            ip=entry.ip,
            user_agent=entry.user_agent,
            created_at=entry.created_at,
        )
        for entry, actor_name in result.rows
    ]
    return AuditEntryListResponse(
        rows=rows,
        page=result.page,
        limit=result.limit,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get(
    "/cuadre/audit/actions",
    response_model=AuditActionsResponse,
    responses=error_responses(401, 403),
)
def list_audit_actions(
    _token=Depends(require_roles(ROLE_ADMIN)),
    db=Depends(get_db),
):
    return AuditActionsResponse(actions=distinct_actions(db))
