from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AuditEntryItem(BaseModel):
    id: int
    actor_id: int | None
    actor_name: str | None
    action: str
    resource_type: str | None
    resource_id: int | None
    detail: str | None
    ip: str | None
    user_agent: str | None
    created_at: datetime


class AuditEntryListResponse(BaseModel):
    rows: list[AuditEntryItem]
    page: int
    limit: int
    total: int
    total_pages: int


class AuditActionsResponse(BaseModel):
    actions: list[str]
