from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from fastapi import BackgroundTasks, Request
from sqlalchemy.orm import sessionmaker

from app.cuadre.core.metrics import metrics
from app.cuadre.db.models import AuditEntry
from app.cuadre.repos.audit import AuditRepository
from app.cuadre.services.diffing import FieldChange

logger = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 512


def resolve_client_ip(headers: Mapping[str, str], client_host: str | None) -> str | None:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if client_host and client_host.strip():
        return client_host.strip()
    return None


def _actor_id(value: Any) -> int | None:
    if value is None:
        return None
    text = str(value).strip()
    return int(text) if text.isdigit() else None


@dataclass(frozen=True)
class AuditActor:
    user_id: int | None = None
    ip: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> "AuditActor":
        client_host = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent")
        return cls(
            user_id=_actor_id(getattr(request.state, "user_id", None)),
            ip=resolve_client_ip(request.headers, client_host),
            user_agent=user_agent[:USER_AGENT_MAX_LENGTH] if user_agent else None,
        )


def creation_snapshot(data: Mapping[str, Any]) -> dict:
    return {"kind": "creation_snapshot", "data": dict(data)}


def change_set(fields: Mapping[str, Any], changes: Iterable[FieldChange]) -> dict:
    return {
        "kind": "change_set",
        "fields": dict(fields),
        "changes": [change.as_dict() for change in changes],
    }


def note(text: str) -> dict:
    return {"kind": "note", "text": text}


def serialize_detail(detail: Any) -> str | None:
    if detail is None:
        return None
    if isinstance(detail, str):
        return detail
    return json.dumps(detail, ensure_ascii=False, default=str)


class AuditRecorder:
    """Best-effort audit logging.

    Strategy: failures are logged, counted and swallowed so the business
    operation that triggered the entry never sees them.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def record(
        self,
        actor: AuditActor,
        action: str,
        resource_type: str | None = None,
        resource_id: int | None = None,
        detail: Any = None,
    ) -> int:
        try:
            entry = AuditEntry(
                actor_id=actor.user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                detail=serialize_detail(detail),
                ip=actor.ip,
                user_agent=actor.user_agent,
                created_at=datetime.utcnow(),
            )
            with self._session_factory.begin() as db:
                AuditRepository(db).create(entry)
                entry_id = entry.id
            return entry_id
        except Exception:
            logger.exception(
                "Failed to write audit entry",
                extra={
                    "action": action,
                    "resource_type": resource_type,
                    "resource_id": resource_id,
                    "actor_id": actor.user_id,
                },
            )
            metrics.increment_audit_write_failure(action)
            return 0


class AuditDispatcher:
    """Schedules audit writes after the response when background tasks are available."""

    def __init__(
        self,
        recorder: AuditRecorder,
        actor: AuditActor,
        background_tasks: BackgroundTasks | None = None,
    ):
        self.recorder = recorder
        self.actor = actor
        self.background_tasks = background_tasks

    def submit(
        self,
        action: str,
        resource_type: str | None = None,
        resource_id: int | None = None,
        detail: Any = None,
    ) -> None:
        if self.background_tasks is not None:
            self.background_tasks.add_task(
                self.recorder.record, self.actor, action, resource_type, resource_id, detail
            )
            return
        self.recorder.record(self.actor, action, resource_type, resource_id, detail)


@dataclass(frozen=True)
class AuditPage:
    rows: list[tuple[AuditEntry, str | None]]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def list_audit_entries(
    db,
    *,
    actor_id: int | None = None,
    resource_type: str | None = None,
    action: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> AuditPage:
    rows, total = AuditRepository(db).list(
        actor_id=actor_id,
        resource_type=resource_type,
        action=action,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return AuditPage(rows=rows, page=page, limit=limit, total=total)


def distinct_actions(db) -> list[str]:
    return AuditRepository(db).distinct_actions()
