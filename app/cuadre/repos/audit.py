from __future__ import annotations

from sqlalchemy import func, select

from app.cuadre.db.models import AuditEntry, User


class AuditRepository:
    def __init__(self, db):
        self.db = db

    def create(self, entry: AuditEntry) -> AuditEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def _conditions(self, *, actor_id: int | None, resource_type: str | None, action: str | None) -> list:
        conditions = []
        if actor_id is not None:
            conditions.append(AuditEntry.actor_id == actor_id)
        if resource_type:
            conditions.append(AuditEntry.resource_type.like(f"%{resource_type}%"))
        if action:
            conditions.append(AuditEntry.action == action)
        return conditions

    def list(
        self,
        *,
        actor_id: int | None = None,
        resource_type: str | None = None,
        action: str | None = None,
        limit: int,
        offset: int,
    ) -> tuple[list[tuple[AuditEntry, str | None]], int]:
        conditions = self._conditions(actor_id=actor_id, resource_type=resource_type, action=action)
        total = self.db.execute(select(func.count()).select_from(AuditEntry).where(*conditions)).scalar_one()
        actor_name = func.coalesce(User.full_name, User.username).label("actor_name")
        rows = self.db.execute(
            select(AuditEntry, actor_name)
            .outerjoin(User, User.id == AuditEntry.actor_id)
            .where(*conditions)
            .order_by(AuditEntry.created_at.desc(), AuditEntry.id.desc())
            .limit(limit)
            .offset(offset)
        ).all()
        return [(row[0], row[1]) for row in rows], int(total)

    def distinct_actions(self) -> list[str]:
        rows = self.db.execute(select(AuditEntry.action).distinct().order_by(AuditEntry.action)).scalars().all()
        return list(rows)
