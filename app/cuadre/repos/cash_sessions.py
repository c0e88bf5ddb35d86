from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import selectinload, sessionmaker

from app.cuadre.db.models import AgreementLineItem, CashSession
from app.cuadre.services.payload import LineItemInput

UPDATABLE_COLUMNS = frozenset(
    {
        "branch_id",
        "branch_name",
        "branch_key",
        "shift",
        "session_at",
        "business_date",
        "declared_total_sales",
        "cash_on_hand",
        "card_amount",
        "card_count",
        "agreement_amount",
        "agreement_count",
        "voucher_amount",
        "voucher_count",
        "internal_amount",
        "internal_count",
        "amount_to_deposit",
        "registered_total",
        "variance",
        "status",
        "note",
        "cashier_name",
        "cashier_id",
    }
)


@dataclass
class CashSessionFilters:
    date_from: date
    date_to: date
    branch_name: str | None = None
    branch_ids: list[int] = field(default_factory=list)
    shifts: list[str] = field(default_factory=list)
    cashier_ids: list[str] = field(default_factory=list)


def branch_key_for(branch_id: int | None, branch_name: str | None) -> str:
    if branch_id is not None:
        return f"id:{branch_id}"
    return f"name:{branch_name or ''}"


def session_conditions(filters: CashSessionFilters) -> list:
    conditions = [
        CashSession.business_date >= filters.date_from,
        CashSession.business_date <= filters.date_to,
    ]
    if filters.branch_name:
        conditions.append(CashSession.branch_name == filters.branch_name)
    if filters.branch_ids:
        conditions.append(CashSession.branch_id.in_(filters.branch_ids))
    if filters.shifts:
        conditions.append(CashSession.shift.in_(filters.shifts))
    if filters.cashier_ids:
        conditions.append(CashSession.cashier_id.in_(filters.cashier_ids))
    return conditions


def _line_item_rows(session_id: int, line_items: Sequence[LineItemInput]) -> list[AgreementLineItem]:
    return [
        AgreementLineItem(
            session_id=session_id,
            agreement_id=item.agreement_id,
            agreement_name=item.agreement_name,
            quantity=item.quantity,
            amount=item.amount,
        )
        for item in line_items
    ]


class CashSessionStore:
    """Transactional persistence for cash sessions and their agreement line items.

    Every write runs inside ``session_factory.begin()``: commit on success,
    rollback on any exception, connection returned to the pool either way.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, fields: Mapping, line_items: Sequence[LineItemInput] = ()) -> int:
        with self._session_factory.begin() as db:
            session = CashSession(**fields)
            db.add(session)
            db.flush()
            session_id = session.id
            db.add_all(_line_item_rows(session_id, line_items))
            db.flush()
        return session_id

    def get(self, session_id: int) -> CashSession | None:
        with self._session_factory() as db:
            stmt = (
                select(CashSession)
                .options(selectinload(CashSession.line_items))
                .where(CashSession.id == session_id)
            )
            return db.execute(stmt).scalars().first()

    def update(
        self,
        session_id: int,
        changes: Mapping,
        line_items: Sequence[LineItemInput] | None = None,
    ) -> bool:
        columns = {key: value for key, value in changes.items() if key in UPDATABLE_COLUMNS}
        with self._session_factory.begin() as db:
            if columns:
                result = db.execute(
                    update(CashSession)
                    .where(CashSession.id == session_id)
                    .values(**columns)
                    .execution_options(synchronize_session=False)
                )
                found = result.rowcount > 0
            else:
                found = db.execute(select(CashSession.id).where(CashSession.id == session_id)).first() is not None
            if not found:
                return False
            if line_items is not None:
                db.execute(delete(AgreementLineItem).where(AgreementLineItem.session_id == session_id))
                db.add_all(_line_item_rows(session_id, line_items))
        return True

    def delete(self, session_id: int) -> bool:
        with self._session_factory.begin() as db:
            db.execute(delete(AgreementLineItem).where(AgreementLineItem.session_id == session_id))
            result = db.execute(delete(CashSession).where(CashSession.id == session_id))
            removed = result.rowcount > 0
        return removed

    def slot_taken(
        self,
        branch_key: str,
        shift: str,
        business_date: date,
        *,
        exclude_id: int | None = None,
    ) -> bool:
        with self._session_factory() as db:
            stmt = select(func.count()).select_from(CashSession).where(
                CashSession.branch_key == branch_key,
                CashSession.shift == shift,
                CashSession.business_date == business_date,
            )
            if exclude_id is not None:
                stmt = stmt.where(CashSession.id != exclude_id)
            return db.execute(stmt).scalar_one() > 0

    def list(self, filters: CashSessionFilters, *, limit: int, offset: int) -> tuple[list[CashSession], int]:
        conditions = session_conditions(filters)
        with self._session_factory() as db:
            total = db.execute(select(func.count()).select_from(CashSession).where(*conditions)).scalar_one()
            rows = (
                db.execute(
                    select(CashSession)
                    .where(*conditions)
                    .order_by(CashSession.session_at.desc(), CashSession.id.desc())
                    .limit(limit)
                    .offset(offset)
                )
                .scalars()
                .all()
            )
        return list(rows), int(total)
