from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class ReconciliationSummary(BaseModel):
    amount_to_deposit: Decimal
    registered_total: Decimal
    variance: Decimal
    status: str


class AgreementLineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    agreement_id: int | None
    agreement_name: str | None
    quantity: int
    amount: Decimal


class CashSessionSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    branch_id: int | None
    branch_name: str | None
    shift: str
    session_at: datetime
    business_date: date
    declared_total_sales: Decimal
    cash_on_hand: Decimal
    card_amount: Decimal
    card_count: int
    agreement_amount: Decimal
    agreement_count: int
    voucher_amount: Decimal
    voucher_count: int
    internal_amount: Decimal
    internal_count: int
    amount_to_deposit: Decimal
    registered_total: Decimal
    variance: Decimal
    status: str
    note: str | None
    cashier_name: str
    cashier_id: str
    created_at: datetime


class CashSessionDetail(CashSessionSummary):
    line_items: list[AgreementLineItemResponse]


class CashSessionCreatedResponse(BaseModel):
    id: int
    reconciliation: ReconciliationSummary


class CashSessionAmendedResponse(BaseModel):
    reconciliation: ReconciliationSummary
    session: CashSessionDetail


class CashSessionListResponse(BaseModel):
    page: int
    limit: int
    total: int
    rows: list[CashSessionSummary]
