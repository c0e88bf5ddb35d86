from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.cuadre.schemas.cash_sessions import CashSessionSummary


class CashierVarianceRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cashier_id: str | None
    cashier_name: str
    total_registros: int
    faltantes_count: int
    faltantes_total: Decimal
    sobrantes_count: int
    sobrantes_total: Decimal
    neto: Decimal


class VarianceReportResponse(BaseModel):
    date_from: date
    date_to: date
    faltantes: list[CashierVarianceRow]
    sobrantes: list[CashierVarianceRow]


class CashierSessionsResponse(BaseModel):
    date_from: date
    date_to: date
    sessions: dict[str, list[CashSessionSummary]]


class ShiftTotalsRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    shift: str
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
    registered_total: Decimal
    amount_to_deposit: Decimal
    variance: Decimal


class ShiftSummaryResponse(BaseModel):
    date_from: date
    date_to: date
    shifts: list[ShiftTotalsRow]
    totals: ShiftTotalsRow


class AgreementTotalRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    total: Decimal


class SalesBreakdownResponse(BaseModel):
    date_from: date
    date_to: date
    declared_total_sales: Decimal
    cash_on_hand: Decimal
    card_amount: Decimal
    voucher_amount: Decimal
    internal_amount: Decimal
    variance: Decimal
    agreements_total: Decimal
    agreements: list[AgreementTotalRow]
