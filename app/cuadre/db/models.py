from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

MONEY = Numeric(14, 2)


class Base(DeclarativeBase):
    pass


class Branch(Base):
    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Agreement(Base):
    __tablename__ = "agreements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(150), nullable=False, unique=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(50), default="CASHIER", nullable=False)
    branch_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("branches.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class CashSession(Base):
    __tablename__ = "cash_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    branch_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("branches.id"), index=True, nullable=True)
    branch_name: Mapped[str | None] = mapped_column(String(255), index=True, nullable=True)
    # "id:<branch_id>" or "name:<branch_name>"; one session per key/shift/day
    branch_key: Mapped[str] = mapped_column(String(300), nullable=False)
    shift: Mapped[str] = mapped_column(String(1), nullable=False)
    session_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    business_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    declared_total_sales: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    cash_on_hand: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    card_amount: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    card_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    agreement_amount: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    agreement_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    voucher_amount: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    voucher_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    internal_amount: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    internal_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    amount_to_deposit: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    registered_total: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    variance: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(255), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    cashier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    cashier_id: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    line_items = relationship(
        "AgreementLineItem",
        back_populates="session",
        order_by="AgreementLineItem.id",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("branch_key", "shift", "business_date", name="uq_cash_sessions_slot"),
    )


class AgreementLineItem(Base):
    __tablename__ = "agreement_line_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("cash_sessions.id"), index=True, nullable=False)
    agreement_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("agreements.id"), nullable=True)
    agreement_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    session = relationship("CashSession", back_populates="line_items")


class AuditEntry(Base):
    __tablename__ = "audit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    action: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    resource_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    resource_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True, nullable=False)


Index("ix_cash_sessions_cashier", CashSession.cashier_id, CashSession.cashier_name)
Index("ix_cash_sessions_session_at", CashSession.session_at)
