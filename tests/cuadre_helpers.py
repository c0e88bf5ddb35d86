from __future__ import annotations

from datetime import date

from sqlalchemy import select

from app.cuadre.core.security import ROLE_ADMIN, ROLE_CASHIER, create_access_token
from app.cuadre.db.models import Agreement, Branch, User
from app.cuadre.db.seed import run_seed


def seed_reference_data(db) -> dict:
    run_seed(db)
    branch = db.execute(select(Branch).where(Branch.name == "Principal")).scalars().one()
    north = Branch(name="Norte")
    cashier = User(username="cajero1", full_name="Ana Cajera", role=ROLE_CASHIER, branch_id=branch.id)
    db.add_all([north, cashier])
    db.commit()
    admin = db.execute(select(User).where(User.username == "admin")).scalars().one()
    agreements = {a.name: a for a in db.execute(select(Agreement)).scalars().all()}
    return {"branch": branch, "north": north, "admin": admin, "cashier": cashier, "agreements": agreements}


def token_for(user_id: int, role: str, branch_id: int | None = None) -> str:
    return create_access_token(
        {
            "sub": str(user_id),
            "role": role,
            "branch_id": str(branch_id) if branch_id is not None else None,
        }
    )


def auth_headers(user_id: int = 1, role: str = ROLE_ADMIN, branch_id: int | None = None) -> dict:
    return {"Authorization": f"Bearer {token_for(user_id, role, branch_id)}"}


def admin_headers(data: dict) -> dict:
    admin = data["admin"]
    return auth_headers(admin.id, ROLE_ADMIN, admin.branch_id)


def cashier_headers(data: dict) -> dict:
    cashier = data["cashier"]
    return auth_headers(cashier.id, ROLE_CASHIER, cashier.branch_id)


def session_payload(**overrides) -> dict:
    payload = {
        "branch_name": "Principal",
        "shift": "A",
        "session_date": date(2024, 5, 10).isoformat(),
        "session_time": "18:30",
        "cashier_name": "Ana Cajera",
        "cashier_id": "1001",
        "declared_total_sales": 100000,
        "cash_on_hand": 60000,
        "card_amount": 30000,
        "card_count": 3,
        "agreement_amount": 10000,
        "agreement_count": 1,
        "voucher_amount": 0,
        "internal_amount": 0,
    }
    payload.update(overrides)
    return payload


def register(client, headers: dict, **overrides):
    return client.post("/cuadre/cash-sessions", headers=headers, json=session_payload(**overrides))
