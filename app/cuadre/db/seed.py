from sqlalchemy import select

from app.cuadre.core.config import settings
from app.cuadre.core.security import ROLE_ADMIN
from app.cuadre.db.models import Agreement, Branch, User


DEFAULT_AGREEMENTS = [
    "Sodexo",
    "Big Pass",
    "Convenio Empresarial",
]


def _get_or_create_branch(db):
    branch = db.execute(select(Branch).where(Branch.name == settings.DEFAULT_BRANCH_NAME)).scalars().first()
    if branch:
        return branch
    branch = Branch(name=settings.DEFAULT_BRANCH_NAME)
    db.add(branch)
    db.flush()
    return branch


def _get_or_create_agreements(db):
    existing = {agreement.name for agreement in db.execute(select(Agreement)).scalars().all()}
    for name in DEFAULT_AGREEMENTS:
        if name in existing:
            continue
        db.add(Agreement(name=name))


def _get_or_create_admin(db, branch):
    user = db.execute(select(User).where(User.username == settings.DEFAULT_ADMIN_USERNAME)).scalars().first()
    if user:
        return user
    user = User(
        username=settings.DEFAULT_ADMIN_USERNAME,
        full_name="Administrador",
        role=ROLE_ADMIN,
        branch_id=branch.id,
        is_active=True,
    )
    db.add(user)
    return user


def run_seed(db):
    branch = _get_or_create_branch(db)
    _get_or_create_agreements(db)
    _get_or_create_admin(db, branch)
    db.commit()
