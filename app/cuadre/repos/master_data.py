from sqlalchemy.orm import sessionmaker

from app.cuadre.db.models import Agreement, Branch


class MasterDataLookup:
    """Read-only access to branch and agreement reference data."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def branch_name(self, branch_id: int) -> str | None:
        with self._session_factory() as db:
            branch = db.get(Branch, branch_id)
            return branch.name if branch else None

    def agreement_name(self, agreement_id: int) -> str | None:
        with self._session_factory() as db:
            agreement = db.get(Agreement, agreement_id)
            return agreement.name if agreement else None
