import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.cuadre.core.config import settings
from app.cuadre.core.db_timing import add_db_time, is_measuring


def _engine_kwargs(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def install_db_timing(target: Engine) -> None:
    @event.listens_for(target, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        if not is_measuring():
            return
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(target, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        starts = conn.info.get("query_start_time")
        if not starts:
            return
        add_db_time((time.perf_counter() - starts.pop()) * 1000)


engine = create_engine(settings.DATABASE_URL, echo=False, future=True, **_engine_kwargs(settings.DATABASE_URL))
install_db_timing(engine)

# Rows returned by the store outlive their session.
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    return SessionLocal
