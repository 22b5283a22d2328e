from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from stocksense.core_settings import get_settings
from stocksense.domain.models import Base
from stocksense.infrastructure.immutability import register_immutability_guards


def _use_immediate_transactions(engine: Engine) -> None:
    """SQLite ignores FOR UPDATE; take the write lock when the transaction begins.

    pysqlite otherwise defers BEGIN until the first write, so two processes
    could both read the same stock before either writes it back.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, sqlite_timeout: float = 15.0) -> Engine:
    connect_args = {}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        # Sessions are handed across FastAPI's worker threads
        connect_args = {"check_same_thread": False, "timeout": sqlite_timeout}
    engine = create_engine(database_url, echo=False, future=True, pool_pre_ping=True, connect_args=connect_args)
    if is_sqlite:
        _use_immediate_transactions(engine)
    return engine


settings = get_settings()
engine = build_engine(settings.database_url, settings.SQLITE_TIMEOUT)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

register_immutability_guards()


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_models(bind: Engine = None):
    Base.metadata.create_all(bind or engine)
