"""
Database engine and session management
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings

# Session.connection() option marking a transaction that will write
WRITE_TRANSACTION = {"begin_immediate": True}

def _explicit_sqlite_transactions(engine: Engine):
    """Let SQLAlchemy issue BEGIN on SQLite instead of pysqlite.

    pysqlite only begins a transaction at the first INSERT/UPDATE, so reads
    before it run in autocommit. Write transactions start with
    BEGIN IMMEDIATE and hold the database write lock from their first read.
    """

    @event.listens_for(engine, "connect")
    def disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def emit_begin(conn):
        if conn.get_execution_options().get("begin_immediate"):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")

def create_db_engine(database_url: str) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": settings.COMMIT_LOCK_TIMEOUT_SECONDS},
        pool_pre_ping=True
    )
    _explicit_sqlite_transactions(engine)
    return engine

engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """Yield a database session for a request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
