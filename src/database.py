from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from src.config import settings

Base = declarative_base()

def build_engine(database_url: str) -> Engine:
    """Create an engine whose transactions are bounded by the configured lock timeout"""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.LOCK_TIMEOUT_SECONDS,
            },
        )

        @event.listens_for(engine, "connect")
        def _configure_sqlite(dbapi_connection, connection_record):
            # Let SQLAlchemy emit BEGIN itself
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            # Take the write lock up front so check-then-insert sequences serialize
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    lock_timeout_ms = int(settings.LOCK_TIMEOUT_SECONDS * 1000)
    statement_timeout_ms = int(settings.STATEMENT_TIMEOUT_SECONDS * 1000)
    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        pool_pre_ping=True,
        connect_args={
            "options": f"-c lock_timeout={lock_timeout_ms} -c statement_timeout={statement_timeout_ms}"
        },
    )

engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """Yield a database session for a single request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind: Engine = None) -> None:
    """Create all tables"""
    # Register models on the metadata
    import src.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
