"""Engine and session factory.

SQLite needs two adjustments before it behaves like the production
databases: foreign keys are off by default, and pysqlite's implicit
transaction handling breaks SAVEPOINT, which ``begin_nested()`` relies on.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from castellan.core.config import get_settings


def create_db_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine, enabling FK enforcement and savepoints on SQLite."""
    engine = create_engine(database_url, echo=echo, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


settings = get_settings()

engine = create_db_engine(
    settings.database_url,
    echo=settings.database_echo,
    connect_args={"check_same_thread": False} if settings.is_sqlite else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
