from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from app.core.config import SQLALCHEMY_DATABASE_URI, LOG_LEVEL

is_sqlite = SQLALCHEMY_DATABASE_URI.startswith("sqlite")

connect_args = {"check_same_thread": False} if is_sqlite else {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URI,
    pool_pre_ping=True,
    connect_args=connect_args,
    echo=LOG_LEVEL.upper() == "DEBUG",
)

if is_sqlite:
    # WAL: order status polling reads while a fulfillment write is in flight
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Request-scoped session; every fulfillment step commits on its own."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
