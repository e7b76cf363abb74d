"""Generate database session"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from ledger_sync.core.config import Config
from ledger_sync.db.schema import Base


def create_db_engine(database_url: str = Config.DATABASE_URL) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # The background sync worker shares the store with the caller's thread
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, connect_args=connect_args)

    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    return engine


def create_session(engine: Engine) -> Session:
    return sessionmaker(bind=engine)()
