from app.core.config import settings
from sqlmodel import Session, SQLModel, create_engine


connect_args = {}
if settings.database_url.startswith("sqlite"):
    # FastAPI serves sync routes from a threadpool
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.database_url,
                       echo=settings.debug, connect_args=connect_args)


def create_db_and_tables():
    """Creates missing tables. Alembic owns the schema outside development."""
    # Registers every table on the metadata
    from app.db import schema  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
