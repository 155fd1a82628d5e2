# slotbook/db.py

from sqlmodel import SQLModel, create_engine, Session

from slotbook.config import get_settings

DATABASE_URL = get_settings().database_url

# Engine = connection to the database
engine = create_engine(
    DATABASE_URL,
    echo=False,          # set to True to see SQL
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)


def create_db_and_tables():
    # models must be imported so their tables are registered on the metadata
    from slotbook import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
