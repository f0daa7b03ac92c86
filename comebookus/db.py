# comebookus/db.py

from sqlmodel import SQLModel, create_engine, Session

from comebookus.config import settings


def build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        # required for SQLite + FastAPI (sessions cross worker threads)
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        echo=False,          # set to True to see SQL
        connect_args=connect_args,
    )


engine = build_engine(settings.database_url)


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
