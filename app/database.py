from contextlib import contextmanager

from sqlmodel import SQLModel, create_engine, Session
from app.config import settings


def build_engine(url: str):
    if url.startswith("sqlite"):
        from sqlalchemy.pool import StaticPool

        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,      # checks dead connections
        pool_recycle=1800        # refresh every 30 min
    )


engine = build_engine(settings.database_url)


def create_db_and_tables(bind=None):
    from app import models  # noqa: F401  registers every table on the metadata
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as session:
        yield session


class SessionFactory:
    """Opens standalone sessions for code running outside a request."""

    def __init__(self, bind=None):
        self.bind = bind or engine

    @contextmanager
    def __call__(self):
        with Session(self.bind) as session:
            yield session


session_factory = SessionFactory()
