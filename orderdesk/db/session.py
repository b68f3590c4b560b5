from contextlib import contextmanager
import os
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import RemoteWriteFailure
from ..models import Base


def _ensure_sqlite_dir(database_url: str) -> None:
    # Ensure sqlite file parent directory exists to avoid 'unable to open database file'
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = database_url.split("sqlite:///")[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def make_engine(database_url: str):
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # a single shared connection, otherwise every checkout sees an empty database
        return create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    _ensure_sqlite_dir(database_url)
    return create_engine(database_url, future=True)


class SessionFactory:
    """Callable producing transactional session scopes for one database.

    ``with factory() as session`` commits when the block exits cleanly and
    rolls back on any exception. Store errors surface as ``RemoteWriteFailure``;
    nothing is retried.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = make_engine(database_url)
        self._sessionmaker = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False, future=True)

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def __call__(self) -> Iterator[Session]:
        session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise RemoteWriteFailure(f"{exc.__class__.__name__}: {getattr(exc, 'orig', None) or exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


_default_factory: Optional[SessionFactory] = None


def default_factory() -> SessionFactory:
    global _default_factory
    if _default_factory is None:
        _default_factory = SessionFactory(os.getenv("DATABASE_URL", "sqlite:///data/app.db"))
    return _default_factory


@contextmanager
def get_session() -> Iterator[Session]:
    with default_factory()() as session:
        yield session
