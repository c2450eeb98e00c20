"""Database session management."""
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config.settings import Settings, get_settings


def build_engine(settings: Optional[Settings] = None, url: Optional[str] = None) -> Engine:
    """
    Create the database engine.

    SQLite connections are shared across FastAPI's worker threads, so
    the same-thread check is disabled for them.
    """
    settings = settings or get_settings()
    database_url = url or settings.DATABASE_URL

    connect_args = {}
    engine_kwargs = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    else:
        engine_kwargs["pool_size"] = 10
        engine_kwargs["max_overflow"] = 20

    return create_engine(
        database_url,
        echo=settings.DATABASE_ECHO,
        connect_args=connect_args,
        **engine_kwargs,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory bound to ``engine``"""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Yield a database session and close it afterwards.

    Usage in FastAPI dependencies:
        def get_session(request: Request):
            yield from get_db(request.app.state.session_factory)
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
