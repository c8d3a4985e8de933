import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session
from thatsgoodtoo.core.config import settings
from thatsgoodtoo.core.exceptions import InternalError

logger = logging.getLogger(__name__)

# check_same_thread is needed for SQLite, remove for PostgreSQL
connect_args = {"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

def get_session():
    with Session(engine) as session:
        yield session

def create_db_and_tables():
    SQLModel.metadata.create_all(engine)

def commit_or_fail(session: Session, operation: str, actor_id: Optional[int] = None, target_id: Optional[int] = None):
    """Commit, or roll back and surface a generic InternalError.

    The database error is logged with its context and never reaches the client.
    """
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"{operation} failed (actor={actor_id}, target={target_id})")
        raise InternalError()
