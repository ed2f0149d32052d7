from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.audit import ActivityLogObserver
from app.services.class_editor import ClassEditSession
from app.services.class_repository import SqlClassRepository


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_class_repository(db: Session = Depends(get_db)) -> SqlClassRepository:
    return SqlClassRepository(db)


def get_class_editor(
    db: Session = Depends(get_db),
    repository: SqlClassRepository = Depends(get_class_repository),
) -> ClassEditSession:
    return ClassEditSession(db, repository=repository, observers=[ActivityLogObserver(db)])
