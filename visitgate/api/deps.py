from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from visitgate.db import SessionLocal
from visitgate.repositories import Repositories, sql_repositories


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_repositories(
    request: Request, db: Session = Depends(get_db)
) -> Repositories:
    # Offline stations share one in-memory store for the life of the app
    memory = getattr(request.app.state, "memory_repositories", None)
    if memory is not None:
        return memory
    return sql_repositories(db)
