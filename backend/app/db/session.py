"""
Database session management
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.exceptions import PersistenceError, ReferentialIntegrityError
from app.logging_config import get_logger

logger = get_logger(__name__)

connection_string = settings.database_url

engine_kwargs = {
    "echo": False,  # SQL logging goes through the sqlalchemy.engine logger
    "pool_pre_ping": True,  # Verify connections before using
}
if connection_string.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_recycle"] = 3600  # Recycle connections after 1 hour
    logger.info(f"Database connection: {settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME} (PostgreSQL)")

engine = create_engine(connection_string, **engine_kwargs)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency for getting database session

    Usage in FastAPI endpoints:
        @router.get("/products")
        def list_products(db: Session = Depends(get_db)):
            return db.query(Product).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a block as one atomic unit of work.

    Commits when the block finishes, rolls back on any exception. Store
    errors are translated: IntegrityError -> ReferentialIntegrityError,
    any other SQLAlchemyError -> PersistenceError. Domain exceptions raised
    inside the block propagate unchanged after the rollback.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity violation, transaction rolled back: {e.orig}")
        raise ReferentialIntegrityError(
            "Write rejected by a database constraint",
            details={"constraint_error": str(e.orig)},
        ) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database failure, transaction rolled back", exc_info=True)
        raise PersistenceError(details={"db_error": e.__class__.__name__}) from e
    except Exception:
        db.rollback()
        raise
