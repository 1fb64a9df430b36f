# app/data/database.py
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.domain.errors import ShopError, TransactionFailed
from app.utils.settings import DATABASE_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)

engine = create_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Jedna transakcja na operacje (stock + cart + job bookkeeping).

    Commit przy sukcesie, rollback przy kazdym bledzie. Bledy domenowe ida dalej
    bez zmian, wszystko inne zamieniane na TransactionFailed (500), przyczyna
    tylko w logach.
    """
    try:
        yield db
        db.commit()
    except ShopError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Transaction aborted: {e}")
        raise TransactionFailed() from e
