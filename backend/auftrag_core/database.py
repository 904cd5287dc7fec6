"""
Datenbankverbindung, Session-Management und Unit of Work

Services schreiben nur per Flush in die Session des Requests, committet
wird im API-Layer. Kollisionen beim Flush (veraltete Version, doppelter
Schlüssel durch einen parallelen Schreiber) werden als ConflictError
gemeldet.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from sqlalchemy.orm.exc import StaleDataError

from auftrag_core.config import get_settings
from auftrag_core.core.exceptions import ConflictError


def _engine_options(database_url: str) -> dict:
    """Pool-Einstellungen für PostgreSQL, SQLite (lokal/Tests) ohne Pool-Größen"""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


settings = get_settings()

# Engine erstellen (lazy, verbindet erst beim ersten Zugriff)
engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Session Factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Basis-Klasse für alle Models des Auftrag-Cores"""
    pass


def get_db():
    """
    Dependency für FastAPI - liefert eine DB-Session.
    Nicht committete Änderungen werden beim Schließen verworfen.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def flush_or_conflict(db: Session, what: str = "Datensatz") -> None:
    """
    Schreibt offene Änderungen der Session.

    Raises:
        ConflictError: Versionskonflikt oder Unique-Verletzung durch einen
            parallelen Schreiber. Die Session muss danach zurückgerollt werden.
    """
    try:
        db.flush()
    except StaleDataError as exc:
        raise ConflictError(
            f"{what} wurde zwischenzeitlich geändert, bitte neu laden"
        ) from exc
    except IntegrityError as exc:
        raise ConflictError(
            f"{what} kollidiert mit einem parallel angelegten Eintrag, bitte neu laden"
        ) from exc
